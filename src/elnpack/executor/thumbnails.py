"""Pillow-backed thumbnail decoding."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from elnpack.state.models import ThumbnailImage


class ThumbnailError(Exception):
    """Raised when an image cannot be decoded into a preview."""


class PillowThumbnailLoader:
    """Decode images into RGBA previews whose longest edge is at most ``max_px``."""

    def __init__(self, max_px: int = 256) -> None:
        self.max_px = max_px

    def load(self, path: Path) -> ThumbnailImage:
        """Decode ``path`` into a bounded RGBA thumbnail.

        Args:
            path: Image file to decode.

        Returns:
            ThumbnailImage: Width, height and raw RGBA pixels.

        Raises:
            ThumbnailError: If the file is a vector image or cannot be decoded.
        """
        if path.suffix.lower() == ".svg":
            raise ThumbnailError("SVG previews are not supported")
        try:
            with Image.open(path) as img:
                img = ImageOps.exif_transpose(img)
                img.thumbnail((self.max_px, self.max_px))
                rgba = img.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise ThumbnailError(f"Cannot decode {path.name}: {exc}") from exc
        width, height = rgba.size
        return ThumbnailImage(width=width, height=height, rgba=rgba.tobytes())


__all__ = ["PillowThumbnailLoader", "ThumbnailError"]
