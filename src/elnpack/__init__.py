"""elnpack: verified .eln archives from lab notes, attachments and eLabFTW metadata."""

from importlib import metadata as _metadata

from elnpack.naming import sanitize_component

__all__ = ["__version__", "sanitize_component"]


def __getattr__(name: str):
    if name == "__version__":
        return _metadata.version("elnpack")
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
