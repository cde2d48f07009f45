"""Configuration models describing elnpack settings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ElnPackBaseModel(BaseModel):
    """Shared configuration for elnpack settings models."""

    model_config = ConfigDict(extra="forbid")


class ArchiveSettings(ElnPackBaseModel):
    """Defaults applied when assembling archives.

    Attributes:
        body_format: Whether the main text is stored as rendered HTML or raw markdown.
        genre: Genre assigned to new entries.
        compression: ZIP compression method for archive members.
        render_math: Whether `$...$` spans are kept as math hooks in rendered HTML.
    """

    body_format: Literal["html", "markdown"] = "html"
    genre: Literal["experiment", "resource"] = "experiment"
    compression: Literal["deflated", "stored"] = "deflated"
    render_math: bool = False


class AttachmentSettings(ElnPackBaseModel):
    """Attachment hashing and preview options.

    Attributes:
        hash_chunk_kb: Size of the read buffer used while streaming digests.
        thumbnail_max_px: Longest edge of decoded thumbnails.
    """

    hash_chunk_kb: int = Field(default=64, ge=1)
    thumbnail_max_px: int = Field(default=256, ge=16)


class ExecutorSettings(ElnPackBaseModel):
    """Worker pool sizing for side-effecting commands.

    Attributes:
        max_workers: Number of threads executing commands concurrently.
    """

    max_workers: int = Field(default=4, ge=1)


class LoggingSettings(ElnPackBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; console-only logging when unset.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(ElnPackBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class ElnPackConfig(ElnPackBaseModel):
    """Top-level configuration struct for elnpack.

    Attributes:
        archive: Archive assembly defaults.
        attachments: Attachment hashing and thumbnail settings.
        executor: Command executor settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)
    attachments: AttachmentSettings = Field(default_factory=AttachmentSettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ElnPackBaseModel",
    "ArchiveSettings",
    "AttachmentSettings",
    "ExecutorSettings",
    "LoggingSettings",
    "CLIOptions",
    "ElnPackConfig",
]
