"""
Walkmap Configuration

Loads configuration from environment variables with sensible defaults.
Grid dimensions and the tile edge are wire-format constants and live in
``walkmap.grid.document``; only runtime knobs belong here.
"""

import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Per-edit log lines (click/brush/fill). Off by default so pointer-move
    # handling stays a constant-time grid update.
    VERBOSE: bool = _env_flag("WALKMAP_VERBOSE")

    # Archive writing: "deflated" or "stored"
    ARCHIVE_COMPRESSION: str = os.getenv("WALKMAP_ARCHIVE_COMPRESSION", "deflated")

    # Largest image (width x height) PillowImageDecoder accepts. Pillow's own
    # decompression-bomb limit still applies above this.
    MAX_IMAGE_PIXELS: int = int(os.getenv("WALKMAP_MAX_IMAGE_PIXELS", str(64 * 1024 * 1024)))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are unusable."""
        if cls.ARCHIVE_COMPRESSION not in ("deflated", "stored"):
            raise ValueError(
                f"WALKMAP_ARCHIVE_COMPRESSION must be 'deflated' or 'stored', "
                f"got {cls.ARCHIVE_COMPRESSION!r}"
            )

        if cls.MAX_IMAGE_PIXELS <= 0:
            raise ValueError("WALKMAP_MAX_IMAGE_PIXELS must be a positive pixel count")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Walkmap Configuration:",
            f"  Log Level: {cls.LOG_LEVEL}",
            f"  Verbose Edits: {cls.VERBOSE}",
            f"  Archive Compression: {cls.ARCHIVE_COMPRESSION}",
            f"  Max Image Pixels: {cls.MAX_IMAGE_PIXELS}",
        ]
        return "\n".join(lines)
