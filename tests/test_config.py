"""Tests for environment-driven configuration."""

import pytest

from walkmap.config import Config


def test_default_configuration_is_valid():
    Config.validate()


def test_validate_rejects_unknown_compression(monkeypatch):
    monkeypatch.setattr(Config, "ARCHIVE_COMPRESSION", "bzip9")
    with pytest.raises(ValueError, match="WALKMAP_ARCHIVE_COMPRESSION"):
        Config.validate()


def test_validate_rejects_non_positive_pixel_limit(monkeypatch):
    monkeypatch.setattr(Config, "MAX_IMAGE_PIXELS", 0)
    with pytest.raises(ValueError):
        Config.validate()


def test_display_lists_settings(monkeypatch):
    monkeypatch.setattr(Config, "ARCHIVE_COMPRESSION", "stored")
    summary = Config.display()

    assert summary.startswith("Walkmap Configuration:")
    assert "Archive Compression: stored" in summary
