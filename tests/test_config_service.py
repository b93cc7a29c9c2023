import json

import pytest

from pixmark.services.config_service import (
    DEFAULT_CONFIG,
    MARKUP_COLORS,
    ConfigService,
)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "pixmark" / "config.json"


def test_missing_file_creates_defaults(config_path):
    config = ConfigService(config_path)
    assert config_path.exists()
    assert json.loads(config_path.read_text()) == DEFAULT_CONFIG
    assert config.markup_colors == MARKUP_COLORS
    assert config.eraser_size == 20
    assert config.jpeg_quality == 90


def test_partial_file_is_merged_with_defaults(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(json.dumps({"eraser_size": 40, "default_tool": "arrow"}))

    config = ConfigService(config_path)
    assert config.eraser_size == 40
    assert config.default_tool == "arrow"
    assert config.export_background == "#ffffff"
    assert "jpeg_quality" in json.loads(config_path.read_text())


def test_corrupt_file_falls_back_to_defaults(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text("{not json")

    config = ConfigService(config_path)
    assert config.default_tool == DEFAULT_CONFIG["default_tool"]
    assert json.loads(config_path.read_text()) == DEFAULT_CONFIG


def test_non_object_file_falls_back_to_defaults(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text("[1, 2, 3]")
    assert ConfigService(config_path).jpeg_quality == 90


def test_set_and_save_persist(config_path):
    config = ConfigService(config_path)
    config.set("default_color", "#22c55e")
    config.save()
    assert ConfigService(config_path).default_color == "#22c55e"


@pytest.mark.parametrize("stored, expected", [(1, 2), (500, 100), ("junk", 20), (33, 33)])
def test_eraser_size_is_clamped(config_path, stored, expected):
    config = ConfigService(config_path)
    config.set("eraser_size", stored)
    assert config.eraser_size == expected


@pytest.mark.parametrize("stored, expected", [(-5, 0), (150, 100), (None, 90), (75, 75)])
def test_jpeg_quality_is_clamped(config_path, stored, expected):
    config = ConfigService(config_path)
    config.set("jpeg_quality", stored)
    assert config.jpeg_quality == expected


def test_empty_palette_falls_back(config_path):
    config = ConfigService(config_path)
    config.set("markup_colors", [])
    assert config.markup_colors == MARKUP_COLORS
