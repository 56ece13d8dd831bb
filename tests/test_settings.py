"""配置文件、环境变量与命令行覆盖的合并测试。"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from image_watermark.core.exceptions import ConfigValidationError
from image_watermark.core.settings import (
    AppSettings,
    build_watermark_config,
    generate_example_config,
    load_settings,
)


def _write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_defaults_without_file_or_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = load_settings(environ={})

    assert settings == AppSettings()


def test_file_values_override_defaults(tmp_path: Path) -> None:
    config_file = _write_yaml(
        tmp_path / "config.yaml",
        {
            "font_size": 55,
            "opacity": 90,
            "watermark_color": {"r": 10, "g": 20, "b": 30},
            "system_font_paths": ["/nowhere/font.ttf"],
            "default_workers": 8,
        },
    )

    settings = load_settings(config_file, environ={})

    assert settings.font_size == 55.0
    assert settings.opacity == 90
    assert settings.watermark_color == (10, 20, 30)
    assert settings.system_font_paths == ["/nowhere/font.ttf"]
    assert settings.default_workers == 8
    assert settings.source == config_file


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_file = _write_yaml(tmp_path / "config.yaml", {"font_size": 55, "quality": 80})

    settings = load_settings(config_file, environ={"WATERMARK_FONT_SIZE": "60", "WATERMARK_LOG_LEVEL": "debug"})

    assert settings.font_size == 60.0
    assert settings.quality == 80
    assert settings.log_level == "debug"


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError):
        load_settings(tmp_path / "missing.yaml", environ={})


@pytest.mark.parametrize(
    "content",
    [
        "font_size: [unclosed",
        "- just\n- a list\n",
        "opacity: lots\n",
        "watermark_color: red\n",
    ],
)
def test_malformed_files_are_rejected(tmp_path: Path, content: str) -> None:
    config_file = tmp_path / "bad.yaml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigValidationError):
        load_settings(config_file, environ={})


def test_generated_example_config_loads(tmp_path: Path) -> None:
    target = generate_example_config(tmp_path / "nested" / "example.yaml")

    settings = load_settings(target, environ={})

    assert settings.font_size == 45.0
    assert settings.opacity == 60
    assert settings.text_spacing == 35.0
    assert settings.line_spacing == 35.0
    assert settings.quality == 90


def test_build_watermark_config_applies_overrides(tmp_path: Path) -> None:
    settings = AppSettings(font_path=str(tmp_path / "missing.ttf"), system_font_paths=[])
    stamp = datetime(2023, 1, 2)

    config = build_watermark_config(
        settings,
        "ACME",
        {"font_size": 24.0, "opacity": None, "color": (1, 2, 3), "quality": 70},
        timestamp=stamp,
    )

    assert config.font_size == 24.0
    assert config.opacity == settings.opacity
    assert config.color == (1, 2, 3)
    assert config.output_quality == 70
    assert config.watermark_text == "ACME - 2023-01-02"


def test_build_watermark_config_validates(tmp_path: Path) -> None:
    settings = AppSettings(font_path=str(tmp_path / "missing.ttf"), system_font_paths=[])

    with pytest.raises(ConfigValidationError):
        build_watermark_config(settings, "ACME", {"font_size": 5.0})
    with pytest.raises(ConfigValidationError):
        build_watermark_config(settings, "", {})


def test_unknown_log_level_is_rejected(tmp_path: Path) -> None:
    config_file = _write_yaml(tmp_path / "config.yaml", {"log_level": "verbose"})

    with pytest.raises(ConfigValidationError):
        load_settings(config_file, environ={})
    with pytest.raises(ConfigValidationError):
        load_settings(_write_yaml(tmp_path / "ok.yaml", {"opacity": 10}), environ={"WATERMARK_LOG_LEVEL": "dbug"})


def test_log_level_is_normalized(tmp_path: Path) -> None:
    config_file = _write_yaml(tmp_path / "config.yaml", {"log_level": "DEBUG"})

    assert load_settings(config_file, environ={}).log_level == "debug"
    settings = load_settings(config_file, environ={"WATERMARK_LOG_LEVEL": " WARNING "})

    assert settings.log_level == "warning"
