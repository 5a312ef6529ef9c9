from __future__ import annotations

from pathlib import Path

import pytest

from deadwood.config import Config, load_config
from deadwood.errors import ConfigError


def test_missing_default_config(tmp_path: Path) -> None:
    assert load_config(tmp_path) == Config()


def test_missing_explicit_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path, tmp_path / "other.toml")


def test_full_config(tmp_path: Path) -> None:
    (tmp_path / "deadwood.toml").write_text(
        """
include = ["app/**"]
exclude = ["app/generated/**"]
plugins = ["ruby", "actionpack"]
ignore_method_names = ["perform", "/^on_/"]
jobs = 2
"""
    )

    assert load_config(tmp_path) == Config(
        include=["app/**"],
        exclude=["app/generated/**"],
        plugins=["ruby", "actionpack"],
        ignore_method_names=["perform", "/^on_/"],
        jobs=2,
    )


def test_empty_plugin_list_disables_detection(tmp_path: Path) -> None:
    (tmp_path / "deadwood.toml").write_text("plugins = []\n")

    assert load_config(tmp_path).plugins == []


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("includes = []\n", "unknown keys: includes"),
        ("include = 'app'\n", "'include' must be a list of strings"),
        ("plugins = [1]\n", "'plugins' must be a list of strings"),
        ("jobs = true\n", "positive integer"),
        ("jobs = -1\n", "positive integer"),
        ("include = [\n", "deadwood.toml"),
    ],
)
def test_invalid_config(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / "deadwood.toml").write_text(content)

    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)
