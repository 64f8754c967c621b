"""Tests for appdrop.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from appdrop.core.config import (
    CONFIG_FILE_NAME,
    DEFAULT_BUILD_DIR,
    DEFAULT_NOTARY_POLL,
    DEFAULT_NOTARY_TIMEOUT,
    DEFAULT_OUTPUT_DIR,
    AppdropConfig,
    ConfigError,
    load_config,
    load_config_or_default,
)
from appdrop.core.result import Err, Ok


class TestAppdropConfig:
    def test_defaults(self) -> None:
        config = AppdropConfig()
        assert config.paths.output == DEFAULT_OUTPUT_DIR
        assert config.paths.build == DEFAULT_BUILD_DIR
        assert config.notary.timeout == DEFAULT_NOTARY_TIMEOUT
        assert config.notary.poll == DEFAULT_NOTARY_POLL
        assert config.sparkle.bin is None

    def test_from_dict_partial(self) -> None:
        config = AppdropConfig.from_dict({"paths": {"output": "dist"}, "notary": {"poll": "10s"}})
        assert config.paths.output == "dist"
        assert config.paths.build == DEFAULT_BUILD_DIR
        assert config.notary.poll == "10s"
        assert config.notary.timeout == DEFAULT_NOTARY_TIMEOUT

    def test_from_dict_ignores_wrong_types(self) -> None:
        config = AppdropConfig.from_dict({"paths": "nope", "sparkle": {"bin": 42}})
        assert config.paths.output == DEFAULT_OUTPUT_DIR
        assert config.sparkle.bin is None

    def test_frozen(self) -> None:
        config = AppdropConfig()
        with pytest.raises(AttributeError):
            config.paths = None  # type: ignore[misc,assignment]


class TestLoadConfig:
    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text(
            '[paths]\noutput = "out"\nbuild = ".build-release"\n\n'
            '[notary]\ntimeout = "90m"\npoll = "15s"\n\n'
            '[sparkle]\nbin = "/opt/sparkle/bin"\n',
            encoding="utf-8",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        config = result.value
        assert config.paths.output == "out"
        assert config.paths.build == ".build-release"
        assert config.notary.timeout == "90m"
        assert config.notary.poll == "15s"
        assert config.sparkle.bin == "/opt/sparkle/bin"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / CONFIG_FILE_NAME)
        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigError)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("[paths\noutput = ", encoding="utf-8")

        result = load_config(path)

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message
        assert result.error.path == path


class TestLoadConfigOrDefault:
    def test_absent_file_gives_defaults(self, tmp_path: Path) -> None:
        result = load_config_or_default(tmp_path)
        assert isinstance(result, Ok)
        assert result.value == AppdropConfig()

    def test_present_file_is_loaded(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text('[paths]\noutput = "dist"\n', encoding="utf-8")
        result = load_config_or_default(tmp_path)
        assert isinstance(result, Ok)
        assert result.value.paths.output == "dist"

    def test_broken_file_is_still_an_error(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("not = [valid", encoding="utf-8")
        assert isinstance(load_config_or_default(tmp_path), Err)
