"""Unit tests for configuration management."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from fulltextfeed.config import Config, parse_bool, parse_optional_int
from fulltextfeed.models import ExtractionLimits, ExtractionPolicy

CONFIG_DATA = {
    "fulltext_rss_filters": {
        "filter_path": "/etc/fulltextfeed/site-rules",
        "use_filters": True,
        "extraction_defaults": {
            "max_items": 10,
            "keep_failed": False,
            "keep_original_content": True,
        },
        "extraction_limits": {"max_items": 25},
    },
    "server": {"host": "127.0.0.1", "port": 8080},
    "http_timeout": 12,
}


def write_config(tmp_path, data):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(data), encoding="utf-8")
    return config_file


class TestConfigUnit:
    """Unit tests for Config class."""

    def test_defaults_without_config_file(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config.load()

        assert config.get_extraction_defaults() == ExtractionPolicy(
            max_items=None, keep_failed=True, keep_original_content=False
        )
        assert config.get_extraction_limits() == ExtractionLimits(max_items=None)
        assert config.get_rules_dir() is None
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 3000
        assert config.http_timeout == 30

    def test_load_from_file(self, tmp_path):
        config_file = write_config(tmp_path, CONFIG_DATA)

        with patch.dict(os.environ, {}, clear=True):
            config = Config.load(config_file)

        assert config.get_extraction_defaults() == ExtractionPolicy(
            max_items=10, keep_failed=False, keep_original_content=True
        )
        assert config.get_extraction_limits() == ExtractionLimits(max_items=25)
        assert config.get_rules_dir() == Path("/etc/fulltextfeed/site-rules")
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 8080
        assert config.http_timeout == 12

    def test_rules_dir_requires_use_filters(self, tmp_path):
        data = {"fulltext_rss_filters": {"filter_path": "rules", "use_filters": False}}

        with patch.dict(os.environ, {}, clear=True):
            config = Config.load(write_config(tmp_path, data))

        assert config.get_rules_dir() is None

    def test_environment_overrides_file(self, tmp_path):
        config_file = write_config(tmp_path, CONFIG_DATA)
        env = {
            "FULLTEXTFEED_MAX_ITEMS": "3",
            "FULLTEXTFEED_KEEP_FAILED": "true",
            "FULLTEXTFEED_KEEP_ORIGINAL_CONTENT": "no",
            "FULLTEXTFEED_LIMIT_MAX_ITEMS": "none",
            "FULLTEXTFEED_USE_FILTERS": "0",
            "FULLTEXTFEED_PORT": "9000",
            "FULLTEXTFEED_HTTP_TIMEOUT": "5",
        }

        with patch.dict(os.environ, env, clear=True):
            config = Config.load(config_file)

        assert config.get_extraction_defaults() == ExtractionPolicy(
            max_items=3, keep_failed=True, keep_original_content=False
        )
        assert config.get_extraction_limits().max_items is None
        assert config.get_rules_dir() is None
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9000
        assert config.http_timeout == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.load(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            Config.load(config_file)

    def test_non_object_json(self, tmp_path):
        with pytest.raises(ValueError, match="JSON object"):
            Config.load(write_config(tmp_path, ["a", "b"]))

    def test_use_filters_without_path(self, tmp_path):
        data = {"fulltext_rss_filters": {"use_filters": True}}

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="filter_path"):
                Config.load(write_config(tmp_path, data))

    def test_negative_max_items_in_file(self, tmp_path):
        data = {"fulltext_rss_filters": {"extraction_defaults": {"max_items": -1}}}

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="non-negative"):
                Config.load(write_config(tmp_path, data))

    def test_string_booleans_in_file(self, tmp_path):
        data = {
            "fulltext_rss_filters": {
                "extraction_defaults": {
                    "keep_failed": "false",
                    "keep_original_content": "yes",
                }
            }
        }

        with patch.dict(os.environ, {}, clear=True):
            config = Config.load(write_config(tmp_path, data))

        defaults = config.get_extraction_defaults()
        assert defaults.keep_failed is False
        assert defaults.keep_original_content is True

    def test_non_boolean_values_in_file(self, tmp_path):
        for value in ("perhaps", 1, None, [True]):
            data = {"fulltext_rss_filters": {"extraction_defaults": {"keep_failed": value}}}

            with patch.dict(os.environ, {}, clear=True):
                with pytest.raises(ValueError):
                    Config.load(write_config(tmp_path, data))

    def test_invalid_environment_value(self):
        with patch.dict(os.environ, {"FULLTEXTFEED_KEEP_FAILED": "maybe"}, clear=True):
            with pytest.raises(ValueError):
                Config()


class TestConfigParsersUnit:
    """Unit tests for environment value parsers."""

    def test_parse_bool(self):
        assert parse_bool("TRUE") is True
        assert parse_bool(" on ") is True
        assert parse_bool("off") is False
        with pytest.raises(ValueError):
            parse_bool("2")

    def test_parse_optional_int(self):
        assert parse_optional_int("7") == 7
        assert parse_optional_int("") is None
        assert parse_optional_int("None") is None
        with pytest.raises(ValueError):
            parse_optional_int("-4")
        with pytest.raises(ValueError):
            parse_optional_int("many")
