"""Configuration management for the full-text feed proxy."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import ExtractionLimits, ExtractionPolicy

ENV_PREFIX = "FULLTEXTFEED_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: str) -> bool:
    """Parse a boolean setting from its string form."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def as_bool(value: Any, name: str) -> bool:
    """Read a boolean config file value; strings use the env var spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return parse_bool(value)
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def parse_optional_int(value: str) -> int | None:
    """Parse a non-negative integer setting; empty or "none" means unset."""
    stripped = value.strip()
    if not stripped or stripped.lower() in ("none", "null"):
        return None
    number = int(stripped)
    if number < 0:
        raise ValueError(f"Value must be non-negative: {value!r}")
    return number


@dataclass
class ExtractionDefaultsConfig:
    """Default extraction policy applied when a request does not override it."""

    max_items: int | None = None
    keep_failed: bool = True
    keep_original_content: bool = False


@dataclass
class ExtractionLimitsConfig:
    """Ceilings on request-supplied extraction settings."""

    max_items: int | None = None


@dataclass
class FullTextFilterConfig:
    """Configuration for site-specific extraction rules."""

    filter_path: Path | None = None
    use_filters: bool = False
    extraction_defaults: ExtractionDefaultsConfig = field(
        default_factory=ExtractionDefaultsConfig
    )
    extraction_limits: ExtractionLimitsConfig = field(
        default_factory=ExtractionLimitsConfig
    )


@dataclass
class ServerConfig:
    """Listen address of the HTTP service."""

    host: str = "0.0.0.0"
    port: int = 3000


class Config:
    """Main configuration manager.

    Values come from the optional JSON config file; ``FULLTEXTFEED_*``
    environment variables take precedence over the file.
    """

    def __init__(self, data: dict[str, Any] | None = None):
        """Build configuration from parsed config file contents."""
        data = data or {}
        filters = data.get("fulltext_rss_filters", {})
        defaults = filters.get("extraction_defaults", {})
        limits = filters.get("extraction_limits", {})
        server = data.get("server", {})

        filter_path = filters.get("filter_path")
        self.fulltext_rss_filters = FullTextFilterConfig(
            filter_path=Path(filter_path) if filter_path else None,
            use_filters=as_bool(filters.get("use_filters", False), "use_filters"),
            extraction_defaults=ExtractionDefaultsConfig(
                max_items=defaults.get("max_items"),
                keep_failed=as_bool(
                    defaults.get("keep_failed", True), "extraction_defaults.keep_failed"
                ),
                keep_original_content=as_bool(
                    defaults.get("keep_original_content", False),
                    "extraction_defaults.keep_original_content",
                ),
            ),
            extraction_limits=ExtractionLimitsConfig(
                max_items=limits.get("max_items"),
            ),
        )
        self.server = ServerConfig(
            host=server.get("host", "0.0.0.0"),
            port=int(server.get("port", 3000)),
        )
        self.http_timeout = int(data.get("http_timeout", 30))

        self._apply_env()
        self.validate()

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from a JSON file plus environment overrides.

        Args:
            path: Config file path; None uses defaults and environment only

        Raises:
            FileNotFoundError: If ``path`` does not exist
            ValueError: If the file is not valid JSON or a value is invalid
        """
        if path is None:
            return cls()

        config_file = Path(path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file: {e}")

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a JSON object")
        return cls(data)

    def _apply_env(self) -> None:
        """Override file values with FULLTEXTFEED_* environment variables."""
        filters = self.fulltext_rss_filters
        defaults = filters.extraction_defaults
        env = {
            key[len(ENV_PREFIX) :]: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

        if "FILTER_PATH" in env:
            filters.filter_path = Path(env["FILTER_PATH"]) if env["FILTER_PATH"] else None
        if "USE_FILTERS" in env:
            filters.use_filters = parse_bool(env["USE_FILTERS"])
        if "MAX_ITEMS" in env:
            defaults.max_items = parse_optional_int(env["MAX_ITEMS"])
        if "KEEP_FAILED" in env:
            defaults.keep_failed = parse_bool(env["KEEP_FAILED"])
        if "KEEP_ORIGINAL_CONTENT" in env:
            defaults.keep_original_content = parse_bool(env["KEEP_ORIGINAL_CONTENT"])
        if "LIMIT_MAX_ITEMS" in env:
            filters.extraction_limits.max_items = parse_optional_int(
                env["LIMIT_MAX_ITEMS"]
            )
        if "HOST" in env:
            self.server.host = env["HOST"]
        if "PORT" in env:
            self.server.port = int(env["PORT"])
        if "HTTP_TIMEOUT" in env:
            self.http_timeout = int(env["HTTP_TIMEOUT"])

    def validate(self) -> None:
        """Check cross-field constraints.

        Raises:
            ValueError: If the configuration is inconsistent
        """
        filters = self.fulltext_rss_filters
        if filters.use_filters and filters.filter_path is None:
            raise ValueError("use_filters requires a filter_path")
        for name, value in (
            ("extraction_defaults.max_items", filters.extraction_defaults.max_items),
            ("extraction_limits.max_items", filters.extraction_limits.max_items),
        ):
            if value is not None and (not isinstance(value, int) or value < 0):
                raise ValueError(f"{name} must be a non-negative integer or null")

    def get_extraction_defaults(self) -> ExtractionPolicy:
        """Get the default extraction policy."""
        defaults = self.fulltext_rss_filters.extraction_defaults
        return ExtractionPolicy(
            max_items=defaults.max_items,
            keep_failed=defaults.keep_failed,
            keep_original_content=defaults.keep_original_content,
        )

    def get_extraction_limits(self) -> ExtractionLimits:
        """Get the extraction limits."""
        return ExtractionLimits(
            max_items=self.fulltext_rss_filters.extraction_limits.max_items
        )

    def get_rules_dir(self) -> Path | None:
        """Get the site rules directory, or None if site rules are disabled."""
        filters = self.fulltext_rss_filters
        return filters.filter_path if filters.use_filters else None
