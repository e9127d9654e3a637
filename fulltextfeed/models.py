"""Data models for the full-text feed proxy."""

from dataclasses import dataclass
from enum import Enum


class FeedType(Enum):
    """Feed family, as determined from the document's root element."""

    ATOM = "atom"
    RSS = "rss"


@dataclass
class ExtractionPolicy:
    """Resolved switches governing one patch operation."""

    max_items: int | None = None  # None means unbounded
    keep_failed: bool = True
    keep_original_content: bool = False


@dataclass
class ExtractionOverrides:
    """Caller-supplied policy values; None means "use the default"."""

    max_items: int | None = None
    keep_failed: bool | None = None
    keep_original_content: bool | None = None


@dataclass(frozen=True)
class ExtractionLimits:
    """Operator-configured ceilings that caller-supplied values never exceed."""

    max_items: int | None = None
