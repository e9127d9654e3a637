"""Error taxonomy for the full-text feed proxy.

Feed-level errors abort a whole request and are reported to the caller.
Item-level errors never leave the orchestrator: they are resolved into
"keep the item unchanged" or "drop the item" by the extraction policy.
"""


class FeedError(Exception):
    """Base class for errors that abort a whole feed request."""


class UnrecognizedFormatError(FeedError):
    """Input is not well-formed XML or its root element is not a known feed."""


class MalformedFeedError(FeedError):
    """Input has a recognized root element but could not be fully parsed."""


class FeedFetchError(FeedError):
    """Retrieving the feed document itself failed."""


class ItemError(Exception):
    """Base class for per-item errors."""


class NoCandidateUrlError(ItemError):
    """Feed item has no usable article link."""


class ExtractionFailedError(ItemError):
    """Extraction capability failed for an article URL."""
