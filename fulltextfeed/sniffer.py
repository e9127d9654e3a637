"""Feed format detection.

Looks at the root element only: Atom documents start with ``feed``, RSS 2.0
with ``rss`` and RSS 1.0 with ``rdf:RDF``. The root is matched on its name as
written, prefix included, without resolving namespaces. The document is fed
to the parser in small chunks and reading stops at the first start tag, so a
truncated or broken feed fails (or succeeds) without being read in full.
"""

import logging
from xml.parsers import expat

from .errors import UnrecognizedFormatError
from .models import FeedType

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096

ROOT_TAGS = {
    "feed": FeedType.ATOM,
    "rss": FeedType.RSS,
    "rdf:RDF": FeedType.RSS,
}


def detect_feed_type(content: bytes) -> FeedType:
    """Classify raw feed bytes as Atom or RSS.

    Args:
        content: Raw document bytes

    Returns:
        The feed type selected by the root element

    Raises:
        UnrecognizedFormatError: If the input is not well-formed XML up to its
            root element, has no root element, or the root is not a feed
    """
    # No namespace_separator: start tags are reported as written
    parser = expat.ParserCreate()
    root_tags: list[str] = []

    def start_element(name, _attributes):
        root_tags.append(name)

    parser.StartElementHandler = start_element

    error = None
    try:
        for offset in range(0, len(content), CHUNK_SIZE):
            parser.Parse(content[offset : offset + CHUNK_SIZE], False)
            if root_tags:
                return _classify(root_tags[0])
        parser.Parse(b"", True)
    except expat.ExpatError as e:
        error = e

    # Handlers run before a later syntax error in the same chunk is reported
    if root_tags:
        return _classify(root_tags[0])
    if error is not None:
        raise UnrecognizedFormatError(
            f"Not a well-formed XML document: {expat.ErrorString(error.code)}: "
            f"line {error.lineno}, column {error.offset}"
        ) from error
    raise UnrecognizedFormatError("Document has no root element")


def _classify(tag: str) -> FeedType:
    feed_type = ROOT_TAGS.get(tag)
    if feed_type is None:
        logger.debug("Feed starts with tag: %s", tag)
        raise UnrecognizedFormatError(f"Unrecognized root element: {tag}")
    return feed_type
