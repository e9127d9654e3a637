"""Feed documents: a uniform view over parsed RSS and Atom feeds.

A ``FeedDocument`` wraps the parsed XML tree of a feed. Items are the
tree's own ``item``/``entry`` elements; the orchestrator reads them through
the document, builds rewritten copies and puts them back in place with
``replace_item``. Anything the engine does not rewrite, including elements
between items, is serialized exactly as it was parsed.
"""

import copy
import re
from abc import ABC, abstractmethod

from lxml import etree

from .errors import MalformedFeedError
from .models import FeedType
from .sniffer import detect_feed_type

CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"

# Characters lxml refuses in text nodes
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        strip_cdata=False,
        huge_tree=True,
    )


def _inner_xml(element: etree._Element) -> str:
    """Return an element's text followed by its serialized children."""
    return (element.text or "") + "".join(
        etree.tostring(child, encoding="unicode") for child in element
    )


def _set_text(element: etree._Element, text: str) -> None:
    text = _INVALID_XML_CHARS.sub("", text)
    # CDATA cannot contain its own terminator
    element.text = etree.CDATA(text) if "]]>" not in text else text


class FeedDocument(ABC):
    """A parsed feed whose item bodies can be rewritten."""

    mime_type: str = "application/xml"
    feed_type: FeedType

    def __init__(self, tree: etree._ElementTree):
        self.tree = tree
        self.root = tree.getroot()
        self.namespace = etree.QName(self.root).namespace

    @classmethod
    def parse(cls, content: bytes) -> "FeedDocument":
        """Fully parse ``content`` into this document variant.

        Raises:
            MalformedFeedError: If the document cannot be parsed
        """
        try:
            root = etree.fromstring(content, _xml_parser())
        except etree.XMLSyntaxError as e:
            raise MalformedFeedError(
                f"Failed to parse {cls.feed_type.value} feed: {e}"
            ) from e
        return cls(root.getroottree())

    def _tag(self, name: str, namespace: str | None = None) -> str:
        namespace = namespace or self.namespace
        return f"{{{namespace}}}{name}" if namespace else name

    @property
    @abstractmethod
    def item_parent(self) -> etree._Element:
        """Element whose children are the feed's items."""

    @property
    @abstractmethod
    def item_tag(self) -> str:
        """Qualified tag name of an item."""

    @property
    def items(self) -> list[etree._Element]:
        return self.item_parent.findall(self.item_tag)

    def set_items(self, items: list[etree._Element]) -> None:
        """Replace the item collection.

        New items take the position of the first original item, so channel
        metadata keeps its place in the document.
        """
        parent = self.item_parent
        old_items = self.items
        index = parent.index(old_items[0]) if old_items else len(parent)
        for item in old_items:
            parent.remove(item)
        for offset, item in enumerate(items):
            parent.insert(index + offset, item)

    def replace_item(
        self, old: etree._Element, new: etree._Element | None
    ) -> None:
        """Put ``new`` in the place of item ``old``; None removes ``old``.

        Siblings of ``old``, items or not, keep their positions.
        """
        if new is old:
            return
        parent = old.getparent()
        if new is None:
            parent.remove(old)
        else:
            parent.replace(old, new)

    @abstractmethod
    def candidate_url(self, item: etree._Element) -> str | None:
        """Return the article URL for ``item``, or None if it has none."""

    @abstractmethod
    def body(self, item: etree._Element) -> str:
        """Return the current content (or summary) text of ``item``."""

    @abstractmethod
    def with_body(self, item: etree._Element, text: str) -> etree._Element:
        """Return a copy of ``item`` whose body is ``text``."""

    def serialize(self) -> str:
        return etree.tostring(
            self.tree, xml_declaration=True, encoding="UTF-8"
        ).decode("utf-8")

    def __str__(self) -> str:
        return self.serialize()


class RssChannel(FeedDocument):
    """RSS 2.0 (``<rss>``) or RSS 1.0 / RDF (``<rdf:RDF>``) document."""

    mime_type = "text/xml"
    feed_type = FeedType.RSS

    def __init__(self, tree: etree._ElementTree):
        super().__init__(tree)
        self.channel = next(
            (
                child
                for child in self.root
                if isinstance(child.tag, str)
                and etree.QName(child).localname == "channel"
            ),
            None,
        )
        if self.channel is None:
            raise MalformedFeedError("RSS document has no channel element")
        # RSS 1.0 puts channel and items in its own namespace, RSS 2.0 in none
        self.namespace = etree.QName(self.channel).namespace
        self.is_rdf = etree.QName(self.root).localname == "RDF"

    @property
    def item_parent(self) -> etree._Element:
        # RSS 1.0 items are siblings of the channel, RSS 2.0 items its children
        return self.root if self.is_rdf else self.channel

    @property
    def item_tag(self) -> str:
        return self._tag("item")

    def candidate_url(self, item: etree._Element) -> str | None:
        link = item.find(self._tag("link"))
        if link is None or not (link.text or "").strip():
            return None
        return link.text.strip()

    def body(self, item: etree._Element) -> str:
        content = item.find(self._tag("encoded", CONTENT_NS))
        if content is not None:
            return _inner_xml(content)
        description = item.find(self._tag("description"))
        if description is not None:
            return _inner_xml(description)
        return ""

    def with_body(self, item: etree._Element, text: str) -> etree._Element:
        new_item = copy.deepcopy(item)
        content = new_item.find(self._tag("encoded", CONTENT_NS))
        if content is None:
            nsmap = None
            if CONTENT_NS not in new_item.nsmap.values():
                nsmap = {"content": CONTENT_NS}
            content = etree.SubElement(
                new_item, self._tag("encoded", CONTENT_NS), nsmap=nsmap
            )
        for child in list(content):
            content.remove(child)
        _set_text(content, text)
        return new_item


class AtomFeed(FeedDocument):
    """Atom (``<feed>``) document."""

    mime_type = "application/atom+xml"
    feed_type = FeedType.ATOM

    @property
    def item_parent(self) -> etree._Element:
        return self.root

    @property
    def item_tag(self) -> str:
        return self._tag("entry")

    def candidate_url(self, item: etree._Element) -> str | None:
        for link in item.findall(self._tag("link")):
            # Atom: a link without rel is an alternate link
            if link.get("rel", "alternate") == "alternate":
                href = (link.get("href") or "").strip()
                return href or None
        return None

    def body(self, item: etree._Element) -> str:
        content = item.find(self._tag("content"))
        if content is not None:
            return _inner_xml(content)
        summary = item.find(self._tag("summary"))
        if summary is not None:
            return _inner_xml(summary)
        return ""

    def with_body(self, item: etree._Element, text: str) -> etree._Element:
        new_item = copy.deepcopy(item)
        for summary in new_item.findall(self._tag("summary")):
            new_item.remove(summary)

        content = new_item.find(self._tag("content"))
        if content is None:
            content = etree.SubElement(new_item, self._tag("content"))
        else:
            tail = content.tail
            content.clear()
            content.tail = tail
        content.set("type", "html")
        _set_text(content, text)
        return new_item


DOCUMENT_TYPES: dict[FeedType, type[FeedDocument]] = {
    FeedType.RSS: RssChannel,
    FeedType.ATOM: AtomFeed,
}


def parse_feed(content: bytes) -> FeedDocument:
    """Sniff and parse raw feed bytes.

    Raises:
        UnrecognizedFormatError: If the bytes are not a known feed type
        MalformedFeedError: If the feed cannot be fully parsed
    """
    feed_type = detect_feed_type(content)
    return DOCUMENT_TYPES[feed_type].parse(content)
