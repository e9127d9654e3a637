"""Property-based tests for feed format detection."""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fulltextfeed.errors import UnrecognizedFormatError
from fulltextfeed.models import FeedType
from fulltextfeed.sniffer import detect_feed_type

RSS_DOCUMENT = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<!-- feed -->\n"
    '<rss version="2.0"><channel><title>News</title>'
    "<item><title>One</title><link>https://example.com/1</link></item>"
    "</channel></rss>"
)
RSS_ROOT_END = RSS_DOCUMENT.index('<rss version="2.0">') + len('<rss version="2.0">')


class TestDetectFeedTypeProperties:
    """Property-based tests for detect_feed_type."""

    @given(
        st.sampled_from(
            [
                ("feed", FeedType.ATOM),
                ("rss", FeedType.RSS),
                ("rdf:RDF", FeedType.RSS),
            ]
        ),
        st.text(alphabet="abcdefghij <>&/", max_size=50),
    )
    def test_known_root_tags_property(self, root, body):
        """
        For any document whose root tag is feed, rss or rdf:RDF, detection
        returns the matching type, whatever follows the root start tag.
        """
        tag, expected = root
        content = f"<{tag}>{body}".encode("utf-8")

        assert detect_feed_type(content) == expected

    @given(
        st.from_regex(r"[a-zA-Z][a-zA-Z0-9]{0,12}", fullmatch=True).filter(
            lambda tag: tag not in ("feed", "rss")
        )
    )
    def test_other_root_tags_property(self, tag):
        """For any other well-formed root tag, detection fails."""
        content = f'<?xml version="1.0"?><{tag}><child/></{tag}>'.encode("utf-8")

        with pytest.raises(UnrecognizedFormatError):
            detect_feed_type(content)

    @given(st.integers(min_value=0, max_value=len(RSS_DOCUMENT)))
    def test_truncation_property(self, cut):
        """
        A truncated feed is recognized exactly when the root start tag made it
        into the truncated bytes.
        """
        content = RSS_DOCUMENT[:cut].encode("utf-8")

        if cut >= RSS_ROOT_END:
            assert detect_feed_type(content) == FeedType.RSS
        else:
            with pytest.raises(UnrecognizedFormatError):
                detect_feed_type(content)

    @given(
        st.dictionaries(
            st.text(min_size=1, max_size=10),
            st.one_of(st.integers(), st.text(max_size=20), st.booleans()),
            max_size=5,
        )
    )
    def test_json_property(self, payload):
        """JSON documents are never recognized as feeds."""
        with pytest.raises(UnrecognizedFormatError):
            detect_feed_type(json.dumps(payload).encode("utf-8"))
