"""Property-based tests for feed retrieval."""

from unittest.mock import Mock

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fulltextfeed.errors import FeedFetchError
from fulltextfeed.rss import FeedProcessor


class NeverCalledExtractor:
    async def extract(self, url):
        raise AssertionError("extractor must not be called")


class TestFeedProcessorProperties:
    """Property-based tests for FeedProcessor."""

    @given(
        st.sampled_from(["ftp", "file", "gopher", "mailto", "javascript", "data"]),
        st.from_regex(r"[a-z0-9]{1,20}(\.[a-z]{2,5})?/[a-z0-9/]{0,20}", fullmatch=True),
    )
    def test_http_requirement_property(self, scheme, rest):
        """
        For all feed URLs that are not http(s), the download is refused before
        any request is made.
        """
        session = Mock()
        processor = FeedProcessor(NeverCalledExtractor(), session=session)

        with pytest.raises(FeedFetchError) as exc_info:
            processor.fetch_feed(f"{scheme}://{rest}")

        assert "Feed URL must use HTTP or HTTPS" in str(exc_info.value)
        session.get.assert_not_called()
