"""Feed retrieval and full-text patching for the full-text feed proxy."""

import asyncio
from urllib.parse import urlparse

import requests

from .errors import FeedFetchError
from .extractor import Extractor, create_session
from .feeds import FeedDocument, parse_feed
from .logging_config import create_execution_logger
from .models import ExtractionPolicy
from .orchestrator import PatchOrchestrator


class FeedProcessor:
    """Fetches a feed and turns it into a full-text feed."""

    def __init__(
        self,
        extractor: Extractor,
        timeout: int = 30,
        session: requests.Session | None = None,
        execution_id: str | None = None,
    ):
        """Initialize FeedProcessor with configuration.

        Args:
            extractor: Extraction capability used for article content
            timeout: HTTP request timeout in seconds
            session: HTTP session used for feed downloads
            execution_id: Execution ID for logging context
        """
        self.extractor = extractor
        self.timeout = timeout
        self.execution_id = execution_id
        self.logger = create_execution_logger("feed_processor", execution_id)
        self.session = session or create_session()

    def fetch_feed(self, feed_url: str) -> bytes:
        """Download the raw feed document.

        Args:
            feed_url: URL of the RSS/Atom feed

        Returns:
            The response body

        Raises:
            FeedFetchError: If the URL is not http(s) or the download fails
        """
        parsed_url = urlparse(feed_url)
        if parsed_url.scheme not in ("http", "https") or not parsed_url.netloc:
            error_msg = f"Feed URL must use HTTP or HTTPS: {feed_url}"
            self.logger.error(error_msg, feed_url=feed_url, scheme=parsed_url.scheme)
            raise FeedFetchError(error_msg)

        try:
            self.logger.info("Downloading feed content", feed_url=feed_url)
            response = self.session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
            self.logger.info(
                "Feed downloaded successfully",
                feed_url=feed_url,
                status_code=response.status_code,
                content_length=len(response.content),
            )
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            raise FeedFetchError(f"Failed to download feed {feed_url}: {e}") from e

        return response.content

    async def get_feed(self, feed_url: str) -> FeedDocument:
        """Fetch ``feed_url`` and parse it into a patchable document."""
        content = await asyncio.to_thread(self.fetch_feed, feed_url)
        document = parse_feed(content)
        self.logger.debug(
            f"Determined feed type: {document.feed_type.value}", feed_url=feed_url
        )
        return document

    async def get_fulltext_feed(
        self, feed_url: str, policy: ExtractionPolicy
    ) -> FeedDocument:
        """Fetch a feed and patch its items with full-text content.

        Args:
            feed_url: URL of the RSS/Atom feed
            policy: Effective extraction policy

        Returns:
            The patched feed document

        Raises:
            FeedError: If the feed cannot be fetched, recognized or parsed
        """
        self.logger.log_execution_start(feed_url=feed_url)
        document = await self.get_feed(feed_url)
        orchestrator = PatchOrchestrator(self.extractor, self.execution_id)
        await orchestrator.patch(document, policy)
        self.logger.log_execution_end(success=True, feed_url=feed_url)
        return document
