"""Full-text patching of feed documents."""

import asyncio
from collections import Counter

from lxml import etree

from .errors import ExtractionFailedError, ItemError, NoCandidateUrlError
from .extractor import Extractor
from .feeds import FeedDocument
from .logging_config import create_execution_logger
from .models import ExtractionPolicy

EXTRACTED = "extracted"
KEPT = "kept_failed"
DROPPED = "dropped_failed"


class PatchOrchestrator:
    """Rewrites feed items with full-text article content."""

    def __init__(self, extractor: Extractor, execution_id: str | None = None):
        """Initialize the orchestrator.

        Args:
            extractor: Extraction capability shared by all items
            execution_id: Execution ID for logging context
        """
        self.extractor = extractor
        self.logger = create_execution_logger("orchestrator", execution_id)

    async def patch(
        self, document: FeedDocument, policy: ExtractionPolicy
    ) -> FeedDocument:
        """Replace item bodies of ``document`` with extracted articles.

        Only the first ``policy.max_items`` items are eligible; they are
        processed concurrently and either rewritten, kept unchanged or
        dropped. Items past the cap are passed through untouched. Item
        order is preserved. Item failures never propagate.

        Args:
            document: Feed to patch; it is modified in place
            policy: Effective extraction policy

        Returns:
            The patched document
        """
        items = document.items
        count = len(items)
        if policy.max_items is not None:
            count = min(policy.max_items, count)
        eligible = items[:count]

        self.logger.debug(f"Patching {len(eligible)} of {len(items)} items")

        # gather() returns results in argument order, whatever the completion order
        results = await asyncio.gather(
            *(self._patch_item(document, item, policy) for item in eligible)
        )

        # Only eligible slots change; the tail and non-item siblings stay put
        for old, (_action, new) in zip(eligible, results):
            document.replace_item(old, new)

        actions = Counter(action for action, _item in results)
        self.logger.log_metrics(
            {
                "items_total": len(items),
                "items_eligible": len(eligible),
                "items_extracted": actions[EXTRACTED],
                "items_kept_failed": actions[KEPT],
                "items_dropped": actions[DROPPED],
                "items_output": len(document.items),
            }
        )
        return document

    async def _patch_item(
        self, document: FeedDocument, item: etree._Element, policy: ExtractionPolicy
    ) -> tuple[str, etree._Element | None]:
        url = document.candidate_url(item)
        try:
            if url is None:
                raise NoCandidateUrlError("Item has no article link")
            article = await self._extract(url)
        except ItemError as e:
            self.logger.debug(f"Item error: {e}", item_url=url)
            if policy.keep_failed:
                self.logger.log_item_processing(url, KEPT, success=False)
                return KEPT, item
            self.logger.log_item_processing(url, DROPPED, success=False)
            return DROPPED, None

        body = article
        if policy.keep_original_content:
            body = document.body(item) + article

        self.logger.log_item_processing(url, EXTRACTED)
        return EXTRACTED, document.with_body(item, body)

    async def _extract(self, url: str) -> str:
        try:
            return await self.extractor.extract(url)
        except ExtractionFailedError:
            raise
        except Exception as e:
            # Failure reasons of the capability are opaque to the engine
            raise ExtractionFailedError(f"Extraction failed for {url}: {e}") from e


async def patch_feed(
    document: FeedDocument,
    extractor: Extractor,
    policy: ExtractionPolicy,
    execution_id: str | None = None,
) -> FeedDocument:
    """Patch ``document`` with full-text content; see PatchOrchestrator.patch."""
    return await PatchOrchestrator(extractor, execution_id).patch(document, policy)
