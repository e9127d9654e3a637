"""HTTP service for the full-text feed proxy."""

import html
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Literal
from urllib.parse import urlencode

import requests
import uvicorn
from fastapi import FastAPI, Query
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from .config import Config
from .errors import FeedError
from .extractor import ArticleExtractor, Extractor, SiteRules, create_session
from .logging_config import create_execution_logger
from .models import ExtractionOverrides
from .policy import resolve_policy
from .rss import FeedProcessor

TriState = Literal["default", "true", "false"]

FORM_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Full-text feed</title></head>
<body>
<h1>Full-text feed</h1>
<form method="get" action="/">
  <p><label>Feed URL <input type="url" name="url" size="60" required></label></p>
  <p><label>Max items <input type="number" name="max_items" min="0" placeholder="{max_items}"></label></p>
  <p><label>Keep failed items
    <select name="keep_failed">
      <option value="default">Default ({keep_failed})</option>
      <option value="true">Yes</option>
      <option value="false">No</option>
    </select></label></p>
  <p><label>Keep original content
    <select name="keep_original_content">
      <option value="default">Default ({keep_original_content})</option>
      <option value="true">Yes</option>
      <option value="false">No</option>
    </select></label></p>
  <p><button type="submit">Make full-text feed</button></p>
</form>
</body>
</html>
"""


def build_extractor(
    config: Config, session: requests.Session | None = None
) -> ArticleExtractor:
    """Create the process-wide extraction capability from configuration."""
    rules_dir = config.get_rules_dir()
    return ArticleExtractor(
        rules=SiteRules(rules_dir) if rules_dir else None,
        timeout=config.http_timeout,
        session=session,
        execution_id="server",
    )


def render_form(config: Config) -> str:
    defaults = config.get_extraction_defaults()
    limits = config.get_extraction_limits()
    max_items = defaults.max_items if defaults.max_items is not None else "all"
    if limits.max_items is not None:
        max_items = f"{max_items}, at most {limits.max_items}"
    return FORM_TEMPLATE.format(
        max_items=html.escape(str(max_items)),
        keep_failed="yes" if defaults.keep_failed else "no",
        keep_original_content="yes" if defaults.keep_original_content else "no",
    )


def create_app(config: Config, extractor: Extractor | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Loaded configuration
        extractor: Extraction capability; built from ``config`` if omitted
    """
    # One connection pool for feed and article downloads of all requests
    session = create_session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        session.close()

    app = FastAPI(title="fulltextfeed", lifespan=lifespan)
    app.state.config = config
    app.state.session = session
    app.state.extractor = extractor or build_extractor(config, session)
    # Process-wide and read-only after start-up
    defaults = config.get_extraction_defaults()
    limits = config.get_extraction_limits()

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.get("/", response_class=HTMLResponse)
    async def index(
        url: str | None = None,
        max_items: str = "",
        keep_failed: TriState = "default",
        keep_original_content: TriState = "default",
    ):
        """Render the form, or redirect a submitted form to the feed API."""
        if not url:
            return HTMLResponse(render_form(config))

        params = {"url": url}
        if max_items.strip():
            params["max_items"] = max_items.strip()
        if keep_failed != "default":
            params["keep_failed"] = keep_failed
        if keep_original_content != "default":
            params["keep_original_content"] = keep_original_content
        return RedirectResponse(
            f"/makefulltextfeed?{urlencode(params)}", status_code=303
        )

    @app.get("/makefulltextfeed")
    async def makefulltextfeed(
        url: str,
        max_items: int | None = Query(None, ge=0),
        keep_failed: bool | None = None,
        keep_original_content: bool | None = None,
    ) -> Response:
        """Return the full-text version of the feed at ``url``."""
        execution_id = f"req_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
        logger = create_execution_logger("webserver", execution_id)
        logger.info("makefulltextfeed request", feed_url=url)

        policy = resolve_policy(
            defaults,
            ExtractionOverrides(
                max_items=max_items,
                keep_failed=keep_failed,
                keep_original_content=keep_original_content,
            ),
            limits,
        )
        processor = FeedProcessor(
            app.state.extractor,
            timeout=config.http_timeout,
            session=session,
            execution_id=execution_id,
        )

        try:
            document = await processor.get_fulltext_feed(url, policy)
        except FeedError as e:
            logger.info(f"Failed to extract feed {url}: {e}", feed_url=url)
            return PlainTextResponse(str(e), status_code=400)

        return Response(
            content=document.serialize(),
            media_type=f"{document.mime_type}; charset=UTF-8",
        )

    return app


def serve(config: Config) -> None:
    """Run the HTTP service until interrupted."""
    app = create_app(config)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,
    )
