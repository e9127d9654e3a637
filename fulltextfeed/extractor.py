"""Article extraction: turns an article URL into its main content HTML.

The patch orchestrator only depends on the ``Extractor`` protocol. The
concrete ``ArticleExtractor`` downloads the page with a shared requests
session, applies site rules (Full-Text RSS site-config files) when one
matches the article's host, and falls back to readability otherwise.
"""

import asyncio
import functools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

import lxml.html
import requests
from bs4 import BeautifulSoup
from lxml import etree
from readability import Document

from .errors import ExtractionFailedError
from .logging_config import create_execution_logger

RULE_CACHE_SIZE = 1024

USER_AGENT = "fulltextfeed/1.0 (Full-text RSS proxy)"


def create_session() -> requests.Session:
    """Create the HTTP session shared by feed and article downloads."""
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


class Extractor(Protocol):
    """Extraction capability: article URL in, article HTML out."""

    async def extract(self, url: str) -> str:
        """Return the article body for ``url``; raise on failure."""
        ...


@dataclass
class SiteRule:
    """Extraction directives for one site."""

    body: list[str] = field(default_factory=list)
    strip: list[str] = field(default_factory=list)
    strip_id_or_class: list[str] = field(default_factory=list)
    strip_image_src: list[str] = field(default_factory=list)


def parse_site_rule(text: str) -> SiteRule:
    """Parse a site-config file.

    Lines are ``directive: value``; ``#`` starts a comment line. Directives
    other than body/strip/strip_id_or_class/strip_image_src are ignored.
    """
    rule = SiteRule()
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        directive, value = (part.strip() for part in line.split(":", 1))
        if not value:
            continue
        values = getattr(rule, directive, None)
        if isinstance(values, list):
            values.append(value)
    return rule


class SiteRules:
    """Directory of ``<host>.txt`` site-config files, loaded on demand."""

    def __init__(self, rules_dir: Path, cache_size: int = RULE_CACHE_SIZE):
        self.rules_dir = Path(rules_dir)
        # Bounded: a long-running server sees an open-ended set of hosts
        self._load = functools.lru_cache(maxsize=cache_size)(self._read_rule)

    @staticmethod
    def candidate_names(host: str) -> list[str]:
        """File stems to try for ``host``, most specific first.

        ``www.news.example.com`` tries ``www.news.example.com``,
        ``news.example.com``, then the wildcard files ``.news.example.com``
        and ``.example.com``.
        """
        host = host.lower().rstrip(".")
        names = [host]
        bare = host[4:] if host.startswith("www.") else host
        if bare != host:
            names.append(bare)
        parts = bare.split(".")
        for i in range(len(parts) - 1):
            names.append("." + ".".join(parts[i:]))
        return names

    def lookup(self, host: str) -> SiteRule | None:
        for name in self.candidate_names(host):
            rule = self._load(name)
            if rule is not None:
                return rule
        return None

    def _read_rule(self, name: str) -> SiteRule | None:
        path = self.rules_dir / f"{name}.txt"
        if not path.is_file():
            return None
        return parse_site_rule(path.read_text(encoding="utf-8", errors="replace"))


def clean_article_html(content: str) -> str:
    """Remove script and style elements from extracted HTML."""
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    if not soup.get_text(strip=True) and not soup.find("img"):
        return ""
    return str(soup).strip()


class ArticleExtractor:
    """Extraction capability backed by requests, site rules and readability."""

    def __init__(
        self,
        rules: SiteRules | None = None,
        timeout: int = 30,
        session: requests.Session | None = None,
        execution_id: str | None = None,
    ):
        """Initialize ArticleExtractor.

        Args:
            rules: Site rules to prefer over generic extraction
            timeout: HTTP request timeout in seconds
            session: HTTP session shared by all article fetches
            execution_id: Execution ID for logging context
        """
        self.rules = rules
        self.timeout = timeout
        self.logger = create_execution_logger("extractor", execution_id)
        self.session = session or create_session()

    async def extract(self, url: str) -> str:
        # requests blocks; run it off the event loop
        return await asyncio.to_thread(self.extract_sync, url)

    def extract_sync(self, url: str) -> str:
        """Fetch ``url`` and return the distilled article HTML.

        Raises:
            ExtractionFailedError: If the page cannot be fetched or no
                article content can be found
        """
        parsed_url = urlparse(url)
        if parsed_url.scheme not in ("http", "https") or not parsed_url.netloc:
            raise ExtractionFailedError(f"Unsupported article URL: {url}")

        self.logger.debug("Retrieving fulltext", item_url=url)
        html = self._download(url)

        article = ""
        rule = self.rules.lookup(parsed_url.hostname or "") if self.rules else None
        if rule is not None:
            article = self._apply_rule(html, rule, url)
        if not article:
            article = self._readability(html, url)

        article = clean_article_html(article)
        if not article:
            raise ExtractionFailedError(f"No article content found at {url}")
        return article

    def _download(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExtractionFailedError(f"Failed to download {url}: {e}") from e

        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = response.apparent_encoding
        return response.text

    def _apply_rule(self, html: str, rule: SiteRule, url: str) -> str:
        """Extract the body selected by a site rule, or "" if nothing matches."""
        try:
            tree = lxml.html.document_fromstring(html)
            tree.make_links_absolute(url, resolve_base_href=True)
        except (etree.ParserError, ValueError) as e:
            raise ExtractionFailedError(f"Unparseable page {url}: {e}") from e

        strip_xpaths = list(rule.strip)
        strip_xpaths += [
            f"//*[contains(@class, '{value}') or contains(@id, '{value}')]"
            for value in rule.strip_id_or_class
            if "'" not in value
        ]
        strip_xpaths += [
            f"//img[contains(@src, '{value}')]"
            for value in rule.strip_image_src
            if "'" not in value
        ]
        for xpath in strip_xpaths:
            for element in self._xpath(tree, xpath):
                element.drop_tree()

        for xpath in rule.body:
            matches = self._xpath(tree, xpath)
            if matches:
                return "".join(
                    lxml.html.tostring(element, encoding="unicode")
                    for element in matches
                )

        self.logger.debug("Site rule matched no body", item_url=url)
        return ""

    def _xpath(self, tree: lxml.html.HtmlElement, xpath: str) -> list:
        try:
            result = tree.xpath(xpath)
        except etree.XPathError as e:
            self.logger.warning(f"Invalid site rule XPath {xpath!r}: {e}")
            return []
        if not isinstance(result, list):
            return []
        # Only elements can be stripped or serialized; skip the document root
        return [
            element
            for element in result
            if isinstance(element, lxml.html.HtmlElement)
            and element.getparent() is not None
        ]

    def _readability(self, html: str, url: str) -> str:
        try:
            return Document(html, url=url).summary(html_partial=True)
        except Exception as e:
            raise ExtractionFailedError(f"Readability failed for {url}: {e}") from e
