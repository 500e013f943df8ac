"""Web page fetching and HTML-to-text extraction."""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from sitebot.utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; SiteBot/1.0; +https://sitebot.dev/bot)"
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
NON_CONTENT_TAGS = ["script", "style", "noscript", "template", "svg", "iframe"]
BOILERPLATE_TAGS = ["nav", "footer", "header", "aside"]
_WHITESPACE = re.compile(r"\s+")


class ScrapeError(UpstreamServiceError):
    service = "scraper"


@dataclass
class Section:
    heading: str
    content: str
    level: int


@dataclass
class ScrapedPage:
    url: str
    title: str
    content: str
    sections: list[Section] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    links: list[str] = field(default_factory=list)
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _meta(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    return (tag.get("content") or "").strip() if tag else ""


def extract_metadata(soup: BeautifulSoup) -> dict:
    keywords = _meta(soup, name="keywords")
    return {
        "description": _meta(soup, name="description") or _meta(soup, property="og:description"),
        "keywords": [k.strip() for k in keywords.split(",") if k.strip()],
        "author": _meta(soup, name="author"),
        "published_date": _meta(soup, property="article:published_time"),
        "og_title": _meta(soup, property="og:title"),
    }


def extract_sections(soup: BeautifulSoup) -> list[Section]:
    """Each heading with the text of its following siblings, up to the next heading."""
    sections = []
    for heading in soup.find_all(HEADING_TAGS):
        heading_text = collapse_whitespace(heading.get_text(" "))
        if not heading_text:
            continue
        parts = []
        for sibling in heading.find_next_siblings():
            if sibling.name in HEADING_TAGS:
                break
            parts.append(sibling.get_text(" "))
        sections.append(Section(heading=heading_text, content=collapse_whitespace(" ".join(parts)), level=int(heading.name[1])))
    return sections


def extract_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Absolute same-host http(s) links, fragments removed, first occurrence order."""
    host = urlparse(base_url).netloc
    seen: dict[str, None] = {}
    for anchor in soup.find_all("a", href=True):
        link, _ = urldefrag(urljoin(base_url, anchor["href"]))
        if is_valid_url(link) and urlparse(link).netloc == host:
            seen.setdefault(link, None)
    return list(seen)


def parse_html(html: str, url: str) -> ScrapedPage:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NON_CONTENT_TAGS):
        tag.decompose()

    title_tag = soup.find("title")
    first_h1 = soup.find("h1")
    title = (
        (title_tag.get_text().strip() if title_tag else "")
        or (collapse_whitespace(first_h1.get_text(" ")) if first_h1 else "")
        or "Untitled"
    )
    metadata = extract_metadata(soup)
    sections = extract_sections(soup)
    links = extract_links(soup, url)

    for tag in soup.find_all(BOILERPLATE_TAGS):
        tag.decompose()

    content = ""
    for selector in ("article", "main", "body"):
        node = soup.find(selector)
        if node is not None:
            content = collapse_whitespace(node.get_text(" "))
            if content:
                break
    if not content:
        content = collapse_whitespace(soup.get_text(" "))

    return ScrapedPage(url=url, title=title, content=content, sections=sections, metadata=metadata, links=links)


class WebScraper:
    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        concurrency: int = 5,
        backoff_base: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.concurrency = concurrency
        self.backoff_base = backoff_base
        self._client = client

    async def _fetch(self, url: str) -> str:
        headers = {"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"}
        if self._client is not None:
            response = await self._client.get(url, headers=headers, timeout=self.timeout, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, headers=headers)
        if response.status_code >= 400:
            raise ScrapeError(f"Failed to scrape {url}: HTTP error {response.status_code}")
        return response.text

    async def scrape_url(self, url: str) -> ScrapedPage:
        if not is_valid_url(url):
            raise ScrapeError(f"Invalid URL: {url}", status_code=400)
        try:
            html = await self._fetch(url)
        except httpx.HTTPError as e:
            raise ScrapeError(f"Failed to scrape {url}: {e}") from e
        return parse_html(html, url)

    async def scrape_with_retry(self, url: str, retries: int | None = None) -> ScrapedPage:
        """Retry transient failures with exponential backoff (2s, 4s, ... at backoff_base=1)."""
        retries = retries or self.max_retries
        if not is_valid_url(url):
            raise ScrapeError(f"Invalid URL: {url}", status_code=400)
        for attempt in range(1, retries + 1):
            try:
                return await self.scrape_url(url)
            except ScrapeError:
                if attempt == retries:
                    raise
                delay = (2 ** attempt) * self.backoff_base
                logger.warning("Scrape of %s failed (attempt %d/%d), retrying in %.1fs", url, attempt, retries, delay)
                await asyncio.sleep(delay)
        raise ScrapeError(f"Max retries reached for {url}")

    async def scrape_many(self, urls: list[str]) -> list[ScrapedPage]:
        """Scrape concurrently. Failed URLs are logged and left out."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def scrape_one(url: str) -> ScrapedPage | None:
            async with semaphore:
                try:
                    return await self.scrape_with_retry(url)
                except ScrapeError as e:
                    logger.error("Failed to scrape %s: %s", url, e.message)
                    return None

        results = await asyncio.gather(*(scrape_one(url) for url in dict.fromkeys(urls)))
        return [page for page in results if page is not None]

    async def crawl(self, start_url: str, max_depth: int = 2, max_pages: int = 50) -> list[ScrapedPage]:
        """Breadth-first crawl of same-host links from `start_url`."""
        pages: list[ScrapedPage] = []
        seen = {start_url}
        frontier = [start_url]

        for depth in range(max_depth + 1):
            if not frontier or len(pages) >= max_pages:
                break
            batch = frontier[: max_pages - len(pages)]
            scraped = await self.scrape_many(batch)
            pages.extend(scraped)
            frontier = []
            if depth == max_depth:
                break
            for page in scraped:
                for link in page.links:
                    if link not in seen:
                        seen.add(link)
                        frontier.append(link)

        logger.info("Crawled %d pages from %s", len(pages), start_url)
        return pages[:max_pages]
