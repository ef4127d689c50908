import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Set
from urllib.parse import urldefrag, urlparse

from loguru import logger
from tqdm.asyncio import tqdm

from .browser import BrowserSession, fetch_snapshot, normalize_url
from .config import AIConfig, ExtractionSettings, get_settings
from .executor import execute_extraction_plan
from .extractors import extract_links
from .instructions import parse_instruction
from .models import ExtractionResult
from .page import PageSnapshot
from .planner import create_extraction_plan
from .postprocess import post_process_with_ai

PageLoader = Callable[[str], Awaitable[PageSnapshot]]

MAX_CRAWL_DEPTH = 5
MAX_CRAWL_PAGES = 100


def _site(hostname: str) -> str:
    hostname = (hostname or "").lower()
    return hostname[4:] if hostname.startswith("www.") else hostname


def same_domain(url: str, start_url: str) -> bool:
    """True when ``url`` is on the start URL's domain or one of its subdomains."""
    host = _site(urlparse(url).hostname)
    base = _site(urlparse(start_url).hostname)
    return bool(base) and (host == base or host.endswith("." + base))


def crawl_candidate(href: str, start_url: str, same_domain_only: bool = True) -> Optional[str]:
    """Fragment-free http(s) URL worth following, or None."""
    url, _ = urldefrag(href)
    if urlparse(url).scheme not in ("http", "https"):
        return None
    if same_domain_only and not same_domain(url, start_url):
        return None
    return url


class ExtractionRunner:
    """Main orchestrator: instruction -> plan -> extraction -> AI pass, per URL."""

    def __init__(
        self,
        ai_config: Optional[AIConfig] = None,
        settings: Optional[ExtractionSettings] = None,
        loader: Optional[PageLoader] = None,
        client=None,
    ):
        self.ai_config = ai_config if ai_config is not None else AIConfig()
        self.settings = settings or get_settings()
        self.loader = loader
        self.client = client

    async def extract(self, url: str, instruction: str, loader: PageLoader) -> ExtractionResult:
        """Run the full pipeline for one URL. Plan-level errors propagate."""
        parsed = await parse_instruction(
            instruction,
            url,
            self.ai_config,
            client=self.client,
            threshold=self.settings.fast_path_confidence,
        )
        plan = create_extraction_plan(parsed, url)

        page = await loader(url)
        result = await execute_extraction_plan(page, plan, self.ai_config)

        return await post_process_with_ai(
            result,
            plan,
            self.ai_config,
            client=self.client,
            context_chars=self.settings.ai_context_chars,
        )

    async def run(self, urls: List[str], instruction: str, verbose: bool = True) -> List[ExtractionResult]:
        """Extract every URL; each one succeeds or fails on its own."""
        urls = [normalize_url(url) for url in urls]
        async with self._page_loader() as loader:
            return await self._run_batches(urls, instruction, loader, verbose)

    async def crawl(
        self,
        start_url: str,
        instruction: str,
        max_depth: int = 1,
        max_pages: int = 10,
        same_domain_only: bool = True,
        verbose: bool = True,
    ) -> List[ExtractionResult]:
        """
        Extract ``start_url`` and the pages it links to, level by level.

        Args:
            start_url: Page to start from
            instruction: Extraction instruction applied to every page
            max_depth: Link levels to follow (0 = only the start page, at most 5)
            max_pages: Cap on extracted pages (at most 100)
            same_domain_only: Only follow links on the start URL's domain
            verbose: Show a progress bar per level

        Returns:
            One result per visited page, in visiting order
        """
        start_url = normalize_url(start_url)
        max_depth = max(0, min(max_depth, MAX_CRAWL_DEPTH))
        max_pages = max(1, min(max_pages, MAX_CRAWL_PAGES))

        visited: Set[str] = {start_url}
        frontier = [start_url]
        results: List[ExtractionResult] = []
        depth = 0

        async with self._page_loader() as loader:
            snapshots: Dict[str, PageSnapshot] = {}

            async def load_and_keep(url: str) -> PageSnapshot:
                page = await loader(url)
                snapshots[url] = page
                return page

            while frontier and len(results) < max_pages:
                level = frontier[:max_pages - len(results)]
                logger.info(f"Crawl depth {depth}: {len(level)} page(s)")

                level_results = await self._run_batches(level, instruction, load_and_keep, verbose)
                results.extend(level_results)

                if depth >= max_depth or len(results) >= max_pages:
                    break

                frontier = []
                for result in level_results:
                    page = snapshots.get(result.url)
                    if page is None or not result.ok:
                        continue
                    for link in await extract_links(page):
                        url = crawl_candidate(link["url"], start_url, same_domain_only)
                        if url and url not in visited:
                            visited.add(url)
                            frontier.append(url)
                snapshots.clear()
                depth += 1

        return results

    @asynccontextmanager
    async def _page_loader(self) -> AsyncIterator[PageLoader]:
        """The injected loader, a browser session, or the plain httpx fetcher."""
        if self.loader is not None:
            yield self.loader
        elif self.settings.use_browser:
            logger.info("Using browser mode for JavaScript rendering...")
            async with BrowserSession(
                headless=self.settings.headless,
                timeout_ms=self.settings.page_timeout_ms,
                settle_ms=self.settings.settle_ms,
            ) as browser:
                yield browser.snapshot
        else:
            yield fetch_snapshot

    async def _run_batches(
        self,
        urls: List[str],
        instruction: str,
        loader: PageLoader,
        verbose: bool,
    ) -> List[ExtractionResult]:
        results: List[ExtractionResult] = []
        batch_size = self.settings.max_concurrent
        progress = tqdm(total=len(urls), desc="Extracting", unit="page", disable=not verbose)

        try:
            for start in range(0, len(urls), batch_size):
                batch = urls[start:start + batch_size]
                outcomes = await asyncio.gather(
                    *(self.extract(url, instruction, loader) for url in batch),
                    return_exceptions=True,
                )

                for url, outcome in zip(batch, outcomes):
                    if isinstance(outcome, Exception):
                        logger.error(f"Failed: {url} - {outcome}")
                        outcome = ExtractionResult.failed(url, instruction, outcome)
                    else:
                        logger.success(f"Extracted: {url} ({', '.join(outcome.data.present())})")
                    results.append(outcome)
                    progress.update(1)
        finally:
            progress.close()

        return results


async def load_page(url: str, settings: Optional[ExtractionSettings] = None) -> PageSnapshot:
    """Load one page with the configured loader."""
    settings = settings or get_settings()
    url = normalize_url(url)
    if settings.use_browser:
        async with BrowserSession(
            headless=settings.headless,
            timeout_ms=settings.page_timeout_ms,
            settle_ms=settings.settle_ms,
        ) as browser:
            return await browser.snapshot(url, scroll_for_lazy_load=True)
    return await fetch_snapshot(url)
