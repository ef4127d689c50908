import pytest

from webextract.config import AIConfig, ExtractionSettings
from webextract.core import ExtractionRunner, crawl_candidate, same_domain
from webextract.exceptions import PageLoadError
from webextract.models import Intent

from conftest import ARTICLE_HTML, PRICING_HTML, make_page

PAGES = {
    "https://example.com/pricing": PRICING_HTML,
    "https://example.com/blog/caching": ARTICLE_HTML,
}


async def fake_loader(url):
    if url not in PAGES:
        raise PageLoadError(f"Navigation failed: {url}", url=url)
    return make_page(PAGES[url], url)


def _settings(**kwargs):
    kwargs.setdefault("use_browser", False)
    kwargs.setdefault("max_concurrent", 2)
    return ExtractionSettings(**kwargs)


@pytest.mark.asyncio
async def test_each_url_succeeds_or_fails_on_its_own():
    runner = ExtractionRunner(settings=_settings(), loader=fake_loader)

    results = await runner.run(
        ["example.com/pricing", "https://example.com/missing", "https://example.com/blog/caching"],
        "Get all pricing information",
        verbose=False,
    )

    assert [r.url for r in results] == [
        "https://example.com/pricing",
        "https://example.com/missing",
        "https://example.com/blog/caching",
    ]
    assert [r.status for r in results] == ["success", "failed", "success"]
    assert results[0].data.tables
    assert results[1].error == "Navigation failed: https://example.com/missing"
    assert results[1].instruction == "Get all pricing information"
    assert results[1].data.present() == []


@pytest.mark.asyncio
async def test_summary_flow_with_ai(fake_client):
    client = fake_client("Caching keeps results close.")
    runner = ExtractionRunner(
        ai_config=AIConfig(provider="groq", api_key="x"),
        settings=_settings(ai_context_chars=2000),
        loader=fake_loader,
        client=client,
    )

    result = await runner.extract("https://example.com/blog/caching", "Give me a tldr", fake_loader)

    assert result.intent == Intent.EXTRACT_SUMMARY
    assert result.data.text_content.startswith("Caching keeps a copy")
    assert result.ai_processing.response == "Caching keeps results close."
    assert result.ai_processing.task == "extract_summary"
    # fast-path classification, so only the post-processing call
    client.complete.assert_awaited_once()


@pytest.mark.asyncio
async def test_without_ai_config_no_ai_processing():
    runner = ExtractionRunner(settings=_settings(), loader=fake_loader)
    result = await runner.extract("https://example.com/blog/caching", "Give me a tldr", fake_loader)

    assert result.ok
    assert result.ai_processing is None


@pytest.mark.asyncio
async def test_fast_path_cutoff_comes_from_settings(fake_client):
    client = fake_client('{"intent": "extract_tables", "targets": ["tables"]}')
    runner = ExtractionRunner(
        ai_config=AIConfig(provider="groq", api_key="x"),
        settings=_settings(fast_path_confidence=0.99),
        loader=fake_loader,
        client=client,
    )

    result = await runner.extract("https://example.com/pricing", "Get all pricing information", fake_loader)

    assert result.intent == Intent.EXTRACT_TABLES
    assert result.data.tables[0]["headers"] == ["Plan", "Price"]
    assert result.data.pricing is None


SITE = {
    "https://example.com/": """
        <html><head><title>Home</title></head><body>
          <a href="/a">Alpha</a>
          <a href="/b">Beta</a>
          <a href="/a#top">Alpha again</a>
          <a href="https://other.com/x">Other site</a>
          <a href="mailto:hi@example.com">Mail us</a>
          <a href="https://docs.example.com/d">Docs</a>
          <a href="/missing">Missing</a>
        </body></html>
    """,
    "https://example.com/a": """
        <html><head><title>Alpha</title></head><body>
          <p>Alpha page.</p>
          <a href="/c">Gamma</a>
          <a href="/">Home</a>
        </body></html>
    """,
    "https://example.com/b": "<html><head><title>Beta</title></head><body><p>Beta page.</p></body></html>",
    "https://example.com/c": "<html><head><title>Gamma</title></head><body><p>Gamma page.</p></body></html>",
    "https://docs.example.com/d": "<html><head><title>Docs</title></head><body><p>Docs page.</p></body></html>",
    "https://other.com/x": "<html><head><title>Other</title></head><body><p>Elsewhere.</p></body></html>",
}


class SiteLoader:
    def __init__(self):
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        if url not in SITE:
            raise PageLoadError(f"Navigation failed: {url}", url=url)
        return make_page(SITE[url], url)


def _crawler(loader):
    return ExtractionRunner(settings=_settings(), loader=loader)


@pytest.mark.asyncio
async def test_crawl_depth_zero_extracts_only_the_start_page():
    loader = SiteLoader()
    results = await _crawler(loader).crawl("https://example.com/", "Extract the main content", max_depth=0, verbose=False)

    assert [r.url for r in results] == ["https://example.com/"]
    assert loader.calls == ["https://example.com/"]


@pytest.mark.asyncio
async def test_crawl_follows_same_domain_links_once():
    loader = SiteLoader()
    results = await _crawler(loader).crawl("https://example.com/", "Extract the main content", max_depth=1, verbose=False)

    assert [r.url for r in results] == [
        "https://example.com/",
        "https://example.com/a",
        "https://example.com/b",
        "https://docs.example.com/d",
        "https://example.com/missing",
    ]
    assert [r.status for r in results] == ["success", "success", "success", "success", "failed"]
    assert loader.calls.count("https://example.com/a") == 1
    assert "https://other.com/x" not in loader.calls


@pytest.mark.asyncio
async def test_crawl_goes_deeper_without_revisiting():
    loader = SiteLoader()
    results = await _crawler(loader).crawl("https://example.com/", "Extract the main content", max_depth=2, verbose=False)

    assert [r.url for r in results][-1] == "https://example.com/c"
    assert len(results) == 6
    assert loader.calls.count("https://example.com/") == 1


@pytest.mark.asyncio
async def test_crawl_respects_page_cap():
    loader = SiteLoader()
    results = await _crawler(loader).crawl(
        "https://example.com/", "Extract the main content", max_depth=3, max_pages=3, verbose=False
    )

    assert [r.url for r in results] == [
        "https://example.com/",
        "https://example.com/a",
        "https://example.com/b",
    ]
    assert len(loader.calls) == 3


@pytest.mark.asyncio
async def test_crawl_any_domain_follows_external_links():
    loader = SiteLoader()
    results = await _crawler(loader).crawl(
        "https://example.com/", "Extract the main content", max_depth=1, same_domain_only=False, verbose=False
    )

    assert "https://other.com/x" in [r.url for r in results]
    assert not any(url.startswith("mailto:") for url in loader.calls)


@pytest.mark.asyncio
async def test_crawl_failed_start_page_ends_the_crawl():
    loader = SiteLoader()
    results = await _crawler(loader).crawl("https://example.com/missing", "Extract the main content", verbose=False)

    assert [r.status for r in results] == ["failed"]
    assert loader.calls == ["https://example.com/missing"]


@pytest.mark.asyncio
async def test_crawl_clamps_limits():
    loader = SiteLoader()
    results = await _crawler(loader).crawl(
        "https://example.com/", "Extract the main content", max_depth=-3, max_pages=0, verbose=False
    )

    assert [r.url for r in results] == ["https://example.com/"]


@pytest.mark.parametrize(
    "href,expected",
    [
        ("https://example.com/a#section", "https://example.com/a"),
        ("https://www.example.com/b", "https://www.example.com/b"),
        ("https://blog.example.com/post", "https://blog.example.com/post"),
        ("https://notexample.com/", None),
        ("https://other.com/", None),
        ("mailto:hi@example.com", None),
        ("ftp://example.com/file", None),
    ],
)
def test_crawl_candidate(href, expected):
    assert crawl_candidate(href, "https://example.com/") == expected


def test_crawl_candidate_any_domain():
    assert crawl_candidate("https://other.com/x#top", "https://example.com/", same_domain_only=False) == "https://other.com/x"
    assert crawl_candidate("javascript:void(0)", "https://example.com/", same_domain_only=False) is None


def test_same_domain_ignores_www_prefix():
    assert same_domain("https://example.com/a", "https://www.example.com/")
    assert not same_domain("https://example.org/a", "https://example.com/")
