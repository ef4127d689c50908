from unittest.mock import AsyncMock

import pytest

from webextract.config import AIConfig, reset_settings
from webextract.llm import Completion
from webextract.page import PageSnapshot

AI_ENV_VARS = [
    "AI_PROVIDER",
    "AI_API_KEY",
    "AI_MODEL",
    "AI_BASE_URL",
    "GROQ_API_KEY",
    "OPENAI_API_KEY",
    "TOGETHER_API_KEY",
    "GEMINI_API_KEY",
    "COHERE_API_KEY",
    "HUGGINGFACE_API_KEY",
    "OLLAMA_URL",
    "OLLAMA_MODEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's AI credentials out of the tests."""
    for name in AI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


class FakeAIClient:
    """Stand-in completion client with an awaitable ``complete`` mock."""

    def __init__(self, content: str = "", error: Exception = None):
        self.complete = AsyncMock(
            return_value=Completion(content=content, provider="fake", model="fake-model"),
            side_effect=error,
        )


@pytest.fixture
def fake_client():
    def _make(content: str = "", error: Exception = None) -> FakeAIClient:
        return FakeAIClient(content=content, error=error)
    return _make


@pytest.fixture
def ai_config():
    return AIConfig(provider="groq", api_key="test-key", retry_base_delay=0)


PRICING_HTML = """
<html>
<head>
  <title>Pricing - Example</title>
  <meta name="description" content="Simple plans for every team">
  <script type="application/ld+json">
    {"@type": "Product", "name": "Example Cloud", "offers": {"@type": "Offer", "price": "29.00"}}
  </script>
</head>
<body>
  <nav><a href="/home">Home</a></nav>
  <main>
    <h1>Plans and pricing</h1>
    <p>Choose the plan that fits your team and upgrade whenever you need.</p>
    <div class="pricing">
      <h2>Pro</h2>
      <span>$29/month</span>
    </div>
    <table>
      <thead><tr><th>Plan</th><th>Price</th></tr></thead>
      <tbody>
        <tr><td>Starter</td><td>$9</td></tr>
        <tr><td>Pro</td><td>$29</td></tr>
      </tbody>
    </table>
  </main>
</body>
</html>
"""

ARTICLE_HTML = """
<html>
<head>
  <title>How Caching Works</title>
  <meta property="og:title" content="How Caching Works">
  <link rel="canonical" href="/blog/caching">
</head>
<body>
  <header><a href="/">Logo</a></header>
  <article>
    <h1 id="intro">How Caching Works</h1>
    <p>Caching keeps a copy of expensive results close to where they are needed.</p>
    <p>Too short.</p>
    <h2>Eviction</h2>
    <p>When the cache is full, an eviction policy decides which entry to drop.</p>
    <ul>
      <li>Least recently used</li>
      <li>Least frequently used</li>
    </ul>
    <pre><code class="language-python">cache = {}
cache["key"] = compute()</code></pre>
    <a href="https://other.example.org/paper">Original paper</a>
    <a href="/blog/memory">Memory hierarchy</a>
    <a href="#top">Back to top</a>
    <a href="javascript:void(0)">Share</a>
    <img src="https://cdn.example.com/diagram.png" alt="Cache diagram" width="640" height="480">
  </article>
  <footer>Copyright</footer>
</body>
</html>
"""

GITHUB_FILE_HTML = """
<html>
<head><title>repo/utils.py at main</title></head>
<body>
  <h1><span itemprop="author"><a href="/octo">octo</a></span> / <strong itemprop="name"><a href="/octo/repo">repo</a></strong></h1>
  <p itemprop="description">A small demo repository</p>
  <strong class="final-path">utils.py</strong>
  <div class="blob-wrapper">
    <table>
      <tr><td class="blob-num">1</td><td class="blob-code">def add(a, b):</td></tr>
      <tr><td class="blob-num">2</td><td class="blob-code">    return a + b</td></tr>
    </table>
  </div>
</body>
</html>
"""


def make_page(html: str, url: str = "https://example.com/page") -> PageSnapshot:
    return PageSnapshot(url=url, html=html)


@pytest.fixture
def pricing_page():
    return make_page(PRICING_HTML, "https://example.com/pricing")


@pytest.fixture
def article_page():
    return make_page(ARTICLE_HTML, "https://example.com/blog/caching")


@pytest.fixture
def github_page():
    return make_page(GITHUB_FILE_HTML, "https://github.com/octo/repo/blob/main/utils.py")
