import json
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from selectolax.parser import HTMLParser

from ..page import PageSnapshot


def json_ld(tree: HTMLParser) -> List[Any]:
    """Parsed JSON-LD blocks; malformed blocks are skipped."""
    blocks = []
    for script in tree.css('script[type="application/ld+json"]'):
        try:
            blocks.append(json.loads(script.text(deep=True) or ""))
        except ValueError:
            continue
    return blocks


def meta_content(tree: HTMLParser, name: str) -> Optional[str]:
    node = tree.css_first(f'meta[name="{name}"], meta[property="{name}"], meta[property="og:{name}"]')
    if node is None:
        return None
    return node.attributes.get("content") or None


def _link_href(tree: HTMLParser, selector: str, page_url: str) -> Optional[str]:
    node = tree.css_first(selector)
    href = node.attributes.get("href") if node is not None else None
    return urljoin(page_url, href) if href else None


def query_metadata(tree: HTMLParser, page_url: str) -> Dict[str, Any]:
    title = tree.css_first("title")
    blocks = json_ld(tree)
    return {
        "title": title.text(strip=True) if title is not None else "",
        "description": meta_content(tree, "description"),
        "keywords": meta_content(tree, "keywords"),
        "author": meta_content(tree, "author"),
        "ogTitle": meta_content(tree, "og:title"),
        "ogDescription": meta_content(tree, "og:description"),
        "ogImage": meta_content(tree, "og:image"),
        "ogType": meta_content(tree, "og:type"),
        "ogUrl": meta_content(tree, "og:url"),
        "ogSiteName": meta_content(tree, "og:site_name"),
        "twitterCard": meta_content(tree, "twitter:card"),
        "twitterTitle": meta_content(tree, "twitter:title"),
        "twitterDescription": meta_content(tree, "twitter:description"),
        "twitterImage": meta_content(tree, "twitter:image"),
        "canonicalUrl": _link_href(tree, 'link[rel="canonical"]', page_url),
        "robots": meta_content(tree, "robots"),
        "viewport": meta_content(tree, "viewport"),
        "publishedTime": meta_content(tree, "article:published_time"),
        "modifiedTime": meta_content(tree, "article:modified_time"),
        "favicon": _link_href(tree, 'link[rel="icon"], link[rel="shortcut icon"]', page_url),
        "jsonLd": blocks or None,
    }


async def extract_metadata(page: PageSnapshot) -> Dict[str, Any]:
    """Page-level metadata; runs for every plan."""
    return await page.evaluate(query_metadata, page.final_url)
