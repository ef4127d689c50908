import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from selectolax.parser import HTMLParser

from ..models import ExtractionPlan
from ..page import PageSnapshot

_BACKGROUND_RE = re.compile(r"url\(['\"]?(.*?)['\"]?\)")


def _int_attr(node, name: str) -> Optional[int]:
    value = (node.attributes.get(name) or "").strip()
    return int(value) if value.isdigit() else None


def _images(tree: HTMLParser, page_url: str) -> List[Dict[str, Any]]:
    images = []
    for index, img in enumerate(tree.css("img")):
        attrs = img.attributes
        src = attrs.get("src") or attrs.get("data-src") or attrs.get("data-lazy-src")
        if not src or src.startswith("data:") or len(src) <= 10:
            continue
        images.append({
            "index": index,
            "src": urljoin(page_url, src),
            "alt": attrs.get("alt") or "",
            "title": attrs.get("title") or "",
            "width": _int_attr(img, "width"),
            "height": _int_attr(img, "height"),
            "loading": attrs.get("loading") or "eager",
        })

    for node in tree.css('[style*="background-image"]'):
        match = _BACKGROUND_RE.search(node.attributes.get("style") or "")
        if match and match.group(1):
            images.append({
                "index": len(images),
                "src": urljoin(page_url, match.group(1)),
                "alt": "",
                "title": "",
                "type": "background",
            })
    return images


def _videos(tree: HTMLParser, page_url: str) -> List[Dict[str, Any]]:
    videos = []
    for index, node in enumerate(tree.css('video, iframe[src*="youtube"], iframe[src*="vimeo"]')):
        attrs = node.attributes
        if node.tag == "video":
            source = node.css_first("source")
            src = attrs.get("src") or (source.attributes.get("src") if source is not None else None)
            videos.append({
                "index": index,
                "type": "html5",
                "src": urljoin(page_url, src) if src else None,
                "poster": attrs.get("poster") or None,
            })
        else:
            src = attrs.get("src") or ""
            videos.append({
                "index": index,
                "type": "embed",
                "src": src,
                "platform": "youtube" if "youtube" in src else "vimeo",
            })
    return videos


def query_media(tree: HTMLParser, page_url: str, include_images: bool = True) -> Dict[str, Any]:
    return {
        "images": _images(tree, page_url) if include_images else [],
        "videos": _videos(tree, page_url),
    }


async def media_module(page: PageSnapshot, plan: ExtractionPlan) -> Dict[str, Any]:
    media = await page.evaluate(query_media, page.final_url, plan.options.include_images)
    return {"images": media["images"], "videos": media["videos"]}
