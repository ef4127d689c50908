"""
Pricing, contact and product details from page text, tables and JSON-LD.
"""

import re
from typing import Any, Dict, List

from selectolax.parser import HTMLParser

from ..models import ExtractionPlan
from ..page import PageSnapshot, node_text
from .metadata import json_ld, meta_content

PRICING_SELECTORS = [
    ".pricing",
    ".price",
    ".plan",
    '[class*="pricing"]',
    '[class*="price"]',
    '[data-testid*="price"]',
]

PRICE_RE = re.compile(r"\$\s*\d+(?:,\d{3})*(?:\.\d{2})?")
CURRENCY_RE = re.compile(r"\d+(?:,\d{3})*(?:\.\d{2})?\s*(?:USD|EUR|GBP)", re.IGNORECASE)
EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"(?:\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")

SOCIAL_PATTERNS = {
    "twitter": re.compile(r"twitter\.com/([a-zA-Z0-9_]+)"),
    "linkedin": re.compile(r"linkedin\.com/(?:company|in)/([a-zA-Z0-9-]+)"),
    "github": re.compile(r"github\.com/([a-zA-Z0-9-]+)"),
    "facebook": re.compile(r"facebook\.com/([a-zA-Z0-9.]+)"),
    "instagram": re.compile(r"instagram\.com/([a-zA-Z0-9._]+)"),
}

MAX_PRICING_TEXT = 200


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def _schema_type(data: Any) -> Any:
    return data.get("@type") if isinstance(data, dict) else None


def extract_pricing(tree: HTMLParser) -> List[Dict[str, Any]]:
    pricing = []
    for selector in PRICING_SELECTORS:
        for node in tree.css(selector):
            text = node.text(deep=True, separator=" ")
            prices = PRICE_RE.findall(text) or CURRENCY_RE.findall(text)
            if prices:
                pricing.append({
                    "element": selector,
                    "text": " ".join(text.split())[:MAX_PRICING_TEXT],
                    "prices": prices,
                })

    for data in json_ld(tree):
        if isinstance(data, dict) and (data.get("offers") or _schema_type(data) in ("Offer", "Product")):
            pricing.append({"type": "structured-data", "data": data})
    return pricing


def extract_contact(tree: HTMLParser) -> Dict[str, Any]:
    contact: Dict[str, Any] = {"emails": [], "phones": [], "addresses": [], "social": []}
    body_text = node_text(tree.body, strip=False)

    contact["emails"] = _unique(EMAIL_RE.findall(body_text))
    contact["phones"] = _unique(m.strip() for m in PHONE_RE.findall(body_text))

    for link in tree.css("a[href]"):
        href = link.attributes.get("href") or ""
        for platform, pattern in SOCIAL_PATTERNS.items():
            match = pattern.search(href)
            if match:
                contact["social"].append({"platform": platform, "url": href, "handle": match.group(1)})

    for data in json_ld(tree):
        if isinstance(data, dict) and (data.get("contactPoint") or _schema_type(data) == "ContactPoint"):
            contact["structured"] = data
    return contact


def extract_product(tree: HTMLParser) -> Dict[str, Any]:
    h1 = tree.css_first("h1")
    product: Dict[str, Any] = {
        "name": meta_content(tree, "og:title") or (node_text(h1) if h1 is not None else None),
        "description": meta_content(tree, "og:description") or meta_content(tree, "description"),
        "price": None,
        "images": [],
        "specifications": [],
    }

    for data in json_ld(tree):
        if _schema_type(data) != "Product":
            continue
        product["structured"] = data
        product["name"] = product["name"] or data.get("name")
        product["description"] = product["description"] or data.get("description")
        offers = data.get("offers")
        if isinstance(offers, dict):
            product["price"] = offers.get("price") or offers.get("lowPrice")
        image = data.get("image")
        if image:
            product["images"] = image if isinstance(image, list) else [image]

    for row in tree.css("table tr"):
        cells = row.css("td, th")
        if len(cells) == 2:
            product["specifications"].append({"key": node_text(cells[0]), "value": node_text(cells[1])})
    return product


def query_structured(
    tree: HTMLParser,
    include_pricing: bool,
    include_contact: bool,
    include_product: bool,
) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    if include_pricing:
        result["pricing"] = extract_pricing(tree)
    if include_contact:
        result["contact"] = extract_contact(tree)
    if include_product:
        result["product"] = extract_product(tree)
    return result


async def structured_module(page: PageSnapshot, plan: ExtractionPlan) -> Dict[str, Any]:
    """Flagged categories under their own keys, or all three under ``structured``."""
    options = plan.options
    flags = (options.include_pricing, options.include_contact, options.include_product)

    if not any(flags):
        return {"structured": await page.evaluate(query_structured, True, True, True)}

    found = await page.evaluate(query_structured, *flags)
    return {key: found[key] for key in ("pricing", "contact", "product") if key in found}
