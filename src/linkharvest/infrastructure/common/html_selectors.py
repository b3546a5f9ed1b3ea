"""CSS-selector-based HTML extraction with fallback chains.

Composable helpers over BeautifulSoup.  Every extraction function accepts
a primary selector and optional *fallback_selectors*; the first selector
that yields at least one match wins.  This keeps strategies resilient
against minor layout changes (extra wrapper ``<div>``, renamed CSS class,
etc.).  A missing element is never an error: helpers return a default,
``None`` or an empty list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag


@dataclass(frozen=True)
class Link:
    """Visible text and resolved ``href`` of an anchor."""

    text: str
    href: str


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML string into a BeautifulSoup tree (``lxml`` parser)."""
    return BeautifulSoup(html, "lxml")


def select_items(
    root: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
) -> list[Tag]:
    """Select elements via CSS with a fallback chain.

    Tries each selector in order.  Returns results from the **first**
    selector that matches at least one element.
    """
    for sel in (selector, *fallback_selectors):
        items = root.select(sel)
        if items:
            return items
    return []


def extract_text(
    element: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Extract whitespace-normalised text from the first matching element.

    With ``selector=""`` the element's own text is returned.
    """
    if selector == "":
        text = element.get_text(" ", strip=True)
        return text if text else default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            text = match.get_text(" ", strip=True)
            if text:
                return text
    return default


def extract_all_attrs(
    element: BeautifulSoup | Tag,
    selector: str,
    attr: str,
    *fallback_selectors: str,
) -> list[str]:
    """Extract an attribute from **all** matching elements."""
    for sel in (selector, *fallback_selectors):
        matches = element.select(sel)
        if matches:
            return [str(m[attr]) for m in matches if m.get(attr)]
    return []


def extract_links(
    element: BeautifulSoup | Tag,
    selector: str = "a[href]",
    *fallback_selectors: str,
    base_url: str = "",
) -> list[Link]:
    """Extract all links matching *selector*, in document order.

    Relative ``href`` values are joined onto *base_url* when given.
    """
    results: list[Link] = []
    for tag in select_items(element, selector, *fallback_selectors):
        href = tag.get("href")
        if not href:
            continue
        href_str = str(href).strip()
        if base_url:
            href_str = urljoin(base_url, href_str)
        results.append(Link(text=tag.get_text(" ", strip=True), href=href_str))
    return results


def extract_labeled_value(
    element: BeautifulSoup | Tag,
    label: str,
    selector: str = "li.list-group-item",
    delimiter: str = ":",
) -> str | None:
    """Return the value of a ``"<label> : <value>"`` item.

    The label token is matched case-insensitively and may be surrounded by
    extra whitespace; everything after the first *delimiter* is returned.
    ``None`` when no item carries the label.
    """
    pattern = re.compile(
        rf"^\s*{re.escape(label)}\s*{re.escape(delimiter)}\s*(.*?)\s*$",
        re.IGNORECASE | re.DOTALL,
    )
    for item in element.select(selector):
        match = pattern.match(item.get_text())
        if match:
            return match.group(1)
    return None
