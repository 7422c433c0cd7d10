from __future__ import annotations

from html import unescape
import re
import unicodedata

from bs4 import BeautifulSoup


def _strip_accents(text: str) -> str:
    return "".join(
        c for c in unicodedata.normalize("NFD", text) if unicodedata.category(c) != "Mn"
    )


def normalize_label(value: str) -> str:
    """Unescape HTML entities and collapse inner whitespace.

    Preserves original casing but trims leading/trailing spaces
    and converts sequences of whitespace to a single space.
    """
    if not value:
        return ""
    text = unescape(value).strip()
    # Collapse multiple whitespace to single space
    text = re.sub(r"\s+", " ", text)
    return text


def slugify(value: str) -> str:
    """Lowercase, accent-free, dash separated slug for ``value``.

    ``"Dicas &amp; Hacks"`` becomes ``"dicas-hacks"``.
    """
    text = _strip_accents(normalize_label(value)).lower()
    out = []
    prev_dash = False
    for ch in text:
        if ch.isalnum():
            out.append(ch)
            prev_dash = False
        else:
            if not prev_dash:
                out.append("-")
            prev_dash = True
    slug = "".join(out).strip("-")
    return slug[:200]


def make_excerpt(content_html: str, limit: int = 197) -> str:
    """Plain-text excerpt of ``content_html``, ``limit`` chars plus ``...``."""
    if not content_html:
        return ""
    text = BeautifulSoup(content_html, "html.parser").get_text(" ", strip=True)
    text = re.sub(r"\s+", " ", text)
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."
