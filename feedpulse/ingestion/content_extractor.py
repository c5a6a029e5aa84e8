"""
Feed Item Content Extraction
===========================

Pure transformation from a parsed feed entry (a feedparser entry dict) and
its owning source into a normalized ArticleRecord. No I/O, and no input
makes it fail: every missing field falls back to a default.

Image selection order:
    media:content > media:thumbnail > enclosure > <img> in content
    > <img> in encoded content
"""

import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from bs4 import BeautifulSoup

from ..models import ArticleRecord, FeedSource


UNTITLED = "Untitled"
DEFAULT_SNIPPET_LENGTH = 200

IMG_SRC_PATTERN = re.compile(r'<img[^>]+src="([^">]+)"')


def extract_article(
    entry: Mapping[str, Any],
    source: FeedSource,
    index: int,
    now: Optional[datetime] = None,
    snippet_length: int = DEFAULT_SNIPPET_LENGTH,
) -> ArticleRecord:
    """Normalize one feed entry.

    Args:
        entry: Parsed feed entry
        source: Source the entry was fetched from
        index: Position of the entry within its feed
        now: Timestamp used when the entry carries no date
        snippet_length: Length of the snippet derived from content

    Returns:
        ArticleRecord for the entry
    """
    now = now or datetime.now(timezone.utc)

    guid = _text(entry.get("id")) or _text(entry.get("guid"))
    link = _text(entry.get("link"))
    content = _raw_content(entry)
    encoded = _encoded_content(entry)
    body = content or encoded

    pub_date = _text(entry.get("published")) or _text(entry.get("updated")) or now.isoformat()

    return ArticleRecord(
        id=guid or link or f"{source.id}-{index}",
        title=_text(entry.get("title")) or UNTITLED,
        link=link,
        pub_date=pub_date,
        iso_date=_iso_date(entry) or pub_date,
        author=_text(entry.get("author")) or None,
        content=body,
        content_snippet=_snippet(content, body, snippet_length),
        categories=_categories(entry),
        guid=guid or None,
        image_url=extract_image_url(entry),
        source_id=source.id,
        source_name=source.display_name,
        category=source.category,
    )


def extract_articles(
    entries: Iterable[Mapping[str, Any]],
    source: FeedSource,
    now: Optional[datetime] = None,
    snippet_length: int = DEFAULT_SNIPPET_LENGTH,
) -> List[ArticleRecord]:
    """Normalize every entry of a feed, keeping feed order."""
    now = now or datetime.now(timezone.utc)
    return [
        extract_article(entry, source, index, now=now, snippet_length=snippet_length)
        for index, entry in enumerate(entries)
    ]


def extract_image_url(entry: Mapping[str, Any]) -> Optional[str]:
    """First image URL found in priority order, or None."""
    for media_field in ("media_content", "media_thumbnail"):
        url = _first_attribute(entry.get(media_field), "url")
        if url:
            return url

    url = _first_attribute(entry.get("enclosures"), "href") or _first_attribute(
        entry.get("enclosures"), "url"
    )
    if url:
        return url

    for html in (_raw_content(entry), _encoded_content(entry)):
        if html:
            match = IMG_SRC_PATTERN.search(html)
            if match:
                return match.group(1)

    return None


def _raw_content(entry: Mapping[str, Any]) -> str:
    # feedparser exposes <description> / <summary> as "summary"
    return _text(entry.get("summary")) or _text(entry.get("description"))


def _encoded_content(entry: Mapping[str, Any]) -> str:
    # <content:encoded> and Atom <content> land in the "content" list
    values = entry.get("content")
    if isinstance(values, str):
        return values
    if not isinstance(values, (list, tuple)):
        return ""
    parts = [_text(item.get("value")) for item in values if isinstance(item, Mapping)]
    return "".join(part for part in parts if part)


def _snippet(content: str, body: str, length: int) -> str:
    if content:
        text = BeautifulSoup(content, "html.parser").get_text(separator=" ", strip=True)
        if text:
            return text
    return body[:length]


def _iso_date(entry: Mapping[str, Any]) -> Optional[str]:
    for field in ("published_parsed", "updated_parsed"):
        parsed = entry.get(field)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc).isoformat()
            except (TypeError, ValueError):
                continue
    return None


def _categories(entry: Mapping[str, Any]) -> List[str]:
    tags = entry.get("tags")
    if not isinstance(tags, (list, tuple)):
        return []
    terms = []
    for tag in tags:
        term = tag.get("term") if isinstance(tag, Mapping) else tag
        term = _text(term)
        if term:
            terms.append(term)
    return terms


def _first_attribute(items: Any, attribute: str) -> Optional[str]:
    if isinstance(items, Mapping):
        items = [items]
    if not isinstance(items, (list, tuple)):
        return None
    for item in items:
        if isinstance(item, Mapping):
            value = _text(item.get(attribute))
            if value:
                return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip()
