"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import html
import re
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

USER_AGENT = "gator"

_ITEM_FIELDS = {
    "title": "title",
    "link": "link",
    "description": "description",
    "pubDate": "pub_date",
}
_CHANNEL_FIELDS = ("title", "link", "description")

_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun",
           "jul", "aug", "sep", "oct", "nov", "dec")
_RFC1123Z = re.compile(
    r"([A-Za-z]{3}), (\d{2}) ([A-Za-z]{3}) (\d{4}) "
    r"(\d{2}):(\d{2}):(\d{2})(?:[.,](\d+))? ([+-])(\d{2})(\d{2})",
    re.ASCII,
)


@dataclass
class RSSItem:
    """One entry of a feed."""

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    """A feed's channel information and its items."""

    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


def _local_name(tag: object) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _direct_text(element: ET.Element) -> str:
    return (element.text or "") + "".join(child.tail or "" for child in element)


def _parse_elements(data: bytes | str) -> tuple[ET.Element | None, set[int]]:
    """Parse as much of ``data`` as is well formed.

    Returns the root element and the ids of elements that were closed
    before any error.
    """
    parser = ET.XMLPullParser(events=("start", "end"))
    try:
        parser.feed(data)
        parser.close()
    except ET.ParseError:
        pass
    root: ET.Element | None = None
    closed: set[int] = set()
    try:
        for event, element in parser.read_events():
            if event == "start" and root is None:
                root = element
            elif event == "end":
                closed.add(id(element))
    except ET.ParseError:
        pass
    return root, closed


def _parse_item(element: ET.Element) -> RSSItem:
    item = RSSItem()
    for child in element:
        name = _ITEM_FIELDS.get(_local_name(child.tag))
        if name is not None:
            setattr(item, name, _direct_text(child))
    return item


def parse_feed(data: bytes | str) -> RSSFeed:
    """Decode an RSS document.

    Malformed input is not an error: whatever was complete before the
    fault is kept, and an unreadable document gives an empty feed.
    """
    feed = RSSFeed()
    root, closed = _parse_elements(data)
    if root is not None:
        for channel in root:
            if _local_name(channel.tag) != "channel":
                continue
            for child in channel:
                if id(child) not in closed:
                    continue
                name = _local_name(child.tag)
                if name == "item":
                    feed.items.append(_parse_item(child))
                elif name in _CHANNEL_FIELDS:
                    setattr(feed, name, _direct_text(child))
    feed.title = html.unescape(feed.title)
    feed.description = html.unescape(feed.description)
    return feed


def parse_pub_date(value: str) -> datetime | None:
    """Parse an RFC 1123 date with numeric zone, or return None if it is not one."""
    match = _RFC1123Z.fullmatch(value)
    if match is None:
        return None
    weekday, day, month, year, hour, minute, second, fraction, sign, off_h, off_m = match.groups()
    if weekday.lower() not in _WEEKDAYS or month.lower() not in _MONTHS:
        return None
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    offset = timedelta(hours=int(off_h), minutes=int(off_m))
    if sign == "-":
        offset = -offset
    try:
        return datetime(
            int(year), _MONTHS.index(month.lower()) + 1, int(day),
            int(hour), int(minute), int(second), microsecond,
            tzinfo=timezone(offset),
        )
    except ValueError:
        return None


def fetch_feed(feed_url: str, timeout: float | None = None) -> RSSFeed:
    """Download ``feed_url`` and parse it, whatever the response status."""
    request = urllib.request.Request(feed_url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            data = response.read()
    except urllib.error.HTTPError as error:
        try:
            data = error.read()
        finally:
            error.close()
    return parse_feed(data)