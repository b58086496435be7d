"""Signal extractors: turn fetched markup or JSON into candidate media entries.

Everything here is pure and synchronous. Strategies fetch, these functions
interpret. Text patterns are kept in declarative tables so that each
platform's rules can be read (and reordered) in one place.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from .exceptions import ParseFailureError
from .models import MediaEntry, MediaKind
from .normalizer import unescape_url


@dataclass(frozen=True)
class PatternRule:
    """A named text pattern whose first group captures a media URL."""

    name: str
    pattern: re.Pattern
    kind: MediaKind
    quality: Optional[str] = None


def _rule(
    name: str, pattern: str, kind: MediaKind, quality: Optional[str] = None
) -> PatternRule:
    return PatternRule(name=name, pattern=re.compile(pattern), kind=kind, quality=quality)


INSTAGRAM_VIDEO_RULES = [
    _rule("video_url", r'"video_url"\s*:\s*"([^"]+)"', MediaKind.VIDEO, "HD"),
    _rule("content_url", r'"contentUrl"\s*:\s*"([^"]+)"', MediaKind.VIDEO, "HD"),
    _rule(
        "video_url_quoted",
        r"""video_url['"]\s*:\s*['"]([^'"]+)['"]""",
        MediaKind.VIDEO,
        "HD",
    ),
    _rule(
        "og_video",
        r'<meta[^>]*property="og:video"[^>]*content="([^"]+)"',
        MediaKind.VIDEO,
        "HD",
    ),
]

INSTAGRAM_IMAGE_RULES = [
    _rule(
        "og_image",
        r'<meta[^>]*property="og:image"[^>]*content="([^"]+)"',
        MediaKind.IMAGE,
        "HD",
    ),
    _rule(
        "embedded_media_image",
        r'class="EmbeddedMediaImage"[^>]*src="([^"]+)"',
        MediaKind.IMAGE,
        "HD",
    ),
]

FACEBOOK_VIDEO_RULES = [
    _rule("playable_url", r'"playable_url":"([^"]+)"', MediaKind.VIDEO),
    _rule("playable_url_quality_hd", r'"playable_url_quality_hd":"([^"]+)"', MediaKind.VIDEO),
    _rule("sd_src", r'"sd_src":"([^"]+)"', MediaKind.VIDEO),
    _rule("hd_src", r'"hd_src":"([^"]+)"', MediaKind.VIDEO),
]

SNAPSAVE_RULES = [
    _rule("snapsave_href", r'href="([^"]+\.mp4[^"]*)"', MediaKind.VIDEO, "HD"),
]

_PLAYER_RESPONSE_RE = re.compile(r"ytInitialPlayerResponse\s*=\s*(?=\{)")

DEFAULT_YOUTUBE_TITLE = "YouTube Video"

# Relay payload shapes, tried in order; the first one yielding entries wins.
RELAY_DIRECT_FIELDS = ("video_url", "video", "download_url")
RELAY_ARRAY_FIELDS = ("media", "result")
_RELAY_ITEM_URL_KEYS = ("url", "download_url", "video_url", "src")


def facebook_quality(rule_name: str) -> str:
    """Facebook exposes quality only through the name of the field."""
    return "HD" if "hd" in rule_name.lower() else "SD"


def match_rules(
    text: str, rules: Iterable[PatternRule], title: Optional[str] = None
) -> List[MediaEntry]:
    """
    Apply pattern rules in order and collect every match.

    Every captured URL is unescaped. Duplicates (across rules as well as
    within one rule) are dropped, keeping the first occurrence.

    Args:
        text: Markup or script text to scan
        rules: Ordered rule table
        title: Optional title attached to every entry

    Returns:
        Entries in the order they were matched
    """
    entries: List[MediaEntry] = []
    seen = set()
    if not text:
        return entries

    for rule in rules:
        for match in rule.pattern.finditer(text):
            url = unescape_url(match.group(1))
            if not url or url in seen:
                continue
            seen.add(url)
            entries.append(
                MediaEntry(kind=rule.kind, source_url=url, quality=rule.quality, title=title)
            )
    return entries


def match_facebook_rules(text: str) -> List[MediaEntry]:
    """Match Facebook video fields, deriving quality from the field name."""
    entries = []
    for rule in FACEBOOK_VIDEO_RULES:
        for entry in match_rules(text, [rule]):
            entries.append(
                MediaEntry(
                    kind=entry.kind,
                    source_url=entry.source_url,
                    quality=facebook_quality(rule.name),
                )
            )
    return entries


def find_player_response(html: str) -> Dict[str, Any]:
    """
    Locate and decode the inline ``ytInitialPlayerResponse`` object.

    The assignment is found with a regex; the object itself is decoded with
    a raw JSON decoder so braces inside string values cannot cut it short.

    Raises:
        ParseFailureError: If the object is missing or is not valid JSON
    """
    match = _PLAYER_RESPONSE_RE.search(html or "")
    if not match:
        raise ParseFailureError("ytInitialPlayerResponse not found in page")

    try:
        player_response, _ = json.JSONDecoder().raw_decode(html, match.end())
    except json.JSONDecodeError as e:
        raise ParseFailureError(f"Malformed ytInitialPlayerResponse: {e}") from e

    if not isinstance(player_response, dict):
        raise ParseFailureError("ytInitialPlayerResponse is not an object")
    return player_response


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def entries_from_player_response(player_response: Dict[str, Any]) -> List[MediaEntry]:
    """
    Build entries from a decoded YouTube player response.

    Only formats with a direct URL and a video MIME type are kept; formats
    that carry just a signature cipher are skipped. The largest thumbnail
    (the last one listed) is appended as an image. Fields of an unexpected
    type are treated as absent.
    """
    if not isinstance(player_response, dict):
        raise ParseFailureError("Player response is not an object")

    streaming_data = _as_dict(player_response.get("streamingData"))
    video_details = _as_dict(player_response.get("videoDetails"))
    title = video_details.get("title")
    if not isinstance(title, str) or not title:
        title = DEFAULT_YOUTUBE_TITLE

    formats = _as_list(streaming_data.get("formats")) + _as_list(
        streaming_data.get("adaptiveFormats")
    )

    entries = []
    for fmt in formats:
        if not isinstance(fmt, dict):
            continue
        url = fmt.get("url")
        mime_type = fmt.get("mimeType")
        if not isinstance(url, str) or not url:
            continue
        if not isinstance(mime_type, str) or "video" not in mime_type:
            continue
        entries.append(
            MediaEntry(
                kind=MediaKind.VIDEO,
                source_url=url,
                quality=str(fmt.get("qualityLabel") or fmt.get("quality") or "Unknown"),
                title=title,
            )
        )

    thumbnails = _as_list(_as_dict(video_details.get("thumbnail")).get("thumbnails"))
    largest = _as_dict(thumbnails[-1]) if thumbnails else {}
    if isinstance(largest.get("url"), str) and largest["url"]:
        entries.append(MediaEntry(kind=MediaKind.IMAGE, source_url=largest["url"], title=title))

    return entries


def _relay_item_entry(item: Any) -> Optional[MediaEntry]:
    if isinstance(item, str):
        url = item
        declared_type = ""
        quality = None
    elif isinstance(item, dict):
        url = next((item[key] for key in _RELAY_ITEM_URL_KEYS if item.get(key)), None)
        declared_type = str(item.get("type") or "").lower()
        quality = item.get("quality")
    else:
        return None

    if not url or not isinstance(url, str):
        return None

    if declared_type:
        is_video = "video" in declared_type
    else:
        is_video = ".mp4" in url.lower()

    return MediaEntry(
        kind=MediaKind.VIDEO if is_video else MediaKind.IMAGE,
        source_url=unescape_url(url),
        quality=str(quality) if quality else "HD",
    )


def entries_from_relay_payload(payload: Any) -> List[MediaEntry]:
    """
    Normalize the differently shaped JSON answers relay services give.

    Precedence is first-match-wins: direct fields (``video_url``, ``video``,
    ``download_url``), then the ``media`` array, then the ``result`` array.
    A ``data`` object wrapping any of these is unwrapped first.
    """
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    if isinstance(payload, list):
        payload = {"result": payload}
    if not isinstance(payload, dict):
        return []

    for field_name in RELAY_DIRECT_FIELDS:
        value = payload.get(field_name)
        values = value if isinstance(value, list) else [value]
        entries = [
            MediaEntry(kind=MediaKind.VIDEO, source_url=unescape_url(v), quality="HD")
            for v in values
            if isinstance(v, str) and v
        ]
        if entries:
            return entries

    for field_name in RELAY_ARRAY_FIELDS:
        items = payload.get(field_name)
        if not isinstance(items, list):
            continue
        entries = [e for e in (_relay_item_entry(item) for item in items) if e]
        if entries:
            return entries

    return []


def json_ld_content_urls(html: str) -> List[str]:
    """Collect ``contentUrl`` values from JSON-LD script blocks."""
    urls: List[str] = []
    if not html:
        return urls

    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            ld_data = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue

        nodes = ld_data if isinstance(ld_data, list) else [ld_data]
        for node in nodes:
            if not isinstance(node, dict):
                continue
            candidates = [node.get("contentUrl")]
            video = node.get("video")
            if isinstance(video, dict):
                candidates.append(video.get("contentUrl"))
            for candidate in candidates:
                if not isinstance(candidate, str):
                    continue
                url = unescape_url(candidate)
                if url and url not in urls:
                    urls.append(url)
    return urls
