"""Normalization of discovered media: unescaping, de-duplication, naming."""

import time
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from .models import ExtractionResult, MediaEntry, MediaKind

__all__ = ["MediaCollector", "assign_filenames", "normalize", "unescape_url"]

# Order matters: JSON escapes first, then the HTML entity.
_ESCAPES = (
    ("\\u0026", "&"),
    ("\\/", "/"),
    ("&amp;", "&"),
)

_FILENAME_EXTENSIONS = {
    MediaKind.VIDEO: "mp4",
    MediaKind.IMAGE: "jpg",
}


def unescape_url(url: Optional[str]) -> str:
    """Decode the escapes platforms use when embedding URLs in JSON or markup.

    Idempotent for URLs with no escape sequences left. It decodes one level
    only, so apply it once per captured URL: a URL whose real query contains
    ``&amp;`` would be corrupted by a second pass.
    """
    if not url:
        return ""
    value = url.strip()
    for escaped, plain in _ESCAPES:
        value = value.replace(escaped, plain)
    return value


class MediaCollector:
    """Accumulates entries for one call, refusing duplicate source URLs.

    URLs are compared exactly as given. Signal extractors unescape what they
    capture, so entries reaching the collector are already decoded and are
    never decoded a second time here.
    """

    def __init__(self) -> None:
        self._entries: List[MediaEntry] = []
        self._seen: set = set()

    def add(self, entry: MediaEntry) -> bool:
        """Add an entry; return False if it was empty or already present."""
        url = entry.source_url
        if not url or url in self._seen:
            return False
        self._seen.add(url)
        self._entries.append(entry)
        return True

    def extend(self, entries: Iterable[MediaEntry]) -> List[MediaEntry]:
        """Add entries in order and return the ones that were new."""
        start = len(self._entries)
        for entry in entries:
            self.add(entry)
        return self._entries[start:]

    def has_video(self) -> bool:
        return any(entry.is_video for entry in self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._seen

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> ExtractionResult:
        return list(self._entries)


def normalize(raw_entries: Iterable[MediaEntry]) -> ExtractionResult:
    """Unescape once, drop empty URLs and de-duplicate, keeping discovery order.

    For entries that did not come through a signal extractor, such as a
    cached or externally supplied list.
    """
    collector = MediaCollector()
    for entry in raw_entries:
        url = unescape_url(entry.source_url)
        collector.add(entry if url == entry.source_url else replace(entry, source_url=url))
    return collector.entries


def assign_filenames(
    entries: Iterable[MediaEntry], timestamp_ms: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    Render entries for the download API with a synthetic filename each.

    Names look like ``video_<ts>_<i>.mp4`` or ``image_<ts>_<i>.jpg`` where
    ``i`` is the position in the final list. This is presentation only; it
    plays no part in entry identity.

    Args:
        entries: Normalized entries in display order
        timestamp_ms: Generation timestamp, defaults to now

    Returns:
        List of dictionaries ready to be serialized
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    media = []
    for index, entry in enumerate(entries):
        item = entry.to_dict()
        extension = _FILENAME_EXTENSIONS[entry.kind]
        item["filename"] = f"{entry.kind.value}_{timestamp_ms}_{index}.{extension}"
        media.append(item)
    return media
