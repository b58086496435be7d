"""URL classification and identifier helpers for supported platforms."""

import re
from typing import Optional

from .models import Platform

INSTAGRAM_DOMAINS = ("instagram.com",)
YOUTUBE_DOMAINS = ("youtube.com", "youtu.be")
FACEBOOK_DOMAINS = ("facebook.com", "fb.com", "fb.watch")

_SHORTCODE_RE = re.compile(r"/(?:p|reel|reels|tv)/([A-Za-z0-9_-]+)")
_YOUTUBE_ID_PATTERNS = [
    re.compile(r"youtu\.be/([\w-]{11})"),
    re.compile(r"/(?:shorts|embed|live|v)/([\w-]{11})"),
    re.compile(r"[?&]v=([\w-]{11})"),
    re.compile(r"(?:v=|/)([\w-]{11})(?:\?|&|$)"),
]


def classify(url: Optional[str]) -> Platform:
    """
    Map a URL to the platform that hosts it.

    Matching is done on domain substrings only, so it never touches the
    network and never raises.

    Args:
        url: URL to classify

    Returns:
        The matching Platform, or Platform.UNSUPPORTED
    """
    if not url or not isinstance(url, str):
        return Platform.UNSUPPORTED

    lowered = url.lower()
    if any(domain in lowered for domain in INSTAGRAM_DOMAINS):
        return Platform.INSTAGRAM
    if any(domain in lowered for domain in YOUTUBE_DOMAINS):
        return Platform.YOUTUBE
    if any(domain in lowered for domain in FACEBOOK_DOMAINS):
        return Platform.FACEBOOK
    return Platform.UNSUPPORTED


def extract_instagram_shortcode(url: Optional[str]) -> Optional[str]:
    """
    Extract the post shortcode from an Instagram URL.

    Handles URLs like:
    - https://www.instagram.com/p/ABC123/
    - https://instagram.com/reel/XYZ456/
    - https://www.instagram.com/reels/XYZ456/
    - https://www.instagram.com/tv/DEF789/

    Returns:
        Shortcode if found, None otherwise
    """
    if not url:
        return None
    match = _SHORTCODE_RE.search(url)
    return match.group(1) if match else None


def extract_youtube_video_id(url: Optional[str]) -> Optional[str]:
    """Extract the 11-character video id from a YouTube URL."""
    if not url:
        return None
    for pattern in _YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def extract_identifier(url: str, platform: Platform) -> Optional[str]:
    """Return the platform-specific post identifier, if the platform needs one.

    Facebook posts are fetched by their full URL, so the URL itself is used.
    """
    if platform is Platform.INSTAGRAM:
        return extract_instagram_shortcode(url)
    if platform is Platform.YOUTUBE:
        return extract_youtube_video_id(url)
    if platform is Platform.FACEBOOK:
        return url
    return None


def instagram_embed_url(shortcode: str) -> str:
    """Embeddable rendering of an Instagram post, including the caption."""
    return f"https://www.instagram.com/p/{shortcode}/embed/captioned/"


def youtube_watch_url(video_id: str) -> str:
    """Canonical watch page for a YouTube video."""
    return f"https://www.youtube.com/watch?v={video_id}"
