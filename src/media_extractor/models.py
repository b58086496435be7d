"""Core data types shared by the extraction pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MediaKind(str, Enum):
    """Type of a downloadable media item."""

    VIDEO = "video"
    IMAGE = "image"


class Platform(str, Enum):
    """Platforms the extractor knows how to handle."""

    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    FACEBOOK = "facebook"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class MediaEntry:
    """A single direct media URL discovered for a post."""

    kind: MediaKind
    source_url: str
    quality: Optional[str] = None
    title: Optional[str] = None

    @property
    def is_video(self) -> bool:
        return self.kind is MediaKind.VIDEO

    def to_dict(self) -> Dict[str, Any]:
        """Render the entry the way the download API returns it."""
        data: Dict[str, Any] = {"type": self.kind.value, "url": self.source_url}
        if self.quality is not None:
            data["quality"] = self.quality
        if self.title is not None:
            data["title"] = self.title
        return data


@dataclass(frozen=True)
class ExtractionRequest:
    """One extraction call: the input URL and what was learned classifying it."""

    input_url: str
    platform: Platform
    identifier: Optional[str] = None


# Ordered by discovery; earlier entries have display priority.
ExtractionResult = List[MediaEntry]


@dataclass
class StrategyOutcome:
    """Result of running a single acquisition strategy."""

    entries: List[MediaEntry] = field(default_factory=list)
    should_stop_chain: bool = False
    method: str = "unknown"
    error: Optional[str] = None
    response_time_ms: int = 0

    @property
    def success(self) -> bool:
        return bool(self.entries)

