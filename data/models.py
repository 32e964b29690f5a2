"""
Data Models for the fomo Application

This module contains data classes and models used throughout the application:
cache entries and counters, draft posts and the draft queue state, and the
connectivity state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from utils.helpers import parse_datetime, to_iso


# =============================================================================
# Memory Cache
# =============================================================================

@dataclass
class CacheEntry:
    """A cached value with its creation time and time-to-live (both in ms)."""
    data: Any
    timestamp: int
    ttl: int

    def is_expired(self, now: int) -> bool:
        return (now - self.timestamp) > self.ttl

    @property
    def expires_at(self) -> int:
        return self.timestamp + self.ttl


@dataclass
class CacheStats:
    """Process-lifetime operation counters for a MemoryCache."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    clears: int = 0


# =============================================================================
# Drafts
# =============================================================================

class DraftStatus(str, Enum):
    DRAFT = "draft"
    UPLOADING = "uploading"
    FAILED = "failed"
    UPLOADED = "uploaded"


MEDIA_TYPES = ("image", "video")
POLL_TYPES = ("vote", "quiz", "question")


@dataclass
class DraftMedia:
    url: str
    type: str                          # 'image' or 'video'

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "type": self.type}


@dataclass
class PollOption:
    id: str
    text: str
    is_correct: Optional[bool] = None  # Only meaningful for quiz polls

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "text": self.text}
        if self.is_correct is not None:
            data["is_correct"] = self.is_correct
        return data


@dataclass
class Poll:
    type: str                          # 'vote', 'quiz' or 'question'
    question: str
    options: List[PollOption] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "question": self.question,
            "options": [option.to_dict() for option in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Poll":
        return cls(
            type=data["type"],
            question=data["question"],
            options=[
                PollOption(id=o["id"], text=o["text"], is_correct=o.get("is_correct", o.get("isCorrect")))
                for o in data.get("options", [])
            ],
        )


@dataclass
class DraftPost:
    """A locally authored post waiting to be uploaded."""
    id: str
    content: str
    timestamp: datetime
    status: DraftStatus = DraftStatus.DRAFT
    retry_count: int = 0
    tags: List[str] = field(default_factory=list)
    media: Optional[DraftMedia] = None
    gif_url: Optional[str] = None
    location: Optional[str] = None
    poll: Optional[Poll] = None
    preset_tag: Optional[str] = None
    party_id: Optional[str] = None
    quoted_post_id: Optional[str] = None
    last_attempt: Optional[datetime] = None
    error_message: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        """True for drafts a drain pass would pick up."""
        return self.status in (DraftStatus.DRAFT, DraftStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible primitives; datetimes become ISO-8601."""
        return {
            "id": self.id,
            "content": self.content,
            "timestamp": to_iso(self.timestamp),
            "status": self.status.value,
            "retry_count": self.retry_count,
            "tags": list(self.tags),
            "media": self.media.to_dict() if self.media else None,
            "gif_url": self.gif_url,
            "location": self.location,
            "poll": self.poll.to_dict() if self.poll else None,
            "preset_tag": self.preset_tag,
            "party_id": self.party_id,
            "quoted_post_id": self.quoted_post_id,
            "last_attempt": to_iso(self.last_attempt),
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftPost":
        """
        Rebuild a draft from its serialized form.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If the status or a timestamp is malformed.
        """
        media = data.get("media")
        poll = data.get("poll")
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            timestamp=parse_datetime(data["timestamp"]),
            status=DraftStatus(data.get("status", DraftStatus.DRAFT.value)),
            retry_count=int(data.get("retry_count", 0)),
            tags=list(data.get("tags") or []),
            media=DraftMedia(url=media["url"], type=media["type"]) if media else None,
            gif_url=data.get("gif_url"),
            location=data.get("location"),
            poll=Poll.from_dict(poll) if poll else None,
            preset_tag=data.get("preset_tag"),
            party_id=data.get("party_id"),
            quoted_post_id=data.get("quoted_post_id"),
            last_attempt=parse_datetime(data.get("last_attempt")),
            error_message=data.get("error_message"),
        )


@dataclass
class DraftQueueState:
    """Snapshot of the draft queue handed to readers and listeners."""
    drafts: List[DraftPost] = field(default_factory=list)
    is_syncing: bool = False
    sync_progress: float = 0.0         # 0..100
    last_sync_attempt: Optional[datetime] = None

    @property
    def pending_count(self) -> int:
        return sum(1 for draft in self.drafts if draft.is_pending)


# =============================================================================
# Connectivity
# =============================================================================

CONNECTION_TYPES = ("wifi", "cellular", "ethernet", "unknown")


@dataclass
class OfflineState:
    is_online: bool = True
    is_connecting: bool = False
    last_online: Optional[datetime] = None
    connection_type: str = "unknown"
