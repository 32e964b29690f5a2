"""
Draft Store Module

This module keeps the queue of locally authored draft posts and drains it to
the remote system through an injected uploader.

Each draft moves through ``draft -> uploading -> uploaded`` or
``uploading -> failed``; a failed draft goes back to ``draft`` only through
``retry_draft``, although any drain pass also picks up failed drafts.
Every change to the draft list is written to session storage under one key
so the queue survives a reload.
"""

import asyncio
import copy
import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from config import settings
from data.models import (
    DraftMedia, DraftPost, DraftQueueState, DraftStatus, Poll, PollOption,
    MEDIA_TYPES, POLL_TYPES,
)
from data.protocols import SessionStorage
from services.protocols import ConnectivitySignal, DraftUploader
from utils.exceptions import DraftValidationError
from utils.helpers import generate_id, truncate_text, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

# Fields update_draft may change; id and timestamp are fixed at creation
UPDATABLE_FIELDS = frozenset({
    "content", "tags", "media", "gif_url", "location", "poll", "preset_tag",
    "party_id", "quoted_post_id", "status", "retry_count", "last_attempt",
    "error_message",
})


def _coerce_media(media: Any) -> Optional[DraftMedia]:
    if media is None or isinstance(media, DraftMedia):
        result = media
    elif isinstance(media, dict) and "url" in media and "type" in media:
        result = DraftMedia(url=media["url"], type=media["type"])
    else:
        raise DraftValidationError(f"Media must have a url and a type, got {media!r}")
    if result is not None and result.type not in MEDIA_TYPES:
        raise DraftValidationError(f"Media type must be one of {', '.join(MEDIA_TYPES)}, got {result.type!r}")
    return result


def _coerce_poll(poll: Any) -> Optional[Poll]:
    if poll is None:
        return None
    if isinstance(poll, dict):
        try:
            poll = Poll.from_dict(poll)
        except (KeyError, TypeError) as e:
            raise DraftValidationError(f"Malformed poll: {e}") from e
    if not isinstance(poll, Poll):
        raise DraftValidationError(f"Poll must be a Poll or a dict, got {type(poll).__name__}")
    if poll.type not in POLL_TYPES:
        raise DraftValidationError(f"Poll type must be one of {', '.join(POLL_TYPES)}, got {poll.type!r}")
    if not poll.question.strip():
        raise DraftValidationError("Poll question must not be empty")
    if not all(isinstance(option, PollOption) for option in poll.options):
        raise DraftValidationError("Poll options must be PollOption objects")
    return poll


def _coerce_tags(tags: Any) -> List[str]:
    if tags is None:
        return []
    if isinstance(tags, str) or not all(isinstance(tag, str) for tag in tags):
        raise DraftValidationError("Tags must be a sequence of strings")
    return list(tags)


def _coerce_status(status: Any) -> DraftStatus:
    try:
        return DraftStatus(status)
    except ValueError as e:
        raise DraftValidationError(f"Unknown draft status: {status!r}") from e


def _require_body(content: str, media: Optional[DraftMedia], gif_url: Optional[str],
                  poll: Optional[Poll]) -> None:
    if not (content.strip() or media or gif_url or poll):
        raise DraftValidationError("A draft needs content, media, a GIF or a poll")


class DraftStore:
    """
    Persisted queue of draft posts with a sequential sync engine.

    Args:
        storage: Session storage the draft list is written to.
        uploader: Async callable that publishes one draft; raising marks it failed.
        connectivity: Optional online/offline signal; going back online with
            pending drafts starts one sync.
        storage_key: Key the draft list is stored under.
        clock: Returns the current datetime. Defaults to UTC now.
    """

    def __init__(
        self,
        storage: SessionStorage,
        uploader: DraftUploader,
        connectivity: Optional[ConnectivitySignal] = None,
        storage_key: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.uploader = uploader
        self.storage_key = storage_key or settings.DRAFT_STORAGE_KEY
        self._clock = clock or utc_now

        self._drafts: List[DraftPost] = []
        self._is_syncing = False
        self._sync_progress = 0.0
        self._last_sync_attempt: Optional[datetime] = None
        self._listeners: List[Callable[[DraftQueueState], None]] = []
        self._auto_sync_task: Optional[asyncio.Task] = None

        self._load()

        self._connectivity = connectivity
        self._was_online = True
        self._unsubscribe_connectivity = None
        if connectivity is not None:
            self._was_online = connectivity.is_online
            self._unsubscribe_connectivity = connectivity.subscribe(self._on_connectivity_change)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def drafts(self) -> List[DraftPost]:
        """Copies of all drafts in creation order."""
        return [copy.deepcopy(draft) for draft in self._drafts]

    @property
    def pending_drafts(self) -> List[DraftPost]:
        return [copy.deepcopy(draft) for draft in self._drafts if draft.is_pending]

    @property
    def has_pending(self) -> bool:
        return any(draft.is_pending for draft in self._drafts)

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def sync_progress(self) -> float:
        return self._sync_progress

    @property
    def last_sync_attempt(self) -> Optional[datetime]:
        return self._last_sync_attempt

    @property
    def auto_sync_task(self) -> Optional[asyncio.Task]:
        """The task started by the last reconnect, if it ran on an event loop."""
        return self._auto_sync_task

    @property
    def state(self) -> DraftQueueState:
        return DraftQueueState(
            drafts=self.drafts,
            is_syncing=self._is_syncing,
            sync_progress=self._sync_progress,
            last_sync_attempt=self._last_sync_attempt,
        )

    def get_draft(self, draft_id: str) -> Optional[DraftPost]:
        draft = self._find(draft_id)
        return copy.deepcopy(draft) if draft else None

    def subscribe(self, listener: Callable[[DraftQueueState], None]) -> Callable[[], None]:
        """
        Register a listener called with a state snapshot after every change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_draft(
        self,
        content: str = "",
        tags: Optional[List[str]] = None,
        media: Any = None,
        gif_url: Optional[str] = None,
        location: Optional[str] = None,
        poll: Any = None,
        preset_tag: Optional[str] = None,
        party_id: Optional[str] = None,
        quoted_post_id: Optional[str] = None
    ) -> DraftPost:
        """
        Queue a new draft.

        Returns:
            DraftPost: A copy of the stored draft, with its generated id.

        Raises:
            DraftValidationError: If a field is malformed or the draft is empty.
        """
        if not isinstance(content, str):
            raise DraftValidationError("Draft content must be a string")
        media = _coerce_media(media)
        poll = _coerce_poll(poll)
        _require_body(content, media, gif_url, poll)

        draft = DraftPost(
            id=generate_id("draft"),
            content=content,
            timestamp=self._clock(),
            status=DraftStatus.DRAFT,
            retry_count=0,
            tags=_coerce_tags(tags),
            media=media,
            gif_url=gif_url,
            location=location,
            poll=poll,
            preset_tag=preset_tag,
            party_id=party_id,
            quoted_post_id=quoted_post_id,
        )
        self._drafts.append(draft)
        logger.info(f"Saved draft {draft.id}: {truncate_text(content, 40)!r}")
        self._changed()
        return copy.deepcopy(draft)

    def update_draft(self, draft_id: str, **updates) -> bool:
        """
        Merge fields into a draft.

        Returns:
            bool: False if no draft has this id.

        Raises:
            DraftValidationError: For unknown or fixed fields and malformed values.
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise DraftValidationError(f"Cannot update draft fields: {', '.join(sorted(unknown))}")

        if "content" in updates and not isinstance(updates["content"], str):
            raise DraftValidationError("Draft content must be a string")
        if "tags" in updates:
            updates["tags"] = _coerce_tags(updates["tags"])
        if "media" in updates:
            updates["media"] = _coerce_media(updates["media"])
        if "poll" in updates:
            updates["poll"] = _coerce_poll(updates["poll"])
        if "status" in updates:
            updates["status"] = _coerce_status(updates["status"])

        draft = self._find(draft_id)
        if draft is None:
            logger.warning(f"Cannot update unknown draft: {draft_id}")
            return False

        _require_body(
            updates.get("content", draft.content),
            updates.get("media", draft.media),
            updates.get("gif_url", draft.gif_url),
            updates.get("poll", draft.poll),
        )
        self._apply(draft_id, **updates)
        return True

    def remove_draft(self, draft_id: str) -> bool:
        """Delete a draft. Returns False if no draft has this id."""
        draft = self._find(draft_id)
        if draft is None:
            logger.warning(f"Cannot remove unknown draft: {draft_id}")
            return False
        self._drafts.remove(draft)
        logger.info(f"Removed draft {draft_id}")
        self._changed()
        return True

    def retry_draft(self, draft_id: str) -> bool:
        """
        Put a draft back in the ``draft`` state for the next sync.

        Clears the error message and counts the retry. Does not start a sync.
        """
        draft = self._find(draft_id)
        if draft is None:
            logger.warning(f"Cannot retry unknown draft: {draft_id}")
            return False
        self._apply(
            draft_id,
            status=DraftStatus.DRAFT,
            error_message=None,
            retry_count=draft.retry_count + 1,
        )
        logger.info(f"Draft {draft_id} queued for retry (attempt {draft.retry_count})")
        return True

    def clear_uploaded_drafts(self) -> int:
        """
        Remove every uploaded draft, keeping the order of the rest.

        Returns:
            int: Number of drafts removed.
        """
        remaining = [draft for draft in self._drafts if draft.status != DraftStatus.UPLOADED]
        removed = len(self._drafts) - len(remaining)
        self._drafts = remaining
        if removed:
            logger.info(f"Cleared {removed} uploaded draft(s)")
        self._changed()
        return removed

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    async def sync_drafts(self) -> None:
        """
        Upload every draft and failed draft, one at a time, in queue order.

        A second call while a sync is running returns immediately. Drafts added
        during the sync wait for the next one; drafts removed during it are
        skipped. A failed upload does not stop the remaining ones.
        """
        if self._is_syncing:
            logger.debug("Draft sync already running, ignoring trigger")
            return

        pending_ids = [draft.id for draft in self._drafts if draft.is_pending]
        if not pending_ids:
            return

        self._is_syncing = True
        self._sync_progress = 0.0
        self._last_sync_attempt = self._clock()
        self._notify()

        total = len(pending_ids)
        uploaded = 0
        logger.info(f"Syncing {total} draft(s)")

        try:
            for index, draft_id in enumerate(pending_ids):
                draft = self._find(draft_id)
                if draft is None or not draft.is_pending:
                    logger.info(f"Draft {draft_id} changed during sync, skipping")
                elif await self._upload(draft):
                    uploaded += 1

                self._sync_progress = (index + 1) / total * 100
                self._notify()
        finally:
            self._is_syncing = False
            self._notify()

        logger.info(f"Draft sync finished: {uploaded}/{total} uploaded")

    async def _upload(self, draft: DraftPost) -> bool:
        self._apply(draft.id, status=DraftStatus.UPLOADING, last_attempt=self._clock())

        try:
            await self.uploader(copy.deepcopy(draft))
        except asyncio.CancelledError:
            # A cancelled upload leaves the draft pending
            self._apply(draft.id, status=DraftStatus.DRAFT)
            logger.info(f"Upload of draft {draft.id} cancelled, draft re-queued")
            raise
        except Exception as e:
            message = str(e) or "Upload failed"
            logger.warning(f"Draft {draft.id} failed to upload: {message}")
            self._apply(draft.id, status=DraftStatus.FAILED, error_message=message)
            return False

        self._apply(draft.id, status=DraftStatus.UPLOADED, error_message=None)
        logger.info(f"Draft {draft.id} uploaded")
        return True

    def _on_connectivity_change(self, online: bool) -> None:
        was_online = self._was_online
        self._was_online = online
        if online and not was_online and self.has_pending:
            logger.info("Back online with pending drafts, starting sync")
            self._schedule_sync()

    def _schedule_sync(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.sync_drafts())
            return
        self._auto_sync_task = loop.create_task(self.sync_drafts())

    def close(self) -> None:
        """Stop listening to the connectivity signal."""
        if self._unsubscribe_connectivity is not None:
            self._unsubscribe_connectivity()
            self._unsubscribe_connectivity = None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _find(self, draft_id: str) -> Optional[DraftPost]:
        for draft in self._drafts:
            if draft.id == draft_id:
                return draft
        return None

    def _apply(self, draft_id: str, **changes) -> bool:
        draft = self._find(draft_id)
        if draft is None:
            return False
        for name, value in changes.items():
            setattr(draft, name, value)
        self._changed()
        return True

    def _changed(self) -> None:
        self._persist()
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Draft listener failed: {e}")

    def _persist(self) -> None:
        try:
            payload = json.dumps([draft.to_dict() for draft in self._drafts])
            self.storage.persist(self.storage_key, payload)
        except Exception as e:
            logger.error(f"Failed to save drafts to session storage: {e}")

    def _load(self) -> None:
        try:
            raw = self.storage.load(self.storage_key)
            if not raw:
                return
            drafts = [DraftPost.from_dict(item) for item in json.loads(raw)]
        except Exception as e:
            logger.error(f"Failed to load drafts from session storage: {e}")
            self._drafts = []
            return

        for draft in drafts:
            # An upload cut off by a reload never completed
            if draft.status == DraftStatus.UPLOADING:
                draft.status = DraftStatus.DRAFT
        self._drafts = drafts
        logger.info(f"Loaded {len(drafts)} draft(s) from session storage")

    def to_records(self) -> List[Dict[str, Any]]:
        """Serialized drafts, as written to storage."""
        return [draft.to_dict() for draft in self._drafts]
