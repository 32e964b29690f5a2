"""
Post Uploader Module

Publishes queued drafts as posts in a party. An instance is the uploader
handed to the DraftStore: awaiting it with a draft inserts one row into the
backend's posts table, or raises UploadError.
"""

import asyncio
from typing import Any, Dict, Optional

from data.models import DraftPost
from services.protocols import BackendClient
from utils.exceptions import BackendError, UploadError
from utils.helpers import generate_id, to_iso, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)


class PostUploader:
    """
    Uploader that turns drafts into party posts.

    Args:
        backend: Client for the hosted database.
        user: The author's profile; uses the keys id, name, username and avatar.
        default_party_id: Party used for drafts that do not name one.
    """

    def __init__(self, backend: BackendClient, user: Dict[str, Any],
                 default_party_id: Optional[str] = None):
        self.backend = backend
        self.user = user
        self.default_party_id = default_party_id

    async def __call__(self, draft: DraftPost) -> None:
        row = self.build_post_row(draft)
        # The backend client blocks on HTTP, keep it off the event loop
        await asyncio.to_thread(self._insert, row)
        logger.info(f"Published draft {draft.id} as {row['id']} in party {row['party_id']}")

    def build_post_row(self, draft: DraftPost) -> Dict[str, Any]:
        """
        Map a draft onto a posts table row.

        Raises:
            UploadError: If the draft has no party and no default is configured.
        """
        party_id = draft.party_id or self.default_party_id
        if not party_id:
            raise UploadError("Draft is not attached to a party")

        now = to_iso(utc_now())
        return {
            'id': generate_id("post", separator="_"),
            'party_id': party_id,
            'user_id': self.user.get('id'),
            'user_name': self.user.get('name'),
            'user_username': self.user.get('username'),
            'user_avatar': self.user.get('avatar'),
            'content': draft.content,
            'media': draft.media.url if draft.media else None,
            'gif_url': draft.gif_url,
            'tags': list(draft.tags),
            'preset_tag': draft.preset_tag,
            'poll': draft.poll.to_dict() if draft.poll else None,
            'location': draft.location,
            'quoted_post_id': draft.quoted_post_id,
            'reactions': [],
            'comments': [],
            'reposts': 0,
            'user_reposted': False,
            'created_at': now,
            'updated_at': now,
        }

    def _insert(self, row: Dict[str, Any]) -> None:
        try:
            self.backend.insert('posts', row)
        except BackendError as e:
            raise UploadError(f"Could not publish post: {e}") from e
