"""
Cached API Module

Read-through access to profiles, parties, friends and preferences. Reads look
in the memory cache first and only go to the backend on a miss; writes go to
the backend and then drop the cache entries they made stale.
"""

from typing import Any, Dict, List, Optional

from services.memory_cache import MemoryCache, CacheInvalidation, CacheKeys, CacheTTL
from services.protocols import BackendClient
from utils.exceptions import BackendError
from utils.logger import get_logger

logger = get_logger(__name__)

FRIEND_COLUMNS = (
    "id,status,"
    "friend:profiles!friendships_friend_id_fkey(id,username,full_name,avatar_url)"
)


class CachedApi:
    """Backend reads and writes fronted by a MemoryCache."""

    def __init__(self, backend: BackendClient, cache: MemoryCache):
        self.backend = backend
        self.cache = cache
        self.invalidation = CacheInvalidation(cache)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_user_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a user's profile row.

        Returns:
            The profile dict, or None if it could not be fetched.
        """
        cache_key = CacheKeys.user_profile(user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = self.backend.select('profiles', {'id': user_id}, single=True)
        except BackendError as e:
            logger.error(f"Error fetching user profile {user_id}: {e}")
            return None

        self.cache.set(cache_key, data, CacheTTL.USER_PROFILE)
        return data

    def get_user_parties(self, user_id: str) -> List[Dict[str, Any]]:
        """Parties hosted by a user, newest first."""
        cache_key = CacheKeys.user_parties(user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = self.backend.select('parties', {'host_id': user_id}, order='created_at.desc') or []
        except BackendError as e:
            logger.error(f"Error fetching parties for user {user_id}: {e}")
            return []

        self.cache.set(cache_key, data, CacheTTL.USER_PARTIES)
        return data

    def get_party_details(self, party_id: str) -> Optional[Dict[str, Any]]:
        cache_key = CacheKeys.party_details(party_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = self.backend.select('parties', {'id': party_id}, single=True)
        except BackendError as e:
            logger.error(f"Error fetching party details {party_id}: {e}")
            return None

        self.cache.set(cache_key, data, CacheTTL.PARTY_DETAILS)
        return data

    def get_user_friends(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Accepted friends of a user, flattened from the friendship rows.

        Rows whose joined profile is missing are skipped.
        """
        cache_key = CacheKeys.user_friends(user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            rows = self.backend.select(
                'friendships',
                {'user_id': user_id, 'status': 'accepted'},
                columns=FRIEND_COLUMNS
            ) or []
        except BackendError as e:
            logger.error(f"Error fetching friends for user {user_id}: {e}")
            return []

        friends = []
        for row in rows:
            friend = row.get('friend')
            # The join comes back as a list when the relationship is ambiguous
            if isinstance(friend, list):
                friend = friend[0] if friend else None
            if not friend:
                logger.warning(f"Friend data is missing for friendship {row.get('id')}")
                continue
            friends.append({
                'id': friend.get('id'),
                'username': friend.get('username'),
                'full_name': friend.get('full_name'),
                'avatar_url': friend.get('avatar_url'),
                'status': row.get('status'),
            })

        self.cache.set(cache_key, friends, CacheTTL.USER_FRIENDS)
        return friends

    def get_user_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        cache_key = CacheKeys.user_preferences(user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = self.backend.select('user_preferences', {'user_id': user_id}, single=True)
        except BackendError as e:
            logger.error(f"Error fetching preferences for user {user_id}: {e}")
            return None

        self.cache.set(cache_key, data, CacheTTL.USER_PREFERENCES)
        return data

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> bool:
        try:
            self.backend.update('profiles', updates, {'id': user_id})
        except BackendError as e:
            logger.error(f"Error updating user profile {user_id}: {e}")
            return False

        self.invalidation.clear_user_profile(user_id)
        return True

    def create_party(self, party_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create a party and drop the host's cached party list.

        Returns:
            The stored party row, or None on failure.
        """
        try:
            rows = self.backend.insert('parties', party_data)
        except BackendError as e:
            logger.error(f"Error creating party: {e}")
            return None

        if party_data.get('host_id'):
            self.invalidation.clear_user_parties(party_data['host_id'])
        return rows[0] if rows else None

    def update_party(self, party_id: str, updates: Dict[str, Any]) -> bool:
        try:
            rows = self.backend.update('parties', updates, {'id': party_id})
        except BackendError as e:
            logger.error(f"Error updating party {party_id}: {e}")
            return False

        self.invalidation.clear_party_details(party_id)
        for row in rows or []:
            if row.get('host_id'):
                self.invalidation.clear_user_parties(row['host_id'])
        return True

    def delete_party(self, party_id: str, host_id: str) -> bool:
        try:
            self.backend.delete('parties', {'id': party_id})
        except BackendError as e:
            logger.error(f"Error deleting party {party_id}: {e}")
            return False

        self.invalidation.clear_party_details(party_id)
        self.invalidation.clear_user_parties(host_id)
        return True

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------

    def clear_user_cache(self, user_id: str) -> None:
        """Drop everything cached for a user, e.g. on sign-out."""
        self.invalidation.clear_all_user_data(user_id)

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            'size': self.cache.size(),
            'stats': self.cache.get_stats(),
            'hit_rate': self.cache.get_hit_rate(),
            'keys': self.cache.get_keys(),
            'contents': self.cache.get_contents(),
        }
