"""
fomo Application

This is the command line entry point for the fomo client core. It manages the
offline draft queue (add, edit, retry and sync drafts to a party feed) and
reads profiles through the memory cache.

Version: 1.0
"""

import asyncio
import argparse
import json
import sys
from typing import Any, Dict, List, Optional

import pandas as pd

from config import settings
from config.validators import validate_settings, get_config_summary
from data.models import DraftPost
from data.storage import create_storage
from services.backend_service import BackendService
from services.cached_api import CachedApi
from services.connectivity import ConnectivityMonitor
from services.draft_store import DraftStore
from services.memory_cache import MemoryCache
from services.post_uploader import PostUploader
from utils.exceptions import (
    FomoError, ConfigurationError, DraftNotFoundError, DraftValidationError, StorageError
)
from utils.helpers import truncate_text
from utils.logger import get_logger, set_log_level, setup_file_logging

# Set up logging
logger = get_logger(__name__)

DRAFT_COLUMNS = ['id', 'status', 'retries', 'content', 'party', 'created', 'error']


class FomoApp:
    """
    Application wiring for the fomo client core.

    Builds the memory cache, backend client, session storage, connectivity
    monitor and draft store once, and hands each to the parts that need it.
    """

    def __init__(self, storage_backend: Optional[str] = None, require_backend: bool = True,
                 user_id: Optional[str] = None, party_id: Optional[str] = None,
                 initial_online: bool = True):
        """Initialize the application."""
        validate_settings(require_backend=require_backend, storage_backend=storage_backend)

        self.cache = MemoryCache(settings.CACHE_MAX_SIZE)
        self.backend = BackendService()
        self.cached_api = CachedApi(self.backend, self.cache)
        self.connectivity = ConnectivityMonitor(initial_online=initial_online)
        self.storage = create_storage(storage_backend)

        user = self._load_user(user_id) if user_id else {}
        self.uploader = PostUploader(self.backend, user, default_party_id=party_id)
        self.drafts = DraftStore(self.storage, self.uploader, connectivity=self.connectivity)

    def _load_user(self, user_id: str) -> Dict[str, Any]:
        """Author details for uploaded posts, from the (cached) profile."""
        profile = self.cached_api.get_user_profile(user_id) or {}
        return {
            'id': user_id,
            'name': profile.get('full_name'),
            'username': profile.get('username'),
            'avatar': profile.get('avatar_url'),
        }

    def sync(self) -> bool:
        """
        Upload pending drafts if the backend is reachable.

        Returns:
            bool: True if a sync ran and every draft uploaded.
        """
        if not self.drafts.has_pending:
            logger.info("No pending drafts to sync")
            return True

        if not self.connectivity.check():
            logger.warning("Offline, drafts stay queued until the connection returns")
            return False

        asyncio.run(self.drafts.sync_drafts())
        return not self.drafts.has_pending

    async def watch(self, interval: float, rounds: Optional[int] = None) -> None:
        """
        Probe connectivity every interval seconds; reconnecting syncs pending drafts.

        Args:
            interval: Seconds between probes.
            rounds: Stop after this many probes (None runs until interrupted).
        """
        count = 0
        while rounds is None or count < rounds:
            online = await asyncio.to_thread(self.connectivity.ping)
            # set_online runs on the loop thread; a reconnect sync is scheduled as a task
            self.connectivity.set_online(online)
            task = self.drafts.auto_sync_task
            if task is not None and not task.done():
                await task
            count += 1
            if rounds is None or count < rounds:
                await asyncio.sleep(interval)


def drafts_table(drafts: List[DraftPost]) -> pd.DataFrame:
    """Tabular view of drafts for the terminal."""
    rows = [{
        'id': draft.id,
        'status': draft.status.value,
        'retries': draft.retry_count,
        'content': truncate_text(draft.content, 40),
        'party': draft.party_id or '',
        'created': draft.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
        'error': draft.error_message or '',
    } for draft in drafts]
    return pd.DataFrame(rows, columns=DRAFT_COLUMNS)


def cache_table(contents: Dict[str, Dict[str, Any]]) -> pd.DataFrame:
    """Tabular view of cache contents (age and TTL in seconds)."""
    if not contents:
        return pd.DataFrame(columns=['key', 'age_s', 'ttl_s', 'expires_in_s'])
    frame = pd.DataFrame.from_dict(contents, orient='index')
    frame.index.name = 'key'
    frame['age_s'] = frame['age'] / 1000
    frame['ttl_s'] = frame['ttl'] / 1000
    frame['expires_in_s'] = (frame['ttl'] - frame['age']) / 1000
    return frame[['age_s', 'ttl_s', 'expires_in_s']].reset_index()


def print_frame(frame: pd.DataFrame, empty_message: str) -> None:
    if frame.empty:
        print(empty_message)
    else:
        print(frame.to_string(index=False))


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='fomo client core')
    parser.add_argument('--log-file', type=str, default=settings.LOG_FILE or None, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=settings.LOG_LEVEL.upper(), help='Logging level')
    parser.add_argument('--storage', type=str, choices=list(settings.STORAGE_BACKENDS), default=None,
                        help='Session storage backend (default from FOMO_STORAGE_BACKEND)')
    parser.add_argument('--user-id', type=str, default=None, help='Author of uploaded drafts')
    parser.add_argument('--party-id', type=str, default=None, help='Party for drafts that do not name one')

    commands = parser.add_subparsers(dest='command', required=True)

    drafts = commands.add_parser('drafts', help='Manage the offline draft queue')
    actions = drafts.add_subparsers(dest='action', required=True)

    actions.add_parser('list', help='Show queued drafts')

    add = actions.add_parser('add', help='Queue a new draft')
    add.add_argument('--content', type=str, default='')
    add.add_argument('--tags', type=str, default='', help='Comma-separated tags')
    add.add_argument('--media-url', type=str, default=None)
    add.add_argument('--media-type', type=str, choices=['image', 'video'], default='image')
    add.add_argument('--gif-url', type=str, default=None)
    add.add_argument('--location', type=str, default=None)
    add.add_argument('--preset-tag', type=str, default=None)
    add.add_argument('--party', type=str, default=None, help='Party the draft is posted to')

    update = actions.add_parser('update', help='Edit a draft')
    update.add_argument('draft_id')
    update.add_argument('--content', type=str, default=None)
    update.add_argument('--tags', type=str, default=None, help='Comma-separated tags')
    update.add_argument('--location', type=str, default=None)
    update.add_argument('--party', type=str, default=None)

    remove = actions.add_parser('remove', help='Delete a draft')
    remove.add_argument('draft_id')

    retry = actions.add_parser('retry', help='Re-queue a failed draft')
    retry.add_argument('draft_id')

    actions.add_parser('sync', help='Upload pending drafts now')

    watch = actions.add_parser('watch', help='Sync pending drafts whenever the connection returns')
    watch.add_argument('--interval', type=float, default=30.0, help='Seconds between connectivity probes')
    watch.add_argument('--rounds', type=int, default=None, help='Stop after this many probes')

    actions.add_parser('clear-uploaded', help='Remove drafts that were uploaded')

    profile = commands.add_parser('profile', help='Show a user profile through the cache')
    profile.add_argument('profile_user_id')
    profile.add_argument('--repeat', type=int, default=1, help='Read the profile this many times')
    profile.add_argument('--stats', action='store_true', help='Print cache statistics afterwards')

    commands.add_parser('config', help='Print the configuration summary')

    return parser.parse_args(argv)


def _split_tags(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [tag.strip() for tag in value.split(',') if tag.strip()]


def _require_draft(found: bool, draft_id: str) -> None:
    if not found:
        raise DraftNotFoundError(f"No draft with id {draft_id}")


def run_drafts_command(app: FomoApp, args) -> int:
    """Run one `drafts` action and return its exit code."""
    store = app.drafts

    if args.action == 'list':
        print_frame(drafts_table(store.drafts), "No drafts")
        return 0

    if args.action == 'add':
        media = {'url': args.media_url, 'type': args.media_type} if args.media_url else None
        draft = store.add_draft(
            content=args.content,
            tags=_split_tags(args.tags),
            media=media,
            gif_url=args.gif_url,
            location=args.location,
            preset_tag=args.preset_tag,
            party_id=args.party,
        )
        print(draft.id)
        return 0

    if args.action == 'update':
        updates = {}
        if args.content is not None:
            updates['content'] = args.content
        if args.tags is not None:
            updates['tags'] = _split_tags(args.tags)
        if args.location is not None:
            updates['location'] = args.location
        if args.party is not None:
            updates['party_id'] = args.party
        _require_draft(store.update_draft(args.draft_id, **updates), args.draft_id)
        return 0

    if args.action == 'remove':
        _require_draft(store.remove_draft(args.draft_id), args.draft_id)
        return 0

    if args.action == 'retry':
        _require_draft(store.retry_draft(args.draft_id), args.draft_id)
        return 0

    if args.action == 'sync':
        success = app.sync()
        print_frame(drafts_table(store.drafts), "No drafts")
        return 0 if success else 1

    if args.action == 'watch':
        asyncio.run(app.watch(args.interval, args.rounds))
        return 0

    if args.action == 'clear-uploaded':
        print(f"Removed {store.clear_uploaded_drafts()} uploaded draft(s)")
        return 0

    return 2


def run_profile_command(app: FomoApp, args) -> int:
    profile = None
    for _ in range(max(args.repeat, 1)):
        profile = app.cached_api.get_user_profile(args.profile_user_id)

    if profile is None:
        logger.warning(f"Profile {args.profile_user_id} not found")
        return 1

    print(json.dumps(profile, indent=2, default=str))
    if args.stats:
        stats = app.cached_api.get_cache_stats()
        print(f"Cache size: {stats['size']}  hit rate: {stats['hit_rate']:.1f}%  {stats['stats']}")
        print_frame(cache_table(stats['contents']), "Cache is empty")
    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    set_log_level(args.log_level)
    if args.log_file:
        setup_file_logging(args.log_file, args.log_level)

    if args.command == 'config':
        print(json.dumps(get_config_summary(), indent=2))
        return 0

    # Offline draft editing does not need backend credentials
    needs_backend = args.command == 'profile' or (
        args.command == 'drafts' and args.action in ('sync', 'watch')
    )

    try:
        app = FomoApp(
            storage_backend=args.storage,
            require_backend=needs_backend,
            user_id=args.user_id,
            party_id=args.party_id,
            initial_online=not (args.command == 'drafts' and args.action == 'watch'),
        )

        if args.command == 'drafts':
            exit_code = run_drafts_command(app, args)
        else:
            exit_code = run_profile_command(app, args)

    except ConfigurationError as e:
        logger.error(str(e))
        exit_code = 2
    except DraftValidationError as e:
        logger.error(f"Invalid draft: {e}")
        exit_code = 1
    except DraftNotFoundError as e:
        logger.error(str(e))
        exit_code = 1
    except StorageError as e:
        logger.error(f"Storage error: {e}", exc_info=True)
        exit_code = 2
    except FomoError as e:
        logger.error(f"fomo error: {e}", exc_info=True)
        exit_code = 2
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exit_code = 130

    logger.debug(f"fomo finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
