"""
Tests for fomo Main Application

Tests cover argument parsing, the terminal tables, the sync and watch
workflows, and exit codes of the command line entry point.
"""

import asyncio
import json
import pytest
import threading
from unittest.mock import MagicMock, patch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import FomoApp, main, parse_arguments, drafts_table, cache_table, _split_tags, DRAFT_COLUMNS
from data.models import DraftStatus
from utils.exceptions import ConfigurationError


@pytest.fixture
def app(memory_storage):
    """A FomoApp on in-memory storage with configuration checks skipped."""
    with patch('main.validate_settings'), \
         patch('main.create_storage', return_value=memory_storage):
        yield FomoApp(require_backend=False)


@pytest.fixture
def run_cli(memory_storage):
    """Run main() against one shared in-memory storage."""
    def _run(*argv):
        with patch('main.validate_settings'), \
             patch('main.create_storage', return_value=memory_storage):
            return main(list(argv))
    return _run


# =============================================================================
# Argument Parsing Tests
# =============================================================================

class TestParseArguments:
    """Tests for parse_arguments()."""

    def test_drafts_add(self):
        args = parse_arguments(['--party-id', 'p1', 'drafts', 'add', '--content', 'hi', '--tags', 'a, b'])

        assert args.command == 'drafts'
        assert args.action == 'add'
        assert args.content == 'hi'
        assert args.party_id == 'p1'
        assert _split_tags(args.tags) == ['a', 'b']

    def test_profile(self):
        args = parse_arguments(['profile', 'u1', '--repeat', '3', '--stats'])

        assert args.profile_user_id == 'u1'
        assert args.repeat == 3
        assert args.stats is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_split_tags(self):
        assert _split_tags(None) is None
        assert _split_tags('') == []
        assert _split_tags(' house ,, techno ') == ['house', 'techno']


# =============================================================================
# Table Tests
# =============================================================================

class TestTables:
    """Tests for the pandas views."""

    def test_drafts_table(self, draft_factory):
        drafts = [
            draft_factory(content="Doors at 9", party_id='p1'),
            draft_factory(status=DraftStatus.FAILED, error_message="timeout", retry_count=2),
        ]

        frame = drafts_table(drafts)

        assert list(frame.columns) == DRAFT_COLUMNS
        assert list(frame['status']) == ['draft', 'failed']
        assert list(frame['retries']) == [0, 2]
        assert frame.iloc[0]['party'] == 'p1'
        assert frame.iloc[1]['error'] == 'timeout'

    def test_drafts_table_empty(self):
        frame = drafts_table([])

        assert frame.empty
        assert list(frame.columns) == DRAFT_COLUMNS

    def test_cache_table(self):
        frame = cache_table({
            'user-profile-u1': {'data': 'x', 'timestamp': 0, 'ttl': 5000, 'expires_at': 5000, 'age': 1000},
        })

        row = frame.iloc[0]
        assert row['key'] == 'user-profile-u1'
        assert row['age_s'] == 1.0
        assert row['ttl_s'] == 5.0
        assert row['expires_in_s'] == 4.0

    def test_cache_table_empty(self):
        assert cache_table({}).empty


# =============================================================================
# Workflow Tests
# =============================================================================

class TestSync:
    """Tests for FomoApp.sync()."""

    def test_nothing_pending(self, app):
        app.connectivity.check = MagicMock()

        assert app.sync() is True
        app.connectivity.check.assert_not_called()

    def test_offline_keeps_drafts(self, app, succeeding_uploader):
        app.drafts.uploader = succeeding_uploader
        app.drafts.add_draft("queued")
        app.connectivity.check = MagicMock(return_value=False)

        assert app.sync() is False
        assert succeeding_uploader.calls == []
        assert app.drafts.has_pending

    def test_online_uploads(self, app, succeeding_uploader):
        app.drafts.uploader = succeeding_uploader
        app.drafts.add_draft("one")
        app.drafts.add_draft("two")
        app.connectivity.check = MagicMock(return_value=True)

        assert app.sync() is True
        assert len(succeeding_uploader.calls) == 2

    def test_failures_reported(self, app, failing_uploader):
        app.drafts.uploader = failing_uploader
        app.drafts.add_draft("one")
        app.connectivity.check = MagicMock(return_value=True)

        assert app.sync() is False
        assert app.drafts.drafts[0].status == DraftStatus.FAILED


class TestWatch:
    """Tests for FomoApp.watch()."""

    def test_reconnect_syncs_pending(self, memory_storage, succeeding_uploader):
        with patch('main.validate_settings'), \
             patch('main.create_storage', return_value=memory_storage):
            app = FomoApp(require_backend=False, initial_online=False)
        app.drafts.uploader = succeeding_uploader
        app.drafts.add_draft("written on the subway")

        ping_threads = []

        def ping():
            ping_threads.append(threading.get_ident())
            return True

        app.connectivity.ping = ping
        asyncio.run(app.watch(0, rounds=2))

        assert len(succeeding_uploader.calls) == 1
        assert app.drafts.drafts[0].status == DraftStatus.UPLOADED
        assert app.drafts.auto_sync_task is not None

        # The blocking HTTP check runs in a worker thread, off the event loop
        assert len(ping_threads) == 2
        assert threading.get_ident() not in ping_threads

    def test_offline_check_keeps_drafts(self, memory_storage, succeeding_uploader):
        with patch('main.validate_settings'), \
             patch('main.create_storage', return_value=memory_storage):
            app = FomoApp(require_backend=False, initial_online=False)
        app.drafts.uploader = succeeding_uploader
        app.drafts.add_draft("no signal")
        app.connectivity.ping = MagicMock(return_value=False)

        asyncio.run(app.watch(0, rounds=3))

        assert app.connectivity.ping.call_count == 3
        assert succeeding_uploader.calls == []
        assert app.drafts.has_pending


# =============================================================================
# Command Line Tests
# =============================================================================

class TestMain:
    """Tests for main() exit codes and output."""

    def test_add_then_list(self, run_cli, capsys):
        assert run_cli('drafts', 'add', '--content', 'See you there', '--tags', 'rooftop') == 0
        draft_id = capsys.readouterr().out.strip()

        assert run_cli('drafts', 'list') == 0
        output = capsys.readouterr().out

        assert draft_id.startswith('draft-')
        assert draft_id in output
        assert 'See you there' in output

    def test_update_retry_remove(self, run_cli, capsys):
        run_cli('drafts', 'add', '--content', 'first')
        draft_id = capsys.readouterr().out.strip()

        assert run_cli('drafts', 'update', draft_id, '--content', 'edited') == 0
        assert run_cli('drafts', 'retry', draft_id) == 0
        assert run_cli('drafts', 'remove', draft_id) == 0

        run_cli('drafts', 'list')
        assert 'No drafts' in capsys.readouterr().out

    def test_unknown_draft_exit_code(self, run_cli):
        assert run_cli('drafts', 'remove', 'draft-missing') == 1
        assert run_cli('drafts', 'retry', 'draft-missing') == 1

    def test_empty_draft_rejected(self, run_cli):
        assert run_cli('drafts', 'add') == 1

    def test_clear_uploaded(self, run_cli, capsys):
        assert run_cli('drafts', 'clear-uploaded') == 0
        assert 'Removed 0 uploaded draft(s)' in capsys.readouterr().out

    def test_configuration_error(self):
        with patch('main.validate_settings', side_effect=ConfigurationError("Missing SUPABASE_URL")):
            assert main(['profile', 'u1']) == 2

    def test_storage_option_is_validated(self):
        with patch('main.validate_settings',
                   side_effect=ConfigurationError("Database storage selected")) as mock_validate, \
             patch('main.create_storage') as mock_create_storage:
            assert main(['--storage', 'database', 'drafts', 'list']) == 2

        mock_validate.assert_called_once_with(require_backend=False, storage_backend='database')
        mock_create_storage.assert_not_called()

    def test_config_summary(self, capsys):
        assert main(['config']) == 0

        summary = json.loads(capsys.readouterr().out)
        assert set(summary) == {'backend', 'storage', 'cache', 'connectivity'}

    def test_profile_not_found(self, run_cli):
        with patch('main.CachedApi.get_user_profile', return_value=None):
            assert run_cli('profile', 'u1') == 1

    def test_profile_with_stats(self, run_cli, capsys):
        with patch('main.BackendService.select', return_value={'id': 'u1', 'username': 'ava'}) as mock_select:
            assert run_cli('profile', 'u1', '--repeat', '3', '--stats') == 0

        output = capsys.readouterr().out
        assert '"username": "ava"' in output
        assert 'hit rate: 66.7%' in output
        mock_select.assert_called_once()
