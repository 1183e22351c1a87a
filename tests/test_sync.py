"""
Tests for FamilyCost.core.sync.

Reconciliation is exercised against the in-memory store from tests.base: forced
and watermark gated pulls, seeding an empty remote, pushes, failures and polling.
"""
from FamilyCost.core import sync as sync_module
from FamilyCost.core.database import DatabaseAPI
from FamilyCost.core.ledger import LedgerAPI
from FamilyCost.core.models import RemotePayload
from FamilyCost.core.sync import SyncState
from FamilyCost.core import ledger as ledger_module
from FamilyCost.settings import lib
from FamilyCost.ui.actions import signals
from tests.base import BaseTestCase, entry, mute_ui_signals


class SyncTests(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.set_fast_retries()
        self.user = self.sign_in()
        self.sync = sync_module.sync
        self.ledger: LedgerAPI = ledger_module.ledger

        self.states = []
        signals.syncStateChanged.connect(self.record_state)

    def tearDown(self) -> None:
        signals.syncStateChanged.disconnect(self.record_state)
        super().tearDown()

    def record_state(self, state: str) -> None:
        self.states.append(state)

    def test_forced_pull_replaces_local(self):
        remote_entries = [entry('2025-03-01'), entry('2025-03-02')]
        self.store.put_payload('master_record', remote_entries, 100)

        self.assertTrue(self.sync.pull(force=True))
        self.assertEqual(self.ledger.entries, remote_entries)
        self.assertEqual(DatabaseAPI.get_entries(), remote_entries)
        self.assertEqual(self.sync.watermark, 100)
        self.assertEqual(self.sync.state, SyncState.Synced)

    def test_pull_respects_watermark(self):
        DatabaseAPI.set_watermark(100)
        with mute_ui_signals():
            self.ledger.replace_entries([entry('2025-03-05')])
        local = self.ledger.entries

        self.store.put_payload('master_record', [entry('2025-03-01')], 100)
        self.assertFalse(self.sync.pull())
        self.assertEqual(self.ledger.entries, local)
        self.assertEqual(self.sync.state, SyncState.Synced)

        newer = [entry('2025-03-09')]
        self.store.put_payload('master_record', newer, 101)
        self.assertTrue(self.sync.pull())
        self.assertEqual(self.ledger.entries, newer)
        self.assertEqual(self.sync.watermark, 101)

    def test_force_ignores_watermark(self):
        DatabaseAPI.set_watermark(500)
        older = [entry('2025-03-01')]
        self.store.put_payload('master_record', older, 100)
        self.assertTrue(self.sync.pull(force=True))
        self.assertEqual(self.ledger.entries, older)
        self.assertEqual(self.sync.watermark, 100)

    def test_empty_remote_is_seeded_from_local(self):
        local = [entry('2025-03-01')]
        with mute_ui_signals():
            self.ledger.replace_entries(local)

        self.assertFalse(self.sync.pull(force=True))
        self.sync.wait()

        doc = self.store.get_payload('master_record')
        self.assertIsNotNone(doc)
        self.assertEqual(RemotePayload.from_dict(doc).entries, local)
        self.assertEqual(self.ledger.entries, local)
        self.assertEqual(self.sync.watermark, doc['updatedAt'])
        self.assertEqual(self.sync.state, SyncState.Synced)

    def test_empty_remote_and_empty_local(self):
        self.assertFalse(self.sync.pull(force=True))
        self.sync.wait()
        self.assertIsNone(self.store.get_payload('master_record'))
        self.assertEqual(self.sync.state, SyncState.Synced)

    def test_pull_failure_sets_error(self):
        local = [entry('2025-03-01')]
        with mute_ui_signals():
            self.ledger.replace_entries(local)
        self.store.fail = 10

        self.assertFalse(self.sync.pull(force=True))
        self.assertEqual(self.sync.state, SyncState.Error)
        self.assertTrue(self.sync.last_error)
        self.assertEqual(self.ledger.entries, local)
        self.assertIn('error', self.states)

    def test_pull_retries(self):
        self.set_fast_retries(max_retries=2)
        self.store.put_payload('master_record', [entry()], 10)
        self.store.fail = 2

        self.assertTrue(self.sync.pull(force=True))
        self.assertEqual(len(self.store.requests), 3)
        self.assertEqual(self.sync.last_error, '')

    def test_invalid_payload_not_retried(self):
        self.set_fast_retries(max_retries=3)
        self.store.data['master_record'] = b'{"entries": 1}'
        self.assertFalse(self.sync.pull(force=True))
        self.assertEqual(len(self.store.requests), 1)
        self.assertEqual(self.sync.state, SyncState.Error)

    def test_sync_token_selects_key(self):
        self.sign_in(sync_token='family-42')
        self.store.put_payload('family-42', [entry('2025-03-03')], 7)
        self.store.put_payload('master_record', [entry('2025-03-04')], 8)

        self.assertTrue(self.sync.pull(force=True))
        self.assertEqual([e.date for e in self.ledger.entries], ['2025-03-03'])

    def test_pull_async(self):
        remote_entries = [entry('2025-03-01')]
        self.store.put_payload('master_record', remote_entries, 55)

        self.assertTrue(self.sync.pull_async(force=True))
        self.assertTrue(self.sync.in_flight)
        self.assertFalse(self.sync.pull_async())
        self.sync.wait()

        self.assertFalse(self.sync.in_flight)
        self.assertEqual(self.ledger.entries, remote_entries)
        self.assertEqual(self.sync.watermark, 55)
        self.assertEqual(self.states, ['syncing', 'synced'])
        self.assertEqual(len(self.store.requests), 1)

    def test_forced_pull_queued_while_in_flight(self):
        self.store.put_payload('master_record', [entry('2025-03-01')], 55)
        self.assertTrue(self.sync.pull_async())
        self.assertFalse(self.sync.pull_async(force=True))
        self.sync.wait()

        self.assertFalse(self.sync.in_flight)
        self.assertEqual(len(self.store.requests), 2)
        self.assertEqual(self.states, ['syncing', 'synced', 'syncing', 'synced'])

    def test_token_change_while_pulling_discards_old_key(self):
        from FamilyCost.core import auth as auth_module

        self.store.put_payload('master_record', [entry('2025-03-01')], 100)
        new = [entry('2025-03-20')]
        self.store.put_payload('newtoken', new, 50)

        self.assertTrue(self.sync.pull_async())
        auth_module.auth.set_sync_token('newtoken')
        self.sync.wait()

        self.assertEqual(self.ledger.entries, new)
        self.assertEqual(self.sync.watermark, 50)

        self.assertFalse(self.sync.pull())
        self.assertEqual(self.ledger.entries, new)

    def test_push_after_sign_out_keeps_watermark(self):
        from FamilyCost.core import auth as auth_module

        self.sync.start()
        self.sync.wait()
        self.assertTrue(self.sync.push_async([entry()]))
        auth_module.auth.logout()
        self.sync.wait()

        self.assertIsNotNone(self.store.get_payload('master_record'))
        self.assertEqual(self.sync.watermark, 0)
        self.assertEqual(self.sync.state, SyncState.Idle)

    def test_pull_async_error(self):
        self.store.fail = 10
        self.assertTrue(self.sync.pull_async())
        self.sync.wait()
        self.assertFalse(self.sync.in_flight)
        self.assertEqual(self.sync.state, SyncState.Error)

    def test_pull_async_discarded_after_sign_out(self):
        self.store.put_payload('master_record', [entry()], 55)
        self.sync.pull_async(force=True)
        with mute_ui_signals():
            DatabaseAPI.save_user(None)
        self.sync.wait()
        self.assertEqual(self.ledger.entries, [])
        self.assertEqual(self.sync.watermark, 0)

    def test_push(self):
        local = [entry('2025-03-01')]
        self.assertTrue(self.sync.push(local))
        doc = self.store.get_payload('master_record')
        self.assertEqual(RemotePayload.from_dict(doc).entries, local)
        self.assertEqual(self.sync.watermark, doc['updatedAt'])

    def test_push_failure(self):
        self.store.fail = 1
        self.assertFalse(self.sync.push([entry()]))
        self.assertEqual(self.sync.state, SyncState.Error)
        self.assertEqual(self.sync.watermark, 0)

    def test_push_async_needs_user(self):
        with mute_ui_signals():
            DatabaseAPI.save_user(None)
        self.assertFalse(self.sync.push_async([entry()]))
        self.assertEqual(self.store.requests, [])

    def test_push_async_single_attempt(self):
        self.set_fast_retries(max_retries=3)
        self.store.fail = 5
        self.assertTrue(self.sync.push_async([entry()]))
        self.sync.wait()
        self.assertEqual(len(self.store.requests), 1)
        self.assertEqual(self.sync.state, SyncState.Error)

    def test_pushed_then_not_reapplied(self):
        local = [entry('2025-03-01')]
        self.sync.push(local)
        with mute_ui_signals():
            self.ledger.replace_entries(local)
        self.assertFalse(self.sync.pull())

    def test_start_stop(self):
        self.store.put_payload('master_record', [entry()], 5)
        self.sync.start()
        self.assertTrue(self.sync.is_running)
        self.assertEqual(self.sync._timer.interval(), 6000)
        self.sync.wait()
        self.assertEqual(self.sync.watermark, 5)

        self.sync.stop()
        self.assertFalse(self.sync.is_running)
        self.assertEqual(self.sync.state, SyncState.Idle)

    def test_start_needs_user(self):
        with mute_ui_signals():
            DatabaseAPI.save_user(None)
        self.sync.start()
        self.assertFalse(self.sync.is_running)

    def test_interval_follows_settings(self):
        config = lib.settings.get_section('sync')
        config['interval'] = 2.5
        lib.settings.set_section('sync', config)
        self.assertEqual(self.sync.interval(), 2500)
        self.assertEqual(self.sync._timer.interval(), 2500)

    def test_sync_requested_forces_pull(self):
        DatabaseAPI.set_watermark(500)
        self.store.put_payload('master_record', [entry('2025-03-01')], 100)
        signals.syncRequested.emit()
        self.sync.wait()
        self.assertEqual(len(self.ledger.entries), 1)

    def test_user_changed_starts_and_stops(self):
        signals.userChanged.emit(self.user)
        self.assertTrue(self.sync.is_running)
        self.sync.wait()

        signals.userChanged.emit(None)
        self.assertFalse(self.sync.is_running)
