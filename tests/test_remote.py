"""
Tests for FamilyCost.core.remote: key resolution, the pull/push wire format,
retries and the worker thread.
"""
import json
from unittest.mock import MagicMock, patch

import requests

from FamilyCost.core import remote
from FamilyCost.core.models import AuthUser, RemotePayload
from FamilyCost.settings import lib
from FamilyCost.status import status
from tests.base import BaseTestCase, entry, make_response


class KeyTests(BaseTestCase):
    def test_sync_token_wins(self):
        self.assertEqual(remote.get_key(AuthUser(email='a@b.c', sync_token=' family ')), 'family')

    def test_default_key(self):
        self.assertEqual(remote.get_key(AuthUser(email='a@b.c')), 'master_record')
        self.assertEqual(remote.get_key(None), 'master_record')

    def test_no_key(self):
        config = lib.settings.get_section('remote')
        config['key'] = ' '
        lib.settings.set_section('remote', config)
        with self.assertRaises(status.SyncTokenNotConfiguredException):
            remote.get_key(AuthUser(email='a@b.c'))

    def test_url(self):
        self.assertEqual(remote.get_url('master_record'), 'https://kvdb.io/FamilyCost_Ledger/master_record')
        self.assertEqual(remote.get_url('a b/c'), 'https://kvdb.io/FamilyCost_Ledger/a%20b%2Fc')

    def test_url_needs_bucket(self):
        config = lib.settings.get_section('remote')
        config['bucket'] = ''
        lib.settings.set_section('remote', config)
        with self.assertRaises(status.SettingsInvalidException):
            remote.get_url('k')


class PullPushTests(BaseTestCase):
    def test_missing_key_is_empty(self):
        payload = remote.pull_payload('nothing-here')
        self.assertTrue(payload.is_empty)

    def test_pull(self):
        entries = [entry('2025-03-01'), entry('2025-03-02')]
        self.store.put_payload('k', entries, 42)

        payload = remote.pull_payload('k')
        self.assertEqual(payload.entries, entries)
        self.assertEqual(payload.updated_at, 42)

        method, url, kwargs = self.store.requests[-1]
        self.assertEqual(method, 'GET')
        self.assertIn('cb', kwargs['params'])
        self.assertEqual(kwargs['timeout'], 10.0)

    def test_pull_invalid_body(self):
        self.store.data['k'] = b'<html>'
        with self.assertRaises(status.RemotePayloadInvalidException):
            remote.pull_payload('k')

        self.store.data['k'] = json.dumps({'entries': 'nope'}).encode('utf-8')
        with self.assertRaises(status.RemotePayloadInvalidException):
            remote.pull_payload('k')

    def test_pull_http_error(self):
        self.store.fail = 1
        with self.assertRaises(status.RemoteUnavailableException):
            remote.pull_payload('k')

    def test_pull_transport_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError('offline')
        with patch('FamilyCost.core.remote.get_session', return_value=session):
            with self.assertRaises(status.RemoteUnavailableException):
                remote.pull_payload('k')

    def test_push(self):
        entries = [entry('2025-03-01')]
        updated_at = remote.push_payload('k', entries)

        doc = self.store.get_payload('k')
        self.assertEqual(doc['updatedAt'], updated_at)
        self.assertEqual(RemotePayload.from_dict(doc).entries, entries)

        method, url, kwargs = self.store.requests[-1]
        self.assertEqual(method, 'POST')
        self.assertEqual(kwargs['headers']['Content-Type'], 'text/plain')

    def test_push_error(self):
        self.store.fail = 1
        self.store.fail_status = 400
        with self.assertRaises(status.RemoteUnavailableException):
            remote.push_payload('k', [])


class RetryTests(BaseTestCase):
    def test_retries_until_success(self):
        func = MagicMock(side_effect=[
            status.RemoteUnavailableException(),
            status.RemoteUnavailableException(),
            'ok',
        ])
        func.__name__ = 'func'
        self.assertEqual(remote.call_with_retries(func, max_attempts=3, wait_seconds=0), 'ok')
        self.assertEqual(func.call_count, 3)

    def test_gives_up(self):
        self.store.fail = 5
        with self.assertRaises(status.RemoteUnavailableException):
            remote.call_with_retries(remote.pull_payload, 'k', max_attempts=2, wait_seconds=0)
        self.assertEqual(len(self.store.requests), 2)

    def test_configuration_errors_not_retried(self):
        func = MagicMock(side_effect=status.SyncTokenNotConfiguredException())
        func.__name__ = 'func'
        with self.assertRaises(status.SyncTokenNotConfiguredException):
            remote.call_with_retries(func, max_attempts=3, wait_seconds=0)
        self.assertEqual(func.call_count, 1)

    def test_worker(self):
        self.store.put_payload('k', [entry()], 7)
        results = []
        errors = []

        worker = remote.AsyncWorker(remote.pull_payload, 'k', max_attempts=1, wait_seconds=0)
        worker.resultReady.connect(results.append)
        worker.errorOccurred.connect(errors.append)
        worker.start()
        worker.wait(5000)
        from PySide6 import QtCore
        QtCore.QCoreApplication.processEvents()

        self.assertEqual(errors, [])
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].updated_at, 7)

    def test_worker_error(self):
        self.store.fail = 3
        errors = []

        worker = remote.AsyncWorker(remote.pull_payload, 'k', max_attempts=2, wait_seconds=0)
        worker.errorOccurred.connect(errors.append)
        worker.start()
        worker.wait(5000)
        from PySide6 import QtCore
        QtCore.QCoreApplication.processEvents()

        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], status.RemoteUnavailableException)
        self.assertEqual(self.store.fail, 1)

    def test_session_cached(self):
        patch.stopall()
        remote.clear_session()
        try:
            self.assertIs(remote.get_session(), remote.get_session())
            self.assertIsInstance(remote.get_session(), requests.Session)
        finally:
            remote.clear_session()
