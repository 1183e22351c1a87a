"""Unittest base class for creating a clean test environment."""
import json
import logging
import os
import shutil
import tempfile
import unittest
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import patch
from urllib.parse import unquote

import requests
from PySide6 import QtCore, QtWidgets

from FamilyCost.core import auth
from FamilyCost.core import database
from FamilyCost.core import ledger
from FamilyCost.core import sync
from FamilyCost.core.models import make_entry
from FamilyCost.settings import lib


def make_response(status_code: int, body: Any = None) -> requests.Response:
    """Build a requests.Response with a JSON or raw body."""
    response = requests.Response()
    response.status_code = status_code
    if body is None:
        response._content = b''
    elif isinstance(body, (bytes, str)):
        response._content = body.encode('utf-8') if isinstance(body, str) else body
    else:
        response._content = json.dumps(body).encode('utf-8')
    return response


class FakeStore:
    """In-memory stand-in for the key-value HTTP store, used in place of the requests session.

    Attributes:
        data (dict[str, bytes]): Stored bodies keyed by the last path segment of the url.
        fail (int): Number of upcoming requests to answer with ``fail_status``.
        fail_status (int): Status code of the failing responses.
        requests (list[tuple]): ``(method, url, kwargs)`` of every request received.
    """

    def __init__(self) -> None:
        self.data: Dict[str, bytes] = {}
        self.fail: int = 0
        self.fail_status: int = 503
        self.requests: List[tuple] = []

    @staticmethod
    def _key(url: str) -> str:
        return unquote(url.rsplit('/', 1)[-1])

    def put_payload(self, key: str, entries: List[Any], updated_at: int) -> None:
        doc = {'entries': [e.to_dict() for e in entries], 'updatedAt': updated_at}
        self.data[key] = json.dumps(doc).encode('utf-8')

    def get_payload(self, key: str) -> Optional[Dict[str, Any]]:
        if key not in self.data:
            return None
        return json.loads(self.data[key].decode('utf-8'))

    def _failing(self) -> Optional[requests.Response]:
        if self.fail > 0:
            self.fail -= 1
            return make_response(self.fail_status, 'unavailable')
        return None

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.requests.append(('GET', url, kwargs))
        failing = self._failing()
        if failing is not None:
            return failing
        key = self._key(url)
        if key not in self.data:
            return make_response(404, 'not found')
        return make_response(200, self.data[key])

    def post(self, url: str, data: bytes = b'', **kwargs: Any) -> requests.Response:
        self.requests.append(('POST', url, kwargs))
        failing = self._failing()
        if failing is not None:
            return failing
        self.data[self._key(url)] = data
        return make_response(200, 'ok')

    def close(self) -> None:
        pass


def entry(date: str = '2025-03-10', income: int = 1000, cost: int = 200, bazar: int = 100, unit: str = 'Car'):
    """Make an entry with one unit and one bazar item."""
    return make_entry(
        date,
        {unit: {'income': income, 'cost': cost}},
        [{'name': 'Rice', 'cost': bazar}] if bazar else [],
        unit_names=lib.settings.get_section('units'),
    )


@contextmanager
def mute_ui_signals():
    from FamilyCost.ui.actions import signals
    blocker = QtCore.QSignalBlocker(signals)  # blocks every signal in `signals`
    try:
        yield
    finally:
        del blocker


class BaseTestCase(unittest.TestCase):
    """Base test case that sets up and tears down a temporary config directory.

    The remote store is replaced by a :class:`FakeStore` available as ``self.store``.
    """

    config_paths: lib.ConfigPaths
    backup_dir: Optional[str]
    store: FakeStore

    def setUp(self) -> None:
        """Set up a clean config directory and reinitialize all APIs."""
        # Ensure headless Qt
        if 'QT_QPA_PLATFORM' not in os.environ:
            os.environ['QT_QPA_PLATFORM'] = 'offscreen'
            logging.debug('QT_QPA_PLATFORM set to offscreen for headless testing.')

        # Ensure a QApplication is available
        if not QtWidgets.QApplication.instance():
            QtWidgets.QApplication([])  # type: ignore
            logging.debug('QtWidgets.QApplication initialized for tests.')

        self.store = FakeStore()
        patch('FamilyCost.core.remote.get_session', return_value=self.store).start()

        # Stop the previous sync manager before replacing it
        if sync.sync is not None:
            sync.sync.stop()
            sync.sync.wait()

        # Prepare config paths
        self.config_paths = lib.ConfigPaths()
        self.backup_dir = None
        config_dir: Path = self.config_paths.config_dir

        # Backup and clear the existing config directory
        if config_dir.exists():
            self.backup_dir = tempfile.mkdtemp(prefix='familycost_test_')
            shutil.copytree(config_dir, self.backup_dir, dirs_exist_ok=True)
            shutil.rmtree(config_dir)
            logging.debug(f'Backed up and removed config directory {config_dir}')

        with mute_ui_signals():
            # Reinitialize settings API
            lib.settings = lib.SettingsAPI()

            # Reinitialize database API
            database.database = None
            database.database = database.DatabaseAPI()

            # Reinitialize sync, ledger and auth
            sync.sync = sync.SyncAPI()
            ledger.ledger = ledger.LedgerAPI()
            auth.auth = auth.AuthAPI()
        logging.debug('APIs reinitialized.')

    def tearDown(self) -> None:
        """Finish running workers, then restore any original config directory."""
        sync.sync.stop()
        sync.sync.wait()
        patch.stopall()

        if self.backup_dir and os.path.isdir(self.backup_dir):
            config_dir: Path = self.config_paths.config_dir

            if config_dir.exists():
                shutil.rmtree(config_dir)

            shutil.copytree(self.backup_dir, config_dir, dirs_exist_ok=True)
            shutil.rmtree(self.backup_dir)
            logging.debug(f'Restored config directory {config_dir}')

    def set_fast_retries(self, max_retries: int = 0) -> None:
        """Make failing pulls give up without waiting."""
        config = lib.settings.get_section('sync')
        config['max_retries'] = max_retries
        config['retry_delay'] = 0
        lib.settings.set_section('sync', config)

    def sign_in(self, sync_token: Optional[str] = None):
        """Sign in with the configured admin account without starting sync."""
        with mute_ui_signals():
            user = auth.auth.login('admin@familycost.app', '123456')
            if sync_token:
                user.sync_token = sync_token
                database.DatabaseAPI.save_user(user)
        return user


class ConfigPathsSmokeTest(BaseTestCase):
    def test_real_paths_exist(self):
        cp = lib.ConfigPaths()
        self.assertTrue(cp.settings_template.exists())
        self.assertTrue(cp.settings_path.exists())
        self.assertTrue(cp.db_dir.is_dir())
