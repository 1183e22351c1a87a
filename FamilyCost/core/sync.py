"""Sync manager keeping the local ledger and the remote document in step.

Reconciliation is last-writer-wins on the document timestamp:

- Pull: fetch the remote document; if this is a forced pull (first load, manual
  retry) or its ``updatedAt`` is newer than the watermark, it replaces the local
  entries and the watermark advances. An empty remote never wipes a non-empty
  local ledger; the local entries are pushed to seed the key instead.
- Push: every local change sends the full entry list with a fresh ``updatedAt``;
  on success the watermark advances to the pushed value.
- Polling: a timer pulls every ``sync.interval`` seconds. A poll is skipped while
  another pull is in flight; a forced pull is queued and runs once it finishes.
- Results of requests started before the last ``start()`` or ``stop()`` are
  discarded, so a pull of a previous key never lands in the current ledger.

Concurrent writers are not reconciled. The later push wins.
"""
import enum
import logging
from typing import List, Optional, Set

from PySide6 import QtCore

from . import remote
from .database import DatabaseAPI
from .models import DailyEntry, RemotePayload
from ..settings import lib
from ..status import status


class SyncState(enum.StrEnum):
    """Enum for the sync indicator."""
    Idle = 'idle'
    Syncing = 'syncing'
    Synced = 'synced'
    Error = 'error'


class SyncAPI(QtCore.QObject):
    """Poll the remote store and push local edits.

    The state flag is broadcast with ``signals.syncStateChanged``.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._state: SyncState = SyncState.Idle
        self._last_error: str = ''
        self._in_flight: bool = False
        self._pending_force: bool = False
        self._queued_force: Optional[bool] = None
        self._generation: int = 0
        self._pull_generation: int = 0
        self._workers: Set[remote.AsyncWorker] = set()

        self._timer = QtCore.QTimer(self)
        self._timer.setSingleShot(False)
        self._timer.timeout.connect(self.poll)

        self._connect_signals()

    def _connect_signals(self) -> None:
        from ..ui.actions import signals

        @QtCore.Slot(str)
        def on_config_changed(section: str) -> None:
            if section == 'sync':
                self.update_interval()
            elif section == 'remote':
                remote.clear_session()
                if self.is_running:
                    self.restart()

        signals.configSectionChanged.connect(on_config_changed)

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_error(self) -> str:
        """Message of the last failure, empty once a sync succeeds."""
        return self._last_error

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    @property
    def generation(self) -> int:
        """Bumped by start() and stop(). Results of older requests are dropped."""
        return self._generation

    @property
    def watermark(self) -> int:
        return DatabaseAPI.get_watermark()

    def set_state(self, state: SyncState, error: str = '') -> None:
        """Set the sync state and broadcast changes.

        Args:
            state: The new state.
            error: Failure message, kept when the state is ``error``.
        """
        self._last_error = error if state == SyncState.Error else ''
        if state == self._state:
            return

        logging.debug(f'Sync state: {self._state} -> {state}')
        self._state = state

        from ..ui.actions import signals
        signals.syncStateChanged.emit(state.value)

    def interval(self) -> int:
        """Polling interval in milliseconds."""
        return int(float(lib.settings.get_section('sync')['interval']) * 1000)

    @QtCore.Slot()
    def update_interval(self) -> None:
        self._timer.setInterval(self.interval())
        logging.debug(f'Sync interval set to {self._timer.interval()}ms')

    def _retry_kwargs(self) -> dict:
        config = lib.settings.get_section('sync')
        return {
            'max_attempts': int(config['max_retries']) + 1,
            'wait_seconds': float(config['retry_delay']),
        }

    def _key(self) -> str:
        user = DatabaseAPI.get_user()
        if user is None:
            raise status.NotAuthenticatedException
        return remote.get_key(user)

    @QtCore.Slot()
    def start(self) -> None:
        """Start polling, beginning with a forced pull. Does nothing without a signed-in user."""
        if DatabaseAPI.get_user() is None:
            logging.debug('No user signed in, not starting sync.')
            return

        logging.info('Starting sync.')
        self._generation += 1
        self.update_interval()
        self._timer.start()
        self.pull_async(force=True)

    @QtCore.Slot()
    def stop(self) -> None:
        """Stop polling. Requests already in flight still finish but their results are dropped."""
        if self._timer.isActive():
            logging.info('Stopping sync.')
        self._timer.stop()
        self._generation += 1
        self._queued_force = None
        self.set_state(SyncState.Idle)

    @QtCore.Slot()
    def restart(self) -> None:
        self.stop()
        self.start()

    @QtCore.Slot()
    def poll(self) -> None:
        self.pull_async(force=False)

    @QtCore.Slot()
    def force_retry(self) -> None:
        """Pull now and apply the remote document whatever its timestamp."""
        logging.info('Forced sync requested.')
        self.pull_async(force=True)

    def apply_remote(self, payload: RemotePayload, force: bool = False) -> bool:
        """Reconcile a pulled remote document with the local ledger.

        Args:
            payload: The pulled document.
            force: Apply the document even if it is not newer than the watermark.

        Returns:
            bool: True if the local entries were replaced.
        """
        from .ledger import ledger

        watermark = DatabaseAPI.get_watermark()

        if payload.is_empty:
            if ledger.entries:
                logging.info('Remote store is empty, seeding it with the local ledger.')
                self.push_async(ledger.entries)
            else:
                self.set_state(SyncState.Synced)
            return False

        if not force and payload.updated_at <= watermark:
            logging.debug(f'Remote is not newer (remote={payload.updated_at}, watermark={watermark}).')
            self.set_state(SyncState.Synced)
            return False

        logging.info(
            f'Applying remote ledger: {len(payload.entries)} entries, '
            f'updatedAt={payload.updated_at} (watermark={watermark}, force={force}).'
        )
        ledger.replace_entries(payload.entries)
        DatabaseAPI.set_watermark(payload.updated_at)
        self.set_state(SyncState.Synced)
        return True

    def pull(self, force: bool = False) -> bool:
        """Pull and apply the remote document on the calling thread.

        Failures are logged and turned into the ``error`` state.

        Args:
            force: Apply the document even if it is not newer than the watermark.

        Returns:
            bool: True if the local entries were replaced.
        """
        if self._in_flight:
            self._queue_pull(force)
            return False

        self._in_flight = True
        self.set_state(SyncState.Syncing)
        try:
            payload = remote.call_with_retries(remote.pull_payload, self._key(), **self._retry_kwargs())
            return self.apply_remote(payload, force=force)
        except status.BaseStatusException as ex:
            logging.error(f'Pull failed: {ex}')
            self.set_state(SyncState.Error, str(ex))
            return False
        finally:
            self._in_flight = False

    def pull_async(self, force: bool = False) -> bool:
        """Pull the remote document on a worker thread.

        Args:
            force: Apply the document even if it is not newer than the watermark.

        Returns:
            bool: True if a pull was started, False if one was already in flight or
            there is nothing to pull from. A forced pull asked for while another
            pull is in flight runs when that one finishes.
        """
        if self._in_flight:
            self._queue_pull(force)
            return False

        try:
            key = self._key()
        except status.BaseStatusException as ex:
            self.set_state(SyncState.Error, str(ex))
            return False

        self._in_flight = True
        self._pending_force = force
        self._pull_generation = self._generation
        self.set_state(SyncState.Syncing)

        worker = remote.AsyncWorker(remote.pull_payload, key, **self._retry_kwargs())
        worker.resultReady.connect(self._on_pulled)
        worker.errorOccurred.connect(self._on_pull_error)
        self._start_worker(worker)
        return True

    def _queue_pull(self, force: bool) -> None:
        if not force:
            logging.debug('Pull already in flight, skipping.')
            return
        logging.debug('Pull already in flight, queueing a forced pull.')
        self._queued_force = True

    def _run_queued_pull(self) -> None:
        force, self._queued_force = self._queued_force, None
        if force is None:
            return
        self.pull_async(force=force)

    @QtCore.Slot(object)
    def _on_pulled(self, payload: RemotePayload) -> None:
        self._in_flight = False
        if self._pull_generation != self._generation:
            logging.debug('Sync restarted while pulling, discarding the result.')
        elif DatabaseAPI.get_user() is None:
            logging.debug('Signed out while pulling, discarding the result.')
        else:
            self.apply_remote(payload, force=self._pending_force)
        self._run_queued_pull()

    @QtCore.Slot(object)
    def _on_pull_error(self, ex: Exception) -> None:
        self._in_flight = False
        if self._pull_generation != self._generation:
            logging.debug(f'Sync restarted while pulling, ignoring the error: {ex}')
        else:
            logging.error(f'Pull failed: {ex}')
            self.set_state(SyncState.Error, str(ex))
        self._run_queued_pull()

    def push(self, entries: List[DailyEntry]) -> bool:
        """Push the full entry list on the calling thread.

        Args:
            entries: Every local entry, history versions included.

        Returns:
            bool: True if the remote store accepted the document.
        """
        self.set_state(SyncState.Syncing)
        try:
            updated_at = remote.push_payload(self._key(), entries)
        except status.BaseStatusException as ex:
            logging.error(f'Push failed: {ex}')
            self.set_state(SyncState.Error, str(ex))
            return False
        self._on_pushed(updated_at)
        return True

    def push_async(self, entries: List[DailyEntry]) -> bool:
        """Push the full entry list on a worker thread.

        Returns:
            bool: True if a push was started. Nothing is pushed without a signed-in user.
        """
        if DatabaseAPI.get_user() is None:
            logging.debug('No user signed in, not pushing.')
            return False

        try:
            key = self._key()
        except status.BaseStatusException as ex:
            self.set_state(SyncState.Error, str(ex))
            return False

        self.set_state(SyncState.Syncing)
        worker = remote.AsyncWorker(remote.push_payload, key, list(entries), max_attempts=1)
        worker.resultReady.connect(self._on_pushed)
        worker.errorOccurred.connect(self._on_push_error)
        self._start_worker(worker)
        return True

    def _is_stale(self) -> bool:
        """True if the worker that sent the current result predates the last start or stop."""
        return getattr(self.sender(), 'generation', self._generation) != self._generation

    @QtCore.Slot(object)
    def _on_pushed(self, updated_at: int) -> None:
        if self._is_stale():
            logging.debug(f'Sync restarted while pushing, not moving the watermark to {updated_at}.')
            return
        DatabaseAPI.set_watermark(updated_at)
        self.set_state(SyncState.Synced)

    @QtCore.Slot(object)
    def _on_push_error(self, ex: Exception) -> None:
        if self._is_stale():
            logging.debug(f'Sync restarted while pushing, ignoring the error: {ex}')
            return
        logging.error(f'Push failed: {ex}')
        self.set_state(SyncState.Error, str(ex))

    def _start_worker(self, worker: remote.AsyncWorker) -> None:
        worker.generation = self._generation
        self._workers.add(worker)
        worker.finished.connect(self._on_worker_finished)
        worker.start()

    @QtCore.Slot()
    def _on_worker_finished(self) -> None:
        worker = self.sender()
        self._workers.discard(worker)
        if worker is not None:
            worker.deleteLater()

    def wait(self, msecs: int = 30000) -> None:
        """Block until running workers finish and deliver their results.

        Requests started while results are delivered, such as a queued forced pull,
        are waited for too.
        """
        for _ in range(10):
            workers = list(self._workers)
            if not workers:
                break
            for worker in workers:
                worker.wait(msecs)
            QtCore.QCoreApplication.processEvents()
            QtCore.QCoreApplication.sendPostedEvents()


sync = SyncAPI()
