"""Application-wide Qt signals for FamilyCost.

This module provides:
    - Signals: custom Qt signals for configuration changes, the signed-in user,
      ledger entry changes, sync state, and UI navigation (dashboard, entry form, history).
"""
import logging

from PySide6 import QtCore


class Signals(QtCore.QObject):
    """Centralized Qt signals for application config, ledger data, sync and UI events."""
    configSectionChanged = QtCore.Signal(str)  # Section
    metadataChanged = QtCore.Signal(str, object)

    userChanged = QtCore.Signal(object)  # AuthUser or None

    entriesChanged = QtCore.Signal(list)  # List[DailyEntry]

    syncStateChanged = QtCore.Signal(str)  # SyncState value
    syncRequested = QtCore.Signal()

    editRequested = QtCore.Signal(object)  # DailyEntry
    editCancelled = QtCore.Signal()

    showDashboard = QtCore.Signal()
    showEntry = QtCore.Signal()
    showHistory = QtCore.Signal()

    error = QtCore.Signal(str)

    def __init__(self):
        super().__init__()
        self._connect_signals()

    def _connect_signals(self):
        @QtCore.Slot()
        def _on_sync_requested() -> None:
            from ..core.sync import sync
            sync.force_retry()

        self.syncRequested.connect(_on_sync_requested)

        @QtCore.Slot(object)
        def _on_user_changed(user: object) -> None:
            from ..core.sync import sync
            if user is None:
                logging.debug('User signed out, stopping sync.')
                sync.stop()
                return
            logging.debug('User signed in, starting sync.')
            sync.start()

        self.userChanged.connect(_on_user_changed)


signals = Signals()
