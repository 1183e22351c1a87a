"""In-memory ledger of daily entries.

Edits never modify an entry in place: the edited entry is flagged as history and
the new version is appended, linked to the first version through ``parentId``.
Every local change is saved, broadcast with ``signals.entriesChanged`` and pushed
to the remote store.
"""
import logging
from typing import List, Optional

from PySide6 import QtCore

from .database import DatabaseAPI
from .models import DailyEntry


class LedgerAPI(QtCore.QObject):
    """Holds the entry list of the signed-in user."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._entries: List[DailyEntry] = []

    @property
    def entries(self) -> List[DailyEntry]:
        """All entries, history versions included."""
        return list(self._entries)

    def load(self) -> List[DailyEntry]:
        """Read the entries from the local cache and broadcast them."""
        self._entries = DatabaseAPI.get_entries()
        logging.debug(f'Loaded {len(self._entries)} entries from the local cache.')
        self._emit()
        return self.entries

    def get_entry(self, entry_id: str) -> Optional[DailyEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def live_entries(self) -> List[DailyEntry]:
        """Entries that have not been superseded by an edit."""
        return [e for e in self._entries if not e.is_history]

    def history_trail(self, entry: DailyEntry) -> List[DailyEntry]:
        """Previous versions of an entry, newest first.

        Args:
            entry: Any version of the entry.

        Returns:
            list[DailyEntry]: History entries sharing the entry's root id, and the
            root entry itself once it has been superseded.
        """
        root_id = entry.root_id
        trail = [
            e for e in self._entries
            if e.is_history and (e.parent_id == root_id or e.id == entry.parent_id)
        ]
        return sorted(trail, key=lambda e: e.updated_at, reverse=True)

    def add_entry(self, entry: DailyEntry, editing: Optional[DailyEntry] = None) -> DailyEntry:
        """Add a new entry, or a new version of an existing one.

        Args:
            entry: The entry to add.
            editing: The entry being edited. It is kept as history and the new entry
                is linked to its first version.

        Returns:
            DailyEntry: The stored entry.
        """
        if editing is not None:
            found = False
            for e in self._entries:
                if e.id == editing.id:
                    e.is_history = True
                    found = True
            if not found:
                logging.warning(f'Edited entry {editing.id} is not in the ledger.')
            entry.parent_id = editing.root_id
            logging.info(f'Adding a new version of entry {entry.parent_id} for {entry.date}.')
        else:
            logging.info(f'Adding entry for {entry.date}.')

        self._entries.append(entry)
        self._commit()
        return entry

    def delete_entry(self, entry_id: str) -> bool:
        """Remove the entry with the given id.

        Returns:
            bool: True if an entry was removed.
        """
        n = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        if len(self._entries) == n:
            logging.warning(f'No entry with id {entry_id} to delete.')
            return False

        logging.info(f'Deleted entry {entry_id}.')
        self._commit()
        return True

    def replace_entries(self, entries: List[DailyEntry]) -> None:
        """Replace every entry with pulled remote data. Nothing is pushed."""
        self._entries = list(entries)
        DatabaseAPI.save_entries(self._entries)
        self._emit()

    def import_state(self, token: str) -> bool:
        """Replace the ledger with the entries of a snapshot from another device.

        The import is a local change: it is saved, broadcast and pushed, so the
        next pull does not bring back the previous remote ledger.

        Args:
            token: A snapshot made by :meth:`DatabaseAPI.export_state`.

        Returns:
            bool: False if the snapshot could not be read. The ledger is untouched then.
        """
        if not DatabaseAPI.import_state(token):
            return False

        self._entries = DatabaseAPI.get_entries()
        self._commit()
        return True

    def clear(self) -> None:
        """Forget the in-memory entries, used on sign out."""
        self._entries = []
        self._emit()

    def _emit(self) -> None:
        from ..ui.actions import signals
        signals.entriesChanged.emit(self.entries)

    def _commit(self) -> None:
        DatabaseAPI.save_entries(self._entries)
        self._emit()

        from .sync import sync
        sync.push_async(self._entries)


ledger = LedgerAPI()
