"""
Local SQLite cache for the ledger.

This module keeps the serialized entry list, the signed-in user, the registered users
and the sync watermark in a small key/value table. It ensures the database schema,
particularly the metadata table, is valid or recreates it if necessary.
"""

import base64
import binascii
import datetime
import enum
import json
import logging
import sqlite3
import time
from typing import Any, Dict, List, Optional

from PySide6 import QtCore

from .models import AuthUser, DailyEntry, RemotePayload, entries_to_list, now_ms
from ..settings import lib
from ..status import status

# Define the expected schema for the metadata table
META_SCHEMA: Dict[str, str] = {
    'meta_id': 'INTEGER PRIMARY KEY',
    'created': 'TEXT',
    'last_write': 'TEXT',
    'state': 'TEXT',
}

STORE_SCHEMA: Dict[str, str] = {
    'key': 'TEXT PRIMARY KEY',
    'value': 'TEXT',
}


class Table(enum.StrEnum):
    """Enum for database tables."""
    Meta = 'metatable'
    Store = 'store'


class Key(enum.StrEnum):
    """Keys of the store table."""
    Entries = 'entries'
    User = 'user'
    Users = 'users'
    Watermark = 'watermark'


class CacheState(enum.StrEnum):
    """Enum for cache state values."""
    Uninitialized = 'cache is uninitialized'
    Empty = 'cache is empty'
    Error = 'cache has error'
    Valid = 'cache is valid'


def now_str() -> str:
    """Return current UTC date and time as an ISO 8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class DatabaseAPI(QtCore.QObject):
    """Database API for the local ledger cache. Handles schema creation, validation, and data access."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self._initialize_schema_if_needed()

    def _initialize_schema_if_needed(self) -> None:
        """
        Ensures the database file and schema (especially metatable) are valid.
        If the DB file doesn't exist, or metatable is missing/invalid, it recreates them.
        """
        conn: Optional[sqlite3.Connection] = None
        try:
            db_file_exists = lib.settings.db_path.exists()
            conn = self.connection()

            metatable_is_valid = False
            if db_file_exists:
                if self._table_exists_in_conn(conn, Table.Meta.value):
                    cursor = conn.execute(f'PRAGMA table_info({Table.Meta.value})')
                    current_columns = {row[1] for row in cursor.fetchall()}
                    if set(META_SCHEMA.keys()).issubset(current_columns):
                        metatable_is_valid = True
                    else:
                        missing_cols = set(META_SCHEMA.keys()) - current_columns
                        logging.warning(
                            f'Metadata table "{Table.Meta.value}" schema is invalid. Missing columns: {missing_cols}. '
                            f'Schema will be recreated.'
                        )
                else:
                    logging.warning(
                        f'Database file exists but metadata table "{Table.Meta.value}" is missing. '
                        f'Schema will be recreated.'
                    )

            if not db_file_exists or not metatable_is_valid:
                logging.info(
                    f'Recreating database schema (DB exists: {db_file_exists}, Metatable valid: {metatable_is_valid}).'
                )
                conn.execute(f'DROP TABLE IF EXISTS {Table.Meta.value}')
                conn.execute(f'DROP TABLE IF EXISTS {Table.Store.value}')

                meta_cols_sql = ', '.join(f'"{name}" {typedef}' for name, typedef in META_SCHEMA.items())
                conn.execute(f'CREATE TABLE {Table.Meta.value} ({meta_cols_sql})')
                store_cols_sql = ', '.join(f'"{name}" {typedef}' for name, typedef in STORE_SCHEMA.items())
                conn.execute(f'CREATE TABLE {Table.Store.value} ({store_cols_sql})')

                conn.execute(
                    f'INSERT INTO {Table.Meta.value} (meta_id, created, last_write, state) VALUES (1, ?, ?, ?)',
                    (now_str(), now_str(), CacheState.Uninitialized.name)
                )
                conn.commit()
                logging.info(f'Database schema including "{Table.Meta.value}" recreated successfully.')
            else:
                if not self._table_exists_in_conn(conn, Table.Store.value):
                    store_cols_sql = ', '.join(f'"{name}" {typedef}' for name, typedef in STORE_SCHEMA.items())
                    conn.execute(f'CREATE TABLE {Table.Store.value} ({store_cols_sql})')
                    conn.commit()
                logging.debug('Existing database schema and metatable are considered valid.')

        except sqlite3.Error as e:
            logging.error(f'SQLite error during schema initialization: {e}. Attempting recovery.', exc_info=True)
            if conn:
                conn.close()
                conn = None

            try:
                self.delete()
                self._initialize_schema_if_needed()
                logging.info('Database schema forcefully recreated after an error and delete.')
            except Exception as final_e:
                logging.critical(f'Failed to recover database schema even after delete: {final_e}', exc_info=True)
                raise status.CacheInvalidException(f'Unrecoverable DB schema error: {final_e}') from final_e
        finally:
            if conn:
                conn.close()

    @classmethod
    def connection(cls) -> sqlite3.Connection:
        """Return a new connection to the cache database.

        Returns:
            sqlite3.Connection: Database connection object.
        """
        lib.settings.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(lib.settings.db_path), timeout=2.0)
        conn.set_progress_handler(lambda: logging.debug('Waiting on DB lock…'), 1000)
        return conn

    @classmethod
    def _table_exists_in_conn(cls, conn: sqlite3.Connection, table_name: str) -> bool:
        """Check if a table exists using an existing connection."""
        cursor = conn.execute(
            """SELECT name FROM sqlite_master WHERE type='table' AND name=?""",
            (table_name,)
        )
        return cursor.fetchone() is not None

    @classmethod
    def table_exists(cls, table_name: str) -> bool:
        """Check if a table exists in the database (opens a new connection)."""
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = cls.connection()
            return cls._table_exists_in_conn(conn, table_name)
        finally:
            if conn:
                conn.close()

    @classmethod
    def verify(cls) -> None:
        """
        Verify cache: DB exists and the schema is correct.

        Raises:
            status.CacheInvalidException: If the file, a table or the metadata row is missing.
        """
        if not lib.settings.db_path.exists():
            raise status.CacheInvalidException(f'Local cache DB missing at {lib.settings.db_path}.')

        conn: Optional[sqlite3.Connection] = None
        try:
            conn = cls.connection()
            for table in Table:
                if not cls._table_exists_in_conn(conn, table.value):
                    raise status.CacheInvalidException(f'Table "{table.value}" missing.')

            row = conn.execute(f'SELECT state FROM {Table.Meta.value} WHERE meta_id=1').fetchone()
            if not row:
                raise status.CacheInvalidException(f'Metadata entry (meta_id=1) missing in "{Table.Meta.value}".')
        except sqlite3.Error as e:
            logging.error(f'SQLite error during cache verification: {e}', exc_info=True)
            raise status.CacheInvalidException(f'SQLite error verifying cache: {e}') from e
        finally:
            if conn:
                conn.close()

    @classmethod
    def delete(cls) -> None:
        """Delete the local cache database file, retrying on failure.

        Raises:
            status.CacheInvalidException: If unable to remove the database file after retries.
        """
        db_file = lib.settings.db_path
        if not db_file.exists():
            logging.debug('No cache database found to delete.')
            return

        max_attempts = 5
        attempt = 0
        wait_seconds = 1.0

        while attempt < max_attempts:
            attempt += 1
            try:
                db_file.unlink()
                logging.info(f'Cache database removed: {db_file}')
                return
            except OSError as ex:
                logging.error(f'Error removing cache DB (attempt {attempt}/{max_attempts}): {ex}')
                if attempt < max_attempts:
                    logging.debug(f'Retrying in {wait_seconds} seconds...')
                    time.sleep(wait_seconds)
                    wait_seconds *= 1.5
                else:
                    raise status.CacheInvalidException(
                        f'Failed to remove cache DB {db_file} after {max_attempts} attempts: {ex}'
                    ) from ex

    @classmethod
    def get_state(cls) -> CacheState:
        """Retrieve the current cache state from the metadata table.

        Returns:
            CacheState: Current state, or CacheState.Error if unable to determine.
        """
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = cls.connection()
            if not cls._table_exists_in_conn(conn, Table.Meta.value):
                logging.warning(f'Metatable "{Table.Meta.value}" not found when getting state.')
                return CacheState.Error

            row = conn.execute(f'SELECT state FROM {Table.Meta.value} WHERE meta_id=1').fetchone()
            if row and row[0]:
                try:
                    return CacheState[row[0]]
                except KeyError:
                    logging.warning(f'Invalid state value "{row[0]}" found in database.')
            return CacheState.Error
        finally:
            if conn:
                conn.close()

    @classmethod
    def _get(cls, key: Key) -> Optional[str]:
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = cls.connection()
            row = conn.execute(
                f'SELECT value FROM {Table.Store.value} WHERE key=?', (key.value,)
            ).fetchone()
            return row[0] if row else None
        finally:
            if conn:
                conn.close()

    @classmethod
    def _set(cls, key: Key, value: Optional[str]) -> None:
        """Write or remove a value of the store table and stamp the metatable."""
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = cls.connection()
            if value is None:
                conn.execute(f'DELETE FROM {Table.Store.value} WHERE key=?', (key.value,))
            else:
                conn.execute(
                    f'INSERT OR REPLACE INTO {Table.Store.value} (key, value) VALUES (?, ?)',
                    (key.value, value)
                )

            has_entries = conn.execute(
                f'SELECT COUNT(*) FROM {Table.Store.value} WHERE key=? AND value != ?',
                (Key.Entries.value, '[]')
            ).fetchone()[0]
            state = CacheState.Valid if has_entries else CacheState.Empty
            conn.execute(
                f'UPDATE {Table.Meta.value} SET last_write=?, state=? WHERE meta_id=1',
                (now_str(), state.name)
            )
            conn.commit()
        except sqlite3.Error as e:
            logging.error(f'Failed to write "{key.value}": {e}', exc_info=True)
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    @classmethod
    def _get_json(cls, key: Key, default: Any) -> Any:
        raw = cls._get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as ex:
            logging.warning(f'Stored value for "{key.value}" is not valid JSON: {ex}')
            return default

    @classmethod
    def save_entries(cls, entries: List[DailyEntry]) -> None:
        """Persist the full entry list.

        Args:
            entries: The entries to store, history versions included.
        """
        logging.debug(f'Saving {len(entries)} entries to the local cache.')
        cls._set(Key.Entries, json.dumps(entries_to_list(entries), ensure_ascii=False))

    @classmethod
    def get_entries(cls) -> List[DailyEntry]:
        """Read the stored entry list.

        A missing or unreadable value reads as an empty list. Entries that
        cannot be parsed are skipped.

        Returns:
            List[DailyEntry]: The stored entries.
        """
        data = cls._get_json(Key.Entries, [])
        if not isinstance(data, list):
            logging.warning(f'Stored entries are not a list, got {type(data).__name__}.')
            return []

        entries = []
        for v in data:
            try:
                entries.append(DailyEntry.from_dict(v))
            except ValueError as ex:
                logging.warning(f'Skipping unreadable entry: {ex}')
        return entries

    @classmethod
    def save_user(cls, user: Optional[AuthUser]) -> None:
        """Persist the signed-in user.

        Passing None signs out: the user and the stored entries are both removed.
        """
        if user is None:
            logging.debug('Clearing the stored user and entries.')
            cls._set(Key.User, None)
            cls._set(Key.Entries, None)
            return
        cls._set(Key.User, json.dumps(user.to_dict()))

    @classmethod
    def get_user(cls) -> Optional[AuthUser]:
        data = cls._get_json(Key.User, None)
        if not isinstance(data, dict) or not data.get('email'):
            return None
        return AuthUser.from_dict(data)

    @classmethod
    def get_registered_users(cls) -> Dict[str, str]:
        """Return the registered e-mail to password table."""
        data = cls._get_json(Key.Users, {})
        if not isinstance(data, dict):
            return {}
        return data

    @classmethod
    def register_user(cls, email: str, password: str) -> None:
        users = cls.get_registered_users()
        users[email] = password
        cls._set(Key.Users, json.dumps(users, ensure_ascii=False))

    @classmethod
    def get_watermark(cls) -> int:
        """Return the last applied or pushed remote ``updatedAt``, 0 when unset."""
        v = cls._get_json(Key.Watermark, 0)
        if isinstance(v, bool) or not isinstance(v, int):
            return 0
        return v

    @classmethod
    def set_watermark(cls, value: int) -> None:
        logging.debug(f'Setting sync watermark to {value}.')
        cls._set(Key.Watermark, json.dumps(int(value)))

    @classmethod
    def export_state(cls) -> str:
        """Encode the local ledger as a portable base64 snapshot.

        Returns:
            str: base64 encoded JSON ``{entries, updatedAt}``.
        """
        payload = RemotePayload(cls.get_entries(), now_ms())
        raw = json.dumps(payload.to_dict(), ensure_ascii=False).encode('utf-8')
        return base64.b64encode(raw).decode('ascii')

    @classmethod
    def import_state(cls, token: str) -> bool:
        """Replace the local entries with the ones in a snapshot made by :meth:`export_state`.

        Args:
            token: The base64 snapshot.

        Returns:
            bool: True if the snapshot was applied. Local state is untouched otherwise.
        """
        try:
            raw = base64.b64decode((token or '').strip(), validate=True)
            payload = RemotePayload.from_dict(json.loads(raw.decode('utf-8')))
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, ValueError) as ex:
            logging.warning(f'Could not import state: {ex}')
            return False

        cls.save_entries(payload.entries)
        logging.info(f'Imported {len(payload.entries)} entries.')
        return True


database = DatabaseAPI()
