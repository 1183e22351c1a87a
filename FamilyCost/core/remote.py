"""Remote key-value store client with asynchronous operations.

The whole ledger lives under a single key of a public key-value HTTP store as
the JSON document ``{"entries": [...], "updatedAt": <ms>}``. This module reads
and replaces that document and provides the retrying worker thread used to run
the blocking calls off the GUI thread.
"""

import json
import logging
import time
from typing import Any, Callable, List, Optional
from urllib.parse import quote

import requests
from PySide6 import QtCore

from .models import DailyEntry, RemotePayload, entries_to_list, now_ms
from ..settings import lib
from ..status import status

# Cached HTTP session, reused for every request of the app run
_cached_session: Optional[requests.Session] = None

MAX_RETRIES: int = 2
DEFAULT_TIMEOUT: float = 10.0

# Errors caused by the configuration. Retrying will not fix them.
NON_RETRIABLE = (
    status.SyncTokenNotConfiguredException,
    status.SettingsInvalidException,
    status.RemotePayloadInvalidException,
)


def call_with_retries(func: Callable[..., Any], *args: Any, max_attempts: int = MAX_RETRIES + 1,
                      wait_seconds: float = 1.0, **kwargs: Any) -> Any:
    """
    Call a blocking function, retrying it on failure.

    Errors caused by the configuration are raised at once.

    Args:
        func: The blocking function to run.
        *args, **kwargs: Arguments passed to func.
        max_attempts (int): Number of calls before giving up.
        wait_seconds (float): Delay between attempts.

    Returns:
        The result of the function.

    Raises:
        Exception: The error of the last attempt.
    """
    max_attempts = max(1, max_attempts)
    attempts = 0
    while True:
        attempts += 1
        try:
            return func(*args, **kwargs)
        except NON_RETRIABLE:
            raise
        except Exception as ex:
            logging.warning(
                f'{getattr(func, "__name__", func)} failed (attempt {attempts}/{max_attempts}): {ex}'
            )
            if attempts >= max_attempts:
                raise
            time.sleep(wait_seconds)


class AsyncWorker(QtCore.QThread):
    """
    Generic worker thread with retry logic for blocking functions.

    Signals:
        resultReady (object): Emitted with the function's result on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.func = func
        self.args = args

        self.max_attempts = kwargs.pop('max_attempts', MAX_RETRIES + 1)
        self.wait_seconds = kwargs.pop('wait_seconds', 1.0)
        self.kwargs = kwargs

    def run(self) -> None:
        try:
            result = call_with_retries(
                self.func,
                *self.args,
                max_attempts=self.max_attempts,
                wait_seconds=self.wait_seconds,
                **self.kwargs
            )
        except Exception as ex:
            self.errorOccurred.emit(ex)
            return
        self.resultReady.emit(result)


def clear_session() -> None:
    """
    Clears the cached HTTP session.
    """
    global _cached_session

    if _cached_session is not None:
        _cached_session.close()
        logging.debug('Closed cached HTTP session.')

    _cached_session = None


def get_session() -> requests.Session:
    """
    Returns the cached HTTP session, creating it on first use.
    """
    global _cached_session
    if _cached_session is None:
        _cached_session = requests.Session()
        logging.debug('HTTP session created.')
    return _cached_session


def get_key(user: Any = None) -> str:
    """
    Resolve the remote key for a user.

    Args:
        user (AuthUser, optional): The signed-in user. Their sync token is used when set.

    Returns:
        str: The key to read and write.

    Raises:
        status.SyncTokenNotConfiguredException: If there is no sync token and no default key.
    """
    token = getattr(user, 'sync_token', None)
    if token and token.strip():
        return token.strip()

    key = lib.settings.get_section('remote').get('key', '')
    if not key or not key.strip():
        raise status.SyncTokenNotConfiguredException
    return key.strip()


def get_url(key: str) -> str:
    """
    Build the URL of a key: ``<url>/<bucket>/<key>``.

    Raises:
        status.SettingsInvalidException: If the url or bucket is not set.
    """
    config = lib.settings.get_section('remote')
    url = config.get('url', '').rstrip('/')
    bucket = config.get('bucket', '').strip('/')
    if not url or not bucket:
        raise status.SettingsInvalidException('The remote url and bucket must be set.')
    if not key:
        raise status.SyncTokenNotConfiguredException
    return f'{url}/{bucket}/{quote(key, safe="")}'


def _timeout() -> float:
    return float(lib.settings.get_section('sync').get('timeout', DEFAULT_TIMEOUT))


def pull_payload(key: str) -> RemotePayload:
    """
    Fetch the ledger document stored under a key.

    A missing key reads as an empty ledger with ``updatedAt`` 0.

    Args:
        key (str): The remote key.

    Returns:
        RemotePayload: The remote ledger.

    Raises:
        status.RemoteUnavailableException: On a transport error or an unexpected status.
        status.RemotePayloadInvalidException: If the response body is not a ledger document.
    """
    url = get_url(key)
    logging.debug(f'Pulling remote ledger from {url}')
    try:
        response = get_session().get(url, params={'cb': now_ms()}, timeout=_timeout())
    except requests.RequestException as ex:
        raise status.RemoteUnavailableException(f'Pull failed: {ex}') from ex

    if response.status_code == 404:
        logging.debug(f'Remote key "{key}" not found, treating as empty.')
        return RemotePayload([], 0)

    if not response.ok:
        raise status.RemoteUnavailableException(f'Pull failed with HTTP {response.status_code}.')

    try:
        payload = RemotePayload.from_dict(response.json())
    except (ValueError, TypeError) as ex:
        raise status.RemotePayloadInvalidException(f'{ex}') from ex

    logging.debug(f'Pulled {len(payload.entries)} entries, updatedAt={payload.updated_at}')
    return payload


def push_payload(key: str, entries: List[DailyEntry]) -> int:
    """
    Replace the ledger document stored under a key.

    The body is sent as ``text/plain``; only the response status is checked.

    Args:
        key (str): The remote key.
        entries (list[DailyEntry]): The full entry list, history versions included.

    Returns:
        int: The ``updatedAt`` stamped on the pushed document.

    Raises:
        status.RemoteUnavailableException: On a transport error or a non-ok status.
    """
    url = get_url(key)
    updated_at = now_ms()
    body = json.dumps({'entries': entries_to_list(entries), 'updatedAt': updated_at}, ensure_ascii=False)

    logging.debug(f'Pushing {len(entries)} entries to {url}')
    try:
        response = get_session().post(
            url,
            data=body.encode('utf-8'),
            headers={'Content-Type': 'text/plain'},
            timeout=_timeout(),
        )
    except requests.RequestException as ex:
        raise status.RemoteUnavailableException(f'Push failed: {ex}') from ex

    if not response.ok:
        raise status.RemoteUnavailableException(f'Push failed with HTTP {response.status_code}.')

    logging.debug(f'Pushed ledger, updatedAt={updated_at}')
    return updated_at
