"""Status definitions and exceptions for FamilyCost.

This module provides:
    - Status: enumeration of possible application states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., RemoteUnavailableException) for error handling in services
"""
import enum
import logging
from typing import Dict


class Status(enum.StrEnum):
    """Enumeration of application status codes."""
    UnknownStatus = enum.auto()
    Okay = enum.auto()

    # Config status
    SettingsNotFound = enum.auto()
    SettingsInvalid = enum.auto()

    # Authentication status
    NotAuthenticated = enum.auto()
    CredentialsInvalid = enum.auto()
    UserExists = enum.auto()

    # Remote store status
    SyncTokenNotConfigured = enum.auto()
    RemoteUnavailable = enum.auto()
    RemotePayloadInvalid = enum.auto()

    CacheInvalid = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status. Please check the settings.',
    Status.Okay: 'Everything is okay.',

    Status.SettingsNotFound: 'Could not find the settings file.',
    Status.SettingsInvalid: 'The settings seem to be incomplete, or contain invalid values.',

    Status.NotAuthenticated: 'Not signed in. Please sign in to continue.',
    Status.CredentialsInvalid: 'Invalid email or password.',
    Status.UserExists: 'Email already exists.',

    Status.SyncTokenNotConfigured: 'No sync token set. Have you set a sync token or a default key in the settings?',
    Status.RemoteUnavailable: 'The cloud store is unavailable. Please check your connection.',
    Status.RemotePayloadInvalid: 'The cloud store returned data that could not be read.',

    Status.CacheInvalid: 'The local cache is invalid. Try pulling the data from the cloud again.',
}


def get_message(status: Status) -> str:
    """
    Get the message for a given status.

    Args:
        status (Status): The status enum.

    Returns:
        str: The message associated with the status.
    """
    return STATUS_MESSAGE.get(status, 'Unknown status')


class BaseStatusException(Exception):
    """Base exception for status-based errors in FamilyCost.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..ui.actions import signals
        signals.error.emit(message or self.status_message)


class UnknownException(BaseStatusException):
    """Exception for an unknown error during status processing."""
    pass


class SettingsNotFoundException(BaseStatusException):
    """Exception raised when the settings file cannot be found."""
    status = Status.SettingsNotFound


class SettingsInvalidException(BaseStatusException):
    """Exception raised when the settings file is invalid or malformed."""
    status = Status.SettingsInvalid


class NotAuthenticatedException(BaseStatusException):
    """Exception raised when an operation needs a signed-in user."""
    status = Status.NotAuthenticated


class CredentialsInvalidException(BaseStatusException):
    """Exception raised when an email and password pair is not recognised."""
    status = Status.CredentialsInvalid


class UserExistsException(BaseStatusException):
    """Exception raised when registering an email that is already registered."""
    status = Status.UserExists


class SyncTokenNotConfiguredException(BaseStatusException):
    """Exception raised when neither the user nor the settings provide a remote key."""
    status = Status.SyncTokenNotConfigured


class RemoteUnavailableException(BaseStatusException):
    """Exception raised when the remote key-value store cannot be reached or refuses a request."""
    status = Status.RemoteUnavailable


class RemotePayloadInvalidException(BaseStatusException):
    """Exception raised when the remote blob is not a ``{entries, updatedAt}`` document."""
    status = Status.RemotePayloadInvalid


class CacheInvalidException(BaseStatusException):
    """Exception raised when the local cache database is invalid or corrupted."""
    status = Status.CacheInvalid
