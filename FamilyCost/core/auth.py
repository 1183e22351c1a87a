"""Local sign-in for the ledger.

There is no server side account system: the configured admin pair and the
e-mail/password pairs registered on this device are accepted. The signed-in
user's sync token selects the remote key the ledger is synced to.
"""
import logging
from typing import Optional

from PySide6 import QtCore

from .database import DatabaseAPI
from .models import AuthUser
from ..settings import lib
from ..status import status


class AuthAPI(QtCore.QObject):
    """Register, sign in and sign out users."""

    def validate_admin(self, email: str, password: str) -> bool:
        """Check a pair against the configured admin account.

        The e-mail is compared case-insensitively, the password exactly.
        """
        config = lib.settings.get_section('auth')
        admin_email = config.get('admin_email', '')
        if not admin_email:
            return False
        return (email or '').strip().lower() == admin_email.lower() and password == config.get('admin_password')

    def current_user(self) -> Optional[AuthUser]:
        return DatabaseAPI.get_user()

    def register(self, email: str, password: str) -> AuthUser:
        """Register a new e-mail/password pair and sign it in.

        Raises:
            ValueError: If the e-mail or the password is empty.
            status.UserExistsException: If the e-mail is already registered.
        """
        email = (email or '').strip()
        if not email or not password:
            raise ValueError('Fill all fields')

        if email in DatabaseAPI.get_registered_users():
            raise status.UserExistsException(email)

        DatabaseAPI.register_user(email, password)
        logging.info(f'Registered {email}.')
        return self._sign_in(AuthUser(email=email))

    def login(self, email: str, password: str) -> AuthUser:
        """Sign in with the admin pair or a registered pair.

        Raises:
            status.CredentialsInvalidException: If the pair is not recognised.
        """
        email = (email or '').strip()
        users = DatabaseAPI.get_registered_users()
        if not self.validate_admin(email, password) and not (email in users and users[email] == password):
            raise status.CredentialsInvalidException

        return self._sign_in(AuthUser(email=email))

    def _sign_in(self, user: AuthUser) -> AuthUser:
        DatabaseAPI.save_user(user)
        logging.info(f'Signed in as {user.email}.')

        from .ledger import ledger
        ledger.load()

        from ..ui.actions import signals
        signals.userChanged.emit(user)
        return user

    def logout(self) -> None:
        """Sign out. The local ledger is cleared and sync stops."""
        user = DatabaseAPI.get_user()
        DatabaseAPI.save_user(None)
        DatabaseAPI.set_watermark(0)

        from .ledger import ledger
        ledger.clear()

        from ..ui.actions import signals
        signals.userChanged.emit(None)
        logging.info(f'Signed out {user.email if user else ""}.')

    def set_sync_token(self, token: Optional[str]) -> AuthUser:
        """Store the sync token of the signed-in user and sync against the new key.

        The watermark is reset so the first pull of the new key is applied.

        Raises:
            status.NotAuthenticatedException: If nobody is signed in.
        """
        user = DatabaseAPI.get_user()
        if user is None:
            raise status.NotAuthenticatedException

        user.sync_token = (token or '').strip() or None
        DatabaseAPI.save_user(user)
        DatabaseAPI.set_watermark(0)
        logging.info(f'Sync token {"set" if user.sync_token else "cleared"} for {user.email}.')

        from .sync import sync
        sync.restart()
        return user


auth = AuthAPI()
