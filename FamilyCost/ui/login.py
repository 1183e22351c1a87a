"""Sign-in and registration form."""
import logging

from PySide6 import QtCore, QtWidgets

from . import ui
from ..status import status


class LoginWidget(QtWidgets.QWidget):
    """E-mail and password form that signs in or registers a user."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setObjectName('FamilyCostLoginWidget')

        self._registering = False

        self.title_label = None
        self.email_editor = None
        self.password_editor = None
        self.submit_button = None
        self.toggle_button = None
        self.error_label = None

        self._create_ui()
        self._connect_signals()
        self._update_mode()

    def _create_ui(self) -> None:
        QtWidgets.QVBoxLayout(self)
        self.layout().setAlignment(QtCore.Qt.AlignCenter)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        self.title_label = QtWidgets.QLabel('Family Daily Cost', parent=self)
        font = self.title_label.font()
        font.setPixelSize(ui.Size.LargeText(1.5))
        font.setBold(True)
        self.title_label.setFont(font)
        self.title_label.setAlignment(QtCore.Qt.AlignCenter)
        self.layout().addWidget(self.title_label)

        self.email_editor = QtWidgets.QLineEdit(parent=self)
        self.email_editor.setPlaceholderText('Email Address')
        self.layout().addWidget(self.email_editor)

        self.password_editor = QtWidgets.QLineEdit(parent=self)
        self.password_editor.setPlaceholderText('Password')
        self.password_editor.setEchoMode(QtWidgets.QLineEdit.Password)
        self.layout().addWidget(self.password_editor)

        self.error_label = QtWidgets.QLabel(parent=self)
        self.error_label.setStyleSheet(f'color: {ui.Color.Red(qss=True)};')
        self.error_label.setWordWrap(True)
        self.layout().addWidget(self.error_label)

        self.submit_button = QtWidgets.QPushButton(parent=self)
        self.submit_button.setDefault(True)
        self.layout().addWidget(self.submit_button)

        self.toggle_button = QtWidgets.QPushButton(parent=self)
        self.toggle_button.setFlat(True)
        self.layout().addWidget(self.toggle_button)

    def _connect_signals(self) -> None:
        self.submit_button.clicked.connect(self.submit)
        self.password_editor.returnPressed.connect(self.submit)
        self.toggle_button.clicked.connect(self.toggle_mode)

    def _update_mode(self) -> None:
        self.submit_button.setText('Create Account' if self._registering else 'Sign In')
        self.toggle_button.setText(
            'Already have an account? Sign in' if self._registering else 'No account? Register'
        )
        self.error_label.clear()

    @QtCore.Slot()
    def toggle_mode(self) -> None:
        self._registering = not self._registering
        self._update_mode()

    @QtCore.Slot()
    def submit(self) -> None:
        from ..core.auth import auth

        email = self.email_editor.text()
        password = self.password_editor.text()
        self.error_label.clear()
        try:
            if self._registering:
                auth.register(email, password)
            else:
                auth.login(email, password)
        except status.BaseStatusException as ex:
            self.error_label.setText(ex.status_message)
            return
        except ValueError as ex:
            logging.debug(f'Invalid sign-in form: {ex}')
            self.error_label.setText(str(ex))
            return

        self.password_editor.clear()
