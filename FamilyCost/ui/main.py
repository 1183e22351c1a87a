"""Main window composition and UI entry points for FamilyCost.

This module defines:
    - show(): initialize and display the main window
    - TitleLabel: application name, updated from the metadata
    - LogDialog: read-only view of the in-memory log records
    - MainWindow: login page, or the dashboard, entry and history tabs once signed in
"""
import logging
from typing import Optional

from PySide6 import QtCore, QtGui, QtWidgets

from . import ui
from .login import LoginWidget
from .views import DashboardWidget, EntryFormWidget, HistoryWidget, SyncStatusIndicator, SyncTokenDialog
from ..settings.lib import app_name
from ..ui.actions import signals

widget = None


def show():
    global widget

    if widget is None:
        widget = MainWindow()

    widget.show()


class TitleLabel(QtWidgets.QLabel):
    """Application name label."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setObjectName('FamilyCostTitleLabel')

        font = self.font()
        font.setPixelSize(ui.Size.MediumText(1.5))
        font.setBold(True)
        self.setFont(font)

        self._connect_signals()
        self.update_title()

    def _connect_signals(self) -> None:
        @QtCore.Slot(str, object)
        def metadata_changed(key: str, value: object) -> None:
            if key == 'name':
                self.update_title()

        signals.metadataChanged.connect(metadata_changed)

    @staticmethod
    def get_title():
        from ..settings import lib
        v = lib.settings['name']
        return v or 'Untitled'

    @QtCore.Slot()
    def update_title(self) -> None:
        self.setText(self.get_title())


class LogDialog(QtWidgets.QDialog):
    """Show the records kept by the tank handler."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setWindowTitle('Logs')

        QtWidgets.QVBoxLayout(self)
        levels = ('DEBUG', 'INFO', 'WARNING', 'ERROR')

        row = QtWidgets.QHBoxLayout()
        row.addWidget(QtWidgets.QLabel('Show', parent=self))
        self.level_combo = QtWidgets.QComboBox(parent=self)
        for name in levels:
            self.level_combo.addItem(name, getattr(logging, name))
        self.level_combo.setCurrentIndex(1)
        row.addWidget(self.level_combo)

        row.addWidget(QtWidgets.QLabel('Capture', parent=self))
        self.capture_combo = QtWidgets.QComboBox(parent=self)
        for name in levels:
            self.capture_combo.addItem(name, getattr(logging, name))
        idx = self.capture_combo.findData(logging.getLogger().level)
        self.capture_combo.setCurrentIndex(max(idx, 0))
        row.addWidget(self.capture_combo)
        row.addStretch(1)
        self.layout().addLayout(row)

        self.text = QtWidgets.QPlainTextEdit(parent=self)
        self.text.setReadOnly(True)
        self.layout().addWidget(self.text, 1)

        row = QtWidgets.QHBoxLayout()
        self.clear_button = QtWidgets.QPushButton('Clear', parent=self)
        row.addWidget(self.clear_button)
        row.addStretch(1)
        self.layout().addLayout(row)

        self.level_combo.currentIndexChanged.connect(self.refresh)
        self.capture_combo.currentIndexChanged.connect(self.set_capture_level)
        self.clear_button.clicked.connect(self.clear)
        self.refresh()

    @QtCore.Slot()
    def refresh(self) -> None:
        from ..log import log
        handler = log.get_tank_handler()
        if handler is None:
            self.text.setPlainText('')
            return
        self.text.setPlainText('\n'.join(handler.get_logs(level=self.level_combo.currentData())))

    @QtCore.Slot()
    def set_capture_level(self) -> None:
        """Set the lowest level recorded by the root logger."""
        from ..log import log
        log.set_logging_level(self.capture_combo.currentData())

    @QtCore.Slot()
    def clear(self) -> None:
        from ..log import log
        handler = log.get_tank_handler()
        if handler is not None:
            handler.clear_logs()
        self.refresh()

    def sizeHint(self):
        return QtCore.QSize(ui.Size.DefaultWidth(0.8), ui.Size.DefaultHeight(0.6))


class MainWindow(QtWidgets.QMainWindow):
    """Top level window switching between the login page and the ledger tabs."""

    def __init__(self, parent=None):
        super().__init__(parent=parent)
        self.setWindowTitle(app_name)
        self.setObjectName('FamilyCostMainWindow')

        self.stack: QtWidgets.QStackedWidget
        self.login_widget: LoginWidget
        self.tabs: QtWidgets.QTabWidget
        self.dashboard: DashboardWidget
        self.entry_form: EntryFormWidget
        self.history: HistoryWidget
        self.toolbar: QtWidgets.QToolBar
        self.user_label: QtWidgets.QLabel
        self.status_indicator: SyncStatusIndicator

        self._create_ui()
        self._init_actions()
        self._connect_signals()
        self.load_window_settings()

        from ..core.auth import auth
        self.set_user(auth.current_user())

    def _create_ui(self) -> None:
        self.toolbar = QtWidgets.QToolBar(self)
        self.toolbar.setObjectName('FamilyCostToolBar')
        self.toolbar.setMovable(False)
        self.addToolBar(QtCore.Qt.TopToolBarArea, self.toolbar)

        self.toolbar.addWidget(TitleLabel(parent=self))

        spacer = QtWidgets.QWidget(self)
        spacer.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Maximum)
        self.toolbar.addWidget(spacer)

        self.status_indicator = SyncStatusIndicator(parent=self)
        self.toolbar.addWidget(self.status_indicator)

        self.user_label = QtWidgets.QLabel(parent=self)
        self.user_label.setStyleSheet(f'color: {ui.Color.SecondaryText(qss=True)};')
        self.toolbar.addWidget(self.user_label)

        self.stack = QtWidgets.QStackedWidget(self)
        self.setCentralWidget(self.stack)

        self.login_widget = LoginWidget(parent=self.stack)
        self.stack.addWidget(self.login_widget)

        self.tabs = QtWidgets.QTabWidget(parent=self.stack)
        self.dashboard = DashboardWidget(parent=self.tabs)
        self.tabs.addTab(self.dashboard, 'Dashboard')
        self.entry_form = EntryFormWidget(parent=self.tabs)
        self.tabs.addTab(self.entry_form, 'Log Day')
        self.history = HistoryWidget(parent=self.tabs)
        self.tabs.addTab(self.history, 'History')
        self.stack.addWidget(self.tabs)

    def _init_actions(self) -> None:
        def _make_action(cfg: dict) -> QtGui.QAction:
            action = QtGui.QAction(cfg['label'], self)
            action.triggered.connect(cfg['trigger'])
            if 'shortcut' in cfg:
                action.setShortcut(cfg['shortcut'])
                action.setShortcutContext(QtCore.Qt.ApplicationShortcut)
            return action

        action_configs = [
            {'label': 'Dashboard', 'trigger': signals.showDashboard, 'shortcut': 'Ctrl+1', 'visible': False},
            {'label': 'Log Day', 'trigger': signals.showEntry, 'shortcut': 'Ctrl+2', 'visible': False},
            {'label': 'History', 'trigger': signals.showHistory, 'shortcut': 'Ctrl+3', 'visible': False},
            {'label': 'Sync Now', 'trigger': signals.syncRequested, 'shortcut': 'Ctrl+R', 'visible': False},
            {'label': 'Sync Settings', 'trigger': self.show_sync_settings},
            {'label': 'Logs', 'trigger': self.show_logs},
            {'label': 'Sign Out', 'trigger': self.logout},
        ]

        self.user_actions = []
        for cfg in action_configs:
            act = _make_action(cfg)
            if cfg.get('visible', True):
                self.toolbar.addAction(act)
                self.user_actions.append(act)
            self.addAction(act)
            logging.debug(f'Added action: {cfg["label"]}')

    def _connect_signals(self) -> None:
        signals.userChanged.connect(self.set_user)
        signals.showDashboard.connect(lambda: self.tabs.setCurrentWidget(self.dashboard))
        signals.showEntry.connect(lambda: self.tabs.setCurrentWidget(self.entry_form))
        signals.showHistory.connect(lambda: self.tabs.setCurrentWidget(self.history))

        @QtCore.Slot(str)
        def on_error(message: str) -> None:
            self.statusBar().showMessage(message, 5000)

        signals.error.connect(on_error)

    @QtCore.Slot(object)
    def set_user(self, user: Optional[object]) -> None:
        """Show the ledger for a signed-in user, the login page otherwise."""
        signed_in = user is not None
        self.user_label.setText(user.email if signed_in else '')
        self.status_indicator.setVisible(signed_in)
        for action in self.user_actions:
            action.setVisible(signed_in)

        if signed_in:
            self.stack.setCurrentWidget(self.tabs)
            self.tabs.setCurrentWidget(self.dashboard)
        else:
            self.entry_form.reset()
            self.stack.setCurrentWidget(self.login_widget)

    @QtCore.Slot()
    def logout(self) -> None:
        from ..core.auth import auth
        auth.logout()

    @QtCore.Slot()
    def show_sync_settings(self) -> None:
        SyncTokenDialog(parent=self).exec()

    @QtCore.Slot()
    def show_logs(self) -> None:
        LogDialog(parent=self).exec()

    def sizeHint(self):
        return QtCore.QSize(
            ui.Size.DefaultWidth(1.0),
            ui.Size.DefaultHeight(1.0)
        )

    def closeEvent(self, event) -> None:
        """Persist window geometry on close."""
        settings = QtCore.QSettings(app_name, app_name)
        settings.setValue('MainWindow/geometry', self.saveGeometry())
        super().closeEvent(event)

    def load_window_settings(self) -> None:
        settings = QtCore.QSettings(app_name, app_name)
        geom_data = settings.value('MainWindow/geometry')
        if isinstance(geom_data, QtCore.QByteArray) and self.restoreGeometry(geom_data):
            return

        self.resize(self.sizeHint())
        primary = QtGui.QGuiApplication.primaryScreen()
        if primary is None:
            return
        avail = primary.availableGeometry()
        x = avail.x() + (avail.width() - self.width()) // 2
        y = avail.y() + (avail.height() - self.height()) // 2
        self.move(x, y)
