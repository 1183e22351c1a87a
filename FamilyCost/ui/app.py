"""Custom QApplication for FamilyCost.

This module provides:
    - set_model_id: set the Windows AppUserModelID so the taskbar groups our windows
    - Application: subclass of QApplication configuring application metadata and theme
"""
import ctypes
import sys
import uuid
from typing import Optional, Sequence

from PySide6 import QtCore, QtGui, QtWidgets

__version__ = '0.1.0'


def set_app_icon() -> None:
    """Set the application icon if the config template directory ships one."""
    from ..settings import lib
    icon_path = lib.settings.template_dir / 'icon.png'
    if icon_path.exists():
        app = QtWidgets.QApplication.instance()
        app.setWindowIcon(QtGui.QIcon(icon_path.as_posix()))


def set_model_id() -> None:
    """Set windows model id to add custom window icons on windows.
    https://github.com/cztomczak/cefpython/issues/395
    """
    if QtCore.QSysInfo().productType() in ('windows', 'winrt'):
        hresult = ctypes.windll.shell32.SetCurrentProcessExplicitAppUserModelID(
            f'FamilyCost-{uuid.uuid4()}'.encode('utf-8')
        )
        if hresult != 0:
            raise RuntimeError(f'SetCurrentProcessExplicitAppUserModelID failed with code {hresult}')


class Application(QtWidgets.QApplication):
    """QApplication with the FamilyCost name, icon and palette."""

    def __init__(self, argv: Optional[Sequence[str]] = None) -> None:
        if argv is None:
            argv = sys.argv

        super().__init__(list(argv))

        from ..settings import lib
        self.setApplicationName(lib.app_name)
        self.setOrganizationName('')
        self.setApplicationVersion(__version__)
        self.setQuitOnLastWindowClosed(True)

        set_model_id()
        set_app_icon()

        from . import ui
        ui.apply_theme()
