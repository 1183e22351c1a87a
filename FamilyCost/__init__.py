"""
FamilyCost: desktop ledger of a family's daily income and costs, synced through a public key-value store.

This package provides:

- :mod:`FamilyCost.core` – Entry models, the local cache, the ledger, local sign-in and cloud sync.
- :mod:`FamilyCost.data` – Monthly analytics (:func:`FamilyCost.data.data.get_summary`, :func:`FamilyCost.data.data.get_trends`), CSV export and Qt table models.
- :mod:`FamilyCost.ui` – PySide6 windows: login, dashboard, daily entry form and history browser.
- :mod:`FamilyCost.settings` – Settings management with schema validation, and locale helpers.
- :mod:`FamilyCost.log` – Logging setup with an in-memory record tank.

Use :func:`FamilyCost.exec_` to launch the application.
"""

import sys

from PySide6 import QtCore

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('FamilyCost requires Python 3.11 or higher.')

__version__ = '0.1.0'
__license__ = 'GPL-3.0'
__description__ = 'FamilyCost: family daily income and cost ledger with cloud sync.'

from .log import log

log.setup_logging()


def exec_() -> None:
    """Launch the FamilyCost GUI application and enter its event loop.

    Initializes the QApplication, shows the main window, loads the cached ledger
    and starts syncing if a user is signed in.
    """
    from .ui import app
    from .ui import main
    from .core.auth import auth
    from .core.database import database
    from .core.ledger import ledger
    from .core.sync import sync
    from .status import status
    app = app.Application(sys.argv)
    main.show()

    def _initialize() -> None:
        try:
            database.verify()
        except status.CacheInvalidException:
            database.delete()
            database._initialize_schema_if_needed()
        ledger.load()
        if auth.current_user() is not None:
            sync.start()

    QtCore.QTimer.singleShot(100, _initialize)

    sys.exit(app.exec())


if __name__ == '__main__':
    exec_()
