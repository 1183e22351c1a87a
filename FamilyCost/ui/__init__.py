"""
UI package: application actions, main application setup and widgets.

This package provides:

- :mod:`FamilyCost.ui.actions` – Application-wide Qt signals.
- :mod:`FamilyCost.ui.app` – QApplication subclass and setup functions.
- :mod:`FamilyCost.ui.main` – Main window composition, header and sync status indicator.
- :mod:`FamilyCost.ui.login` – Sign in and registration widget.
- :mod:`FamilyCost.ui.views` – Dashboard, entry form and history browser.
"""
