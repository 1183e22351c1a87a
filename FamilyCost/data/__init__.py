"""
FamilyCost data package: analytics and Qt models.

This package provides:

- :mod:`FamilyCost.data.data` – pandas aggregation of ledger entries for the dashboard, history, trends and CSV export.
- :mod:`FamilyCost.data.model` – Qt table model exposing pandas DataFrames to the views.
"""
