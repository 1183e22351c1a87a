"""
Core package for FamilyCost providing the ledger and its cloud sync.

This package includes:

- :mod:`FamilyCost.core.models` – Ledger records (daily entries, units, bazar items, users) and their wire format.
- :mod:`FamilyCost.core.database` – Local SQLite key/value cache for entries, user records and the sync watermark.
- :mod:`FamilyCost.core.remote` – HTTP client for the public key-value bucket and the retrying worker thread.
- :mod:`FamilyCost.core.sync` – Polling, last-write-wins pull and immediate push against the remote bucket.
- :mod:`FamilyCost.core.ledger` – In-memory entry list with the edit-as-new-version history.
- :mod:`FamilyCost.core.auth` – Local sign-in against the admin pair and registered users.
"""
