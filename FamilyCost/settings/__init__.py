"""
Settings package: configuration API and localization helpers.

This package provides:

- :mod:`FamilyCost.settings.lib` – Core settings management and schema validation.
- :mod:`FamilyCost.settings.locale` – Timezone-aware dates and Babel amount formatting.
"""
