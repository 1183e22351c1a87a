"""
Logging subsystem for FamilyCost.

Modules:

- :mod:`FamilyCost.log.log` – Root logger setup, Qt message bridge and the in-memory :class:`TankHandler`.
"""
