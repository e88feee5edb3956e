"""
ColonyBot.energy — tick-scoped energy accounting.

Public API
----------
    from ColonyBot.energy import EnergyLedger, EnergyEntry
"""

from ColonyBot.energy.ledger import EnergyEntry, EnergyLedger

__all__ = ["EnergyEntry", "EnergyLedger"]
