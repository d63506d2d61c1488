"""Persistence port and its implementations.

Services depend only on the LedgerStore protocol.
"""

from fleet_ledger.persistence.base import LedgerStore
from fleet_ledger.persistence.memory import InMemoryLedgerStore
from fleet_ledger.persistence.sqlalchemy_store import SqlAlchemyLedgerStore

__all__ = [
    "LedgerStore",
    "InMemoryLedgerStore",
    "SqlAlchemyLedgerStore",
]
