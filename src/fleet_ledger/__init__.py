"""Financial obligation reconciliation for a vehicle-rental back office."""

__version__ = "0.1.0"
