"""HTTP API for the fleet ledger."""
