"""Adapters binding the reconciliation ports to concrete backends."""
