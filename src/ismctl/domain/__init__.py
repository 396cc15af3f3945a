"""Pure domain layer: module trees, reconciliation, and ports."""
