"""Persistence layer: ORM models, sessions and the order ledger."""
