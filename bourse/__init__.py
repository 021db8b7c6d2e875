"""Accounts, client registry, packet protocol and order matching for a small exchange."""

__version__ = "0.1.0"

__all__ = ["accounts", "client_registry", "exchange", "protocol"]