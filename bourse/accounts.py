"""Trader accounts holding a cash balance and an escrowed inventory."""

from __future__ import annotations

import threading
from dataclasses import dataclass

MAX_ACCOUNTS = 64


class InsufficientFunds(ValueError):
    """Raised when a balance is too small for a withdrawal."""


class InsufficientInventory(ValueError):
    """Raised when an inventory is too small for a release."""


class AccountsFull(RuntimeError):
    """Raised when no more accounts can be created."""


@dataclass(eq=False)
class Account:
    """A named account; accounts are compared by identity."""

    name: str
    balance: int = 0
    inventory: int = 0
    last: int = 0


@dataclass(frozen=True)
class AccountStatus:
    """A snapshot of an account's figures."""

    balance: int
    inventory: int
    last: int


def _check_amount(value: int) -> None:
    if value < 0:
        raise ValueError(f"amount must not be negative: {value}")


class AccountRegistry:
    """A thread-safe, bounded collection of accounts keyed by name."""

    def __init__(self, capacity: int = MAX_ACCOUNTS) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self._capacity = capacity
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def lookup(self, name: str) -> Account:
        """Return the account with this name, creating it if needed."""
        with self._lock:
            account = self._accounts.get(name)
            if account is None:
                if len(self._accounts) >= self._capacity:
                    raise AccountsFull(f"no room for account {name!r}")
                account = Account(name)
                self._accounts[name] = account
            return account

    def _require(self, account: Account) -> None:
        if self._accounts.get(account.name) is not account:
            raise KeyError(account.name)

    def increase_balance(self, account: Account, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._require(account)
            account.balance += amount

    def decrease_balance(self, account: Account, amount: int) -> None:
        """Take funds from the account, or raise InsufficientFunds."""
        _check_amount(amount)
        with self._lock:
            self._require(account)
            if account.balance < amount:
                raise InsufficientFunds(
                    f"{account.name}: balance {account.balance} < {amount}"
                )
            account.balance -= amount

    def increase_inventory(self, account: Account, quantity: int) -> None:
        _check_amount(quantity)
        with self._lock:
            self._require(account)
            account.inventory += quantity

    def decrease_inventory(self, account: Account, quantity: int) -> None:
        """Take inventory from the account, or raise InsufficientInventory."""
        _check_amount(quantity)
        with self._lock:
            self._require(account)
            if account.inventory < quantity:
                raise InsufficientInventory(
                    f"{account.name}: inventory {account.inventory} < {quantity}"
                )
            account.inventory -= quantity

    def status(self, account: Account) -> AccountStatus:
        with self._lock:
            self._require(account)
            return AccountStatus(account.balance, account.inventory, account.last)