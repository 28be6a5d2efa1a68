"""
Transfer Gateway Module

Value enters the faucet from a depositor and leaves it to a caller through
a transfer gateway. The in-memory implementation tracks external balances
per identity so balance changes on both sides of a transfer are observable.
"""

from abc import ABC, abstractmethod
from typing import Dict, Hashable, Optional
import threading

from .errors import InsufficientFunds


class TransferGateway(ABC):
    """Abstract interface for moving value in and out of the faucet"""

    @abstractmethod
    def collect(self, sender: Hashable, amount: int) -> None:
        """Take `amount` from `sender`; raise InsufficientFunds if it cannot"""
        pass

    @abstractmethod
    def pay(self, recipient: Hashable, amount: int) -> None:
        """Hand `amount` to `recipient`"""
        pass


class InMemoryWallets(TransferGateway):
    """In-memory external balances, one per identity"""

    def __init__(self, initial_balances: Optional[Dict[Hashable, int]] = None):
        self._balances: Dict[Hashable, int] = {}
        self._lock = threading.RLock()
        for identity, amount in (initial_balances or {}).items():
            self.fund(identity, amount)

    def fund(self, identity: Hashable, amount: int) -> int:
        """Credit an identity from outside the system (test or genesis funding)"""
        _check_amount(amount)
        with self._lock:
            self._balances[identity] = self._balances.get(identity, 0) + amount
            return self._balances[identity]

    def balance_of(self, identity: Hashable) -> int:
        with self._lock:
            return self._balances.get(identity, 0)

    def collect(self, sender: Hashable, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            available = self._balances.get(sender, 0)
            if amount > available:
                raise InsufficientFunds(
                    requested=amount,
                    available=available,
                    message=f"Insufficient funds in wallet {sender!r}"
                )
            self._balances[sender] = available - amount

    def pay(self, recipient: Hashable, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def snapshot(self) -> Dict[Hashable, int]:
        """Copy of every known external balance"""
        with self._lock:
            return dict(self._balances)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError("Transfer amount must be an integer")
    if amount < 0:
        raise ValueError("Transfer amount cannot be negative")
