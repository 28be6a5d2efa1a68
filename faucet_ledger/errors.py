"""
Faucet Error Taxonomy

Every rejected ledger operation raises one of these. Each failure is local
to the invoked operation and leaves the ledger unchanged.
"""

from typing import Hashable, Optional


class FaucetError(Exception):
    """Base exception for all faucet ledger errors."""
    code = "faucet_error"


class Disabled(FaucetError):
    """Raised for any mutating operation on a disabled (terminal) ledger."""
    code = "disabled"

    def __init__(self, message: str = "Faucet is disabled"):
        super().__init__(message)


class InsufficientFunds(FaucetError):
    """Raised when the source of a transfer holds less than requested."""
    code = "insufficient_funds"

    def __init__(self, requested: int, available: int, message: Optional[str] = None):
        self.requested = requested
        self.available = available
        super().__init__(message or "Insufficient funds in faucet")


class LimitExceeded(FaucetError):
    """Raised when a withdrawal asks for more than the per-call ceiling."""
    code = "limit_exceeded"

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__("Withdrawal limit exceeded")


class TooSoon(FaucetError):
    """Raised when a caller withdraws again before its cooldown has elapsed."""
    code = "too_soon"

    def __init__(self, caller: Hashable, available_at: int):
        self.caller = caller
        self.available_at = available_at
        super().__init__(f"Early withdrawal: next withdrawal allowed at {available_at}")


class NotAuthorized(FaucetError):
    """Raised when a non-administrator invokes a privileged operation."""
    code = "not_authorized"

    def __init__(self, caller: Hashable):
        self.caller = caller
        super().__init__("Not Owner")
