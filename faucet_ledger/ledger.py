"""
Faucet Ledger Engine

A pooled balance that any caller may draw from, up to a per-call limit and
at most once per cooldown window per caller. A single administrator may
retune the limit and window, sweep the pool, or disable the faucet for good.

Every operation runs inside one per-instance lock, so each call is observed
as a single atomic transition and a failed call leaves no trace on the
ledger's state.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Optional, Any
import logging
import threading
import uuid

from .errors import (
    FaucetError, Disabled, InsufficientFunds, LimitExceeded, TooSoon, NotAuthorized
)
from .wallets import TransferGateway, InMemoryWallets
from .clock import Clock, SystemClock
from .audit import AuditTrail, AuditEventType
from .events import EventDispatcher, EventPayload, FaucetEvent
from .logging_config import log_action


logger = logging.getLogger("faucet.ledger")

# Upper bound of a 256-bit unsigned amount
MAX_AMOUNT = 2 ** 256 - 1


@dataclass(frozen=True)
class LedgerState:
    """Point-in-time copy of a ledger's state"""
    ledger_id: str
    balance: int
    withdrawal_limit: int
    cooldown_window: int
    administrator: Hashable
    active: bool
    last_withdrawal_times: Dict[Hashable, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """
        Identities are kept as-is; cooldowns are listed as caller/timestamp
        pairs so that distinct identities with equal string forms stay apart.
        """
        return {
            'ledger_id': self.ledger_id,
            'balance': self.balance,
            'withdrawal_limit': self.withdrawal_limit,
            'cooldown_window': self.cooldown_window,
            'administrator': self.administrator,
            'active': self.active,
            'last_withdrawal_times': [
                {'caller': caller, 'timestamp': ts}
                for caller, ts in self.last_withdrawal_times.items()
            ]
        }


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    return value


def _validate_amount(value: Any, name: str = "amount") -> int:
    _require_int(value, name)
    if value < 0:
        raise ValueError(f"{name} cannot be negative")
    if value > MAX_AMOUNT:
        raise ValueError(f"{name} exceeds maximum representable value")
    return value


def _validate_limit(value: Any) -> int:
    _validate_amount(value, "withdrawal_limit")
    if value == 0:
        raise ValueError("withdrawal_limit must be positive")
    return value


def _validate_window(value: Any) -> int:
    return _validate_amount(value, "cooldown_window")


def _validate_timestamp(value: Any) -> int:
    return _validate_amount(value, "now")


class FaucetLedger:
    """
    Rate-limited faucet over a single pooled balance

    Args:
        withdrawal_limit: Maximum amount one withdraw call may transfer (> 0)
        cooldown_window: Seconds a caller must wait between withdrawals (>= 0)
        administrator: Identity allowed to call privileged operations
        wallets: Where deposits come from and withdrawals go to
        clock: Time source used when `withdraw` is called without `now`
        audit_trail: Optional hash-chained audit log
        event_dispatcher: Optional observer for successful transitions
        ledger_id: Identifier for audit and events; generated when omitted
    """

    def __init__(
        self,
        withdrawal_limit: int,
        cooldown_window: int,
        administrator: Hashable,
        wallets: Optional[TransferGateway] = None,
        clock: Optional[Clock] = None,
        audit_trail: Optional[AuditTrail] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        ledger_id: Optional[str] = None
    ):
        if administrator is None:
            raise ValueError("administrator identity is required")

        self._withdrawal_limit = _validate_limit(withdrawal_limit)
        self._cooldown_window = _validate_window(cooldown_window)
        self._administrator = administrator
        self._balance = 0
        self._active = True
        # Absent key means the caller has never withdrawn
        self._last_withdrawal: Dict[Hashable, int] = {}

        self.ledger_id = ledger_id or str(uuid.uuid4())
        self.wallets = wallets if wallets is not None else InMemoryWallets()
        self.clock = clock if clock is not None else SystemClock()
        self.audit_trail = audit_trail
        self.event_dispatcher = event_dispatcher
        self._lock = threading.RLock()

        self._audit(
            AuditEventType.LEDGER_CREATED,
            actor=administrator,
            metadata={
                "withdrawal_limit": self._withdrawal_limit,
                "cooldown_window": self._cooldown_window
            }
        )
        log_action(
            logger, "info", f"Faucet {self.ledger_id} created",
            user_id=str(administrator), action="create", resource=self.ledger_id,
            extra={"withdrawal_limit": self._withdrawal_limit, "cooldown_window": self._cooldown_window}
        )

    # Queries

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    @property
    def max_withdrawal(self) -> int:
        """Current per-call withdrawal limit"""
        with self._lock:
            return self._withdrawal_limit

    @property
    def min_window(self) -> int:
        """Current cooldown window in seconds"""
        with self._lock:
            return self._cooldown_window

    @property
    def administrator(self) -> Hashable:
        return self._administrator

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._active

    def last_withdrawal_time(self, caller: Hashable) -> Optional[int]:
        """Timestamp of the caller's last successful withdrawal, None if never"""
        with self._lock:
            return self._last_withdrawal.get(caller)

    def next_withdrawal_time(self, caller: Hashable) -> Optional[int]:
        """
        Earliest timestamp at which the caller's cooldown allows another
        withdrawal under the current window, None if it never withdrew
        """
        with self._lock:
            last = self._last_withdrawal.get(caller)
            if last is None:
                return None
            return last + self._cooldown_window

    def snapshot(self) -> LedgerState:
        with self._lock:
            return LedgerState(
                ledger_id=self.ledger_id,
                balance=self._balance,
                withdrawal_limit=self._withdrawal_limit,
                cooldown_window=self._cooldown_window,
                administrator=self._administrator,
                active=self._active,
                last_withdrawal_times=dict(self._last_withdrawal)
            )

    # Operations open to any caller

    def deposit(self, amount: int, from_identity: Hashable) -> int:
        """
        Move `amount` from the depositor's wallet into the pool

        Returns:
            The pool balance after the deposit

        Raises:
            Disabled: If the faucet has been disabled
            InsufficientFunds: If the depositor's wallet cannot cover the amount
            ValueError: If the amount is malformed or would overflow the pool
        """
        with self._lock:
            if not self._active:
                raise self._rejected(Disabled(), "deposit", from_identity, amount=amount)

            _validate_amount(amount)
            if self._balance + amount > MAX_AMOUNT:
                raise ValueError("Deposit would overflow faucet balance")

            self.wallets.collect(from_identity, amount)
            self._balance += amount
            balance = self._balance

            payload = self._record(
                AuditEventType.DEPOSIT, FaucetEvent.DEPOSITED, from_identity,
                f"Deposit of {amount} from {from_identity}",
                amount=amount, balance=balance
            )
        self._publish(payload)
        return balance

    def withdraw(self, amount: int, caller: Hashable, now: Optional[int] = None) -> int:
        """
        Pay `amount` from the pool to `caller`

        Preconditions are checked in order and the first failure wins:
        disabled, pool balance, per-call limit, caller cooldown.

        Args:
            amount: Amount requested
            caller: Identity receiving the funds
            now: Current timestamp; read from the ledger's clock when omitted

        Returns:
            The pool balance after the withdrawal

        Raises:
            Disabled, InsufficientFunds, LimitExceeded, TooSoon
            ValueError: If the amount or timestamp is malformed
        """
        with self._lock:
            if now is None:
                now = self.clock.now()

            if not self._active:
                raise self._rejected(Disabled(), "withdraw", caller, amount=amount, now=now)

            _validate_amount(amount)
            _validate_timestamp(now)

            if amount > self._balance:
                raise self._rejected(
                    InsufficientFunds(requested=amount, available=self._balance),
                    "withdraw", caller, amount=amount, now=now
                )

            if amount > self._withdrawal_limit:
                raise self._rejected(
                    LimitExceeded(requested=amount, limit=self._withdrawal_limit),
                    "withdraw", caller, amount=amount, now=now
                )

            last = self._last_withdrawal.get(caller)
            if last is not None and now - last < self._cooldown_window:
                raise self._rejected(
                    TooSoon(caller, available_at=last + self._cooldown_window),
                    "withdraw", caller, amount=amount, now=now
                )

            self.wallets.pay(caller, amount)
            self._balance -= amount
            self._last_withdrawal[caller] = now
            balance = self._balance

            payload = self._record(
                AuditEventType.WITHDRAWAL, FaucetEvent.WITHDRAWN, caller,
                f"Withdrawal of {amount} to {caller}",
                amount=amount, balance=balance, now=now
            )
        self._publish(payload)
        return balance

    # Administrator operations

    def set_limit(self, new_limit: int, caller: Hashable) -> None:
        """Replace the per-call withdrawal limit, effective immediately"""
        with self._lock:
            self._require_administrator(caller, "set_limit")
            _validate_limit(new_limit)

            previous = self._withdrawal_limit
            self._withdrawal_limit = new_limit
            payload = self._record(
                AuditEventType.LIMIT_CHANGED, FaucetEvent.LIMIT_CHANGED, caller,
                f"Withdrawal limit changed from {previous} to {new_limit}",
                previous=previous, new=new_limit
            )
        self._publish(payload)

    def set_window(self, new_window: int, caller: Hashable) -> None:
        """
        Replace the cooldown window, effective immediately.
        Existing cooldowns are re-evaluated against the new window.
        """
        with self._lock:
            self._require_administrator(caller, "set_window")
            _validate_window(new_window)

            previous = self._cooldown_window
            self._cooldown_window = new_window
            payload = self._record(
                AuditEventType.WINDOW_CHANGED, FaucetEvent.WINDOW_CHANGED, caller,
                f"Cooldown window changed from {previous} to {new_window}",
                previous=previous, new=new_window
            )
        self._publish(payload)

    def sweep_all(self, caller: Hashable) -> int:
        """
        Pay the whole pool to the administrator. The faucet stays active.

        Returns:
            The amount swept
        """
        with self._lock:
            self._require_administrator(caller, "sweep_all")

            swept = self._balance
            self.wallets.pay(self._administrator, swept)
            self._balance = 0

            payload = self._record(
                AuditEventType.BALANCE_SWEPT, FaucetEvent.SWEPT, caller,
                f"Swept {swept} to administrator",
                amount=swept
            )
        self._publish(payload)
        return swept

    def disable(self, caller: Hashable) -> int:
        """
        Return every unit to the administrator and disable the faucet.
        The disabled state is terminal.

        Returns:
            The amount returned to the administrator
        """
        with self._lock:
            self._require_administrator(caller, "disable")

            returned = self._balance
            self.wallets.pay(self._administrator, returned)
            self._balance = 0
            self._active = False

            payload = self._record(
                AuditEventType.LEDGER_DISABLED, FaucetEvent.DISABLED, caller,
                f"Faucet disabled, {returned} returned to administrator",
                amount=returned
            )
        self._publish(payload)
        return returned

    # Internals

    def _require_administrator(self, caller: Hashable, operation: str) -> None:
        """Terminal state is checked before identity, identity before arguments"""
        if not self._active:
            raise self._rejected(Disabled(), operation, caller)
        if caller != self._administrator:
            raise self._rejected(NotAuthorized(caller), operation, caller)

    def _rejected(self, error: FaucetError, operation: str, caller: Hashable, **details) -> FaucetError:
        """Log and audit a rejected call, then hand the error back to be raised"""
        log_action(
            logger, "warning", f"{operation} rejected: {error}",
            user_id=str(caller), action=operation, resource=self.ledger_id,
            extra={"error": error.code, **details}
        )
        if isinstance(error, NotAuthorized):
            event_type = AuditEventType.AUTHORIZATION_FAILED
        elif operation == "withdraw":
            event_type = AuditEventType.WITHDRAWAL_REJECTED
        else:
            return error
        self._audit(event_type, actor=caller, metadata={"operation": operation, "error": error.code, **details})
        return error

    def _record(self, audit_type: AuditEventType, event_type: FaucetEvent,
                caller: Hashable, message: str, **details) -> Optional[EventPayload]:
        """
        Log and audit a committed transition. Returns the event to publish
        once the lock is released, None without a dispatcher.
        """
        log_action(
            logger, "info", message,
            user_id=str(caller), action=event_type.value, resource=self.ledger_id,
            extra=details
        )
        self._audit(audit_type, actor=caller, metadata=details)
        if self.event_dispatcher is None:
            return None
        return EventPayload(
            event_type=event_type,
            ledger_id=self.ledger_id,
            data={"caller": str(caller), **details}
        )

    def _publish(self, payload: Optional[EventPayload]) -> None:
        if payload is not None and self.event_dispatcher is not None:
            self.event_dispatcher.publish(payload)

    def _audit(self, event_type: AuditEventType, actor: Hashable, metadata: Dict[str, Any]) -> None:
        """
        Append to the audit trail. Called after state has committed or with a
        rejection in hand, so a failing trail is logged and never raised.
        """
        if self.audit_trail is None:
            return
        try:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="faucet",
                entity_id=self.ledger_id,
                metadata=metadata,
                actor=actor
            )
        except Exception as e:
            logger.error(
                f"Audit logging failed for {event_type.value} on faucet {self.ledger_id}: {e}",
                exc_info=True
            )
