"""
Faucet Deployment

Builds a configured faucet ledger with its collaborators and, when asked,
seeds it with an initial deposit from the administrator.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from .config import FaucetConfig, get_config
from .ledger import FaucetLedger
from .wallets import InMemoryWallets, TransferGateway
from .clock import Clock
from .storage import InMemoryAuditStore
from .audit import AuditTrail
from .events import EventDispatcher


logger = logging.getLogger("faucet.deploy")


@dataclass
class FaucetDeployment:
    """A deployed faucet and the collaborators wired into it"""
    ledger: FaucetLedger
    wallets: TransferGateway
    audit_trail: Optional[AuditTrail]
    event_dispatcher: Optional[EventDispatcher]
    config: FaucetConfig


def deploy_faucet(
    config: Optional[FaucetConfig] = None,
    wallets: Optional[TransferGateway] = None,
    clock: Optional[Clock] = None
) -> FaucetDeployment:
    """
    Deploy a faucet from configuration

    When `initial_funding` is set and no gateway is supplied, the
    administrator's in-memory wallet is credited with that amount first so
    the seeding deposit can be collected from it.
    """
    config = config or get_config()

    if wallets is None:
        wallets = InMemoryWallets()
        if config.initial_funding:
            wallets.fund(config.administrator, config.initial_funding)

    audit_trail = AuditTrail(InMemoryAuditStore()) if config.enable_audit_logging else None
    event_dispatcher = EventDispatcher() if config.enable_events else None

    ledger = FaucetLedger(
        withdrawal_limit=config.max_withdrawal,
        cooldown_window=config.min_window,
        administrator=config.administrator,
        wallets=wallets,
        clock=clock,
        audit_trail=audit_trail,
        event_dispatcher=event_dispatcher
    )

    if config.initial_funding:
        ledger.deposit(config.initial_funding, config.administrator)

    logger.info(
        f"Faucet {ledger.ledger_id} deployed: max_withdrawal={ledger.max_withdrawal}, "
        f"min_window={ledger.min_window}, balance={ledger.balance}"
    )

    return FaucetDeployment(
        ledger=ledger,
        wallets=wallets,
        audit_trail=audit_trail,
        event_dispatcher=event_dispatcher,
        config=config
    )
