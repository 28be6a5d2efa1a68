"""
Test suite for faucet deployment
"""

from faucet_ledger.config import FaucetConfig
from faucet_ledger.deploy import deploy_faucet
from faucet_ledger.wallets import InMemoryWallets
from faucet_ledger.clock import ManualClock
from faucet_ledger.audit import AuditEventType


class TestDeployFaucet:
    """Test building a faucet from configuration"""

    def test_deploy_with_defaults(self):
        deployment = deploy_faucet(FaucetConfig(_env_file=None))
        ledger = deployment.ledger

        assert ledger.max_withdrawal == 1000
        assert ledger.min_window == 86400
        assert ledger.administrator == "owner"
        assert ledger.balance == 0
        assert deployment.audit_trail is not None
        assert deployment.event_dispatcher is ledger.event_dispatcher

    def test_initial_funding(self):
        config = FaucetConfig(_env_file=None, initial_funding=1_000_000_000)
        deployment = deploy_faucet(config, clock=ManualClock())
        ledger = deployment.ledger

        assert ledger.balance == 1_000_000_000
        assert deployment.wallets.balance_of("owner") == 0

        ledger.withdraw(1000, "alice")
        assert ledger.balance == 999_999_000

        deposits = deployment.audit_trail.get_events_by_type(AuditEventType.DEPOSIT)
        assert deposits[0].metadata["amount"] == 1_000_000_000

    def test_supplied_wallets_are_used(self):
        wallets = InMemoryWallets({"treasury": 5000})
        config = FaucetConfig(_env_file=None, administrator="treasury", initial_funding=2000)

        deployment = deploy_faucet(config, wallets=wallets)

        assert deployment.wallets is wallets
        assert wallets.balance_of("treasury") == 3000
        assert deployment.ledger.balance == 2000

    def test_features_disabled(self):
        config = FaucetConfig(_env_file=None, enable_audit_logging=False, enable_events=False)
        deployment = deploy_faucet(config)

        assert deployment.audit_trail is None
        assert deployment.event_dispatcher is None
        assert deployment.ledger.audit_trail is None
