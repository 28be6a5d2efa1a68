#!/usr/bin/env python3
"""
Faucet Deployment Entry Point

Deploys a faucet ledger from FAUCET_* environment settings (or .env) and
reports its identifier and parameters.
"""

import sys

from faucet_ledger.config import get_config
from faucet_ledger.deploy import deploy_faucet
from faucet_ledger.logging_config import setup_logging


def main() -> int:
    config = get_config()
    setup_logging(
        level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file
    )

    try:
        deployment = deploy_faucet(config)
    except Exception as e:
        print(f"❌ Error deploying faucet: {e}", file=sys.stderr)
        return 1

    ledger = deployment.ledger
    print(f"Faucet ledger id: {ledger.ledger_id}")
    print(f"Administrator:    {ledger.administrator}")
    print(f"Max withdrawal:   {ledger.max_withdrawal}")
    print(f"Min window:       {ledger.min_window}s")
    print(f"Balance:          {ledger.balance}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
