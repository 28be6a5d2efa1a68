"""
Faucet Ledger

A rate-limited value faucet: a pooled integer balance that any caller may
draw from up to a per-call limit, once per cooldown window, under a single
administrator.
"""

__version__ = "1.0.0"
