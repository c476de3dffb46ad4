"""
Ledger metadata
"""

from icpay_sdk.ledgers.registry import ICP_LEDGER_CANISTER_ID, LedgerRegistry, LedgerToken

__all__ = ["ICP_LEDGER_CANISTER_ID", "LedgerRegistry", "LedgerToken"]
