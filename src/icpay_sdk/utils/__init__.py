"""
Utility functions
"""

from icpay_sdk.utils.principal import Principal, account_identifier, is_valid_principal

__all__ = ["Principal", "account_identifier", "is_valid_principal"]
