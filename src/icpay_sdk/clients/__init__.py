"""
ICPay API clients
"""

from icpay_sdk.clients.api_client import IcpayApiClient
from icpay_sdk.clients.icpay_client import IcpayClient
from icpay_sdk.clients.payment_gateway import ApiPaymentGateway, trigger_transaction_sync
from icpay_sdk.clients.protected import ProtectedApi

__all__ = [
    "IcpayApiClient",
    "IcpayClient",
    "ApiPaymentGateway",
    "ProtectedApi",
    "trigger_transaction_sync",
]
