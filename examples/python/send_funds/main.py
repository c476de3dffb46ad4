"""
Send a payment and wait for ICPay to confirm it.

The SDK does not talk to canisters itself. ICPAY_AGENT_MODULE names a module
exposing ``ledger_factory(canister_id)``, ``tracking_factory(canister_id)`` and
``principal()`` built on the Internet Computer agent of your choice.

Environment:
    ICPAY_PUBLISHABLE_KEY, ICPAY_AGENT_MODULE, LEDGER_CANISTER_ID,
    and either AMOUNT (base units) or USD_AMOUNT
"""

import asyncio
import importlib
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from icpay_sdk import ExternalWalletSigner, IcpayClient, IcpayConfig, IcpayError, IcpayEventName
from icpay_sdk.ledgers import ICP_LEDGER_CANISTER_ID
from icpay_sdk.logging_config import setup_logging

load_dotenv(Path(__file__).parent.parent.parent.parent / ".env")

setup_logging()

logger = logging.getLogger(__name__)

AGENT_MODULE = os.getenv("ICPAY_AGENT_MODULE", "")
LEDGER_CANISTER_ID = os.getenv("LEDGER_CANISTER_ID") or ICP_LEDGER_CANISTER_ID
AMOUNT = os.getenv("AMOUNT")
USD_AMOUNT = os.getenv("USD_AMOUNT")

if not AGENT_MODULE:
    raise ValueError("ICPAY_AGENT_MODULE environment variable is required")
if not AMOUNT and not USD_AMOUNT:
    raise ValueError("Set AMOUNT (base units) or USD_AMOUNT")


def print_event(name):
    def listener(detail):
        print(f"[{name}] {detail}")

    return listener


async def main():
    agent = importlib.import_module(AGENT_MODULE)
    config = IcpayConfig.from_env(env_file=None)

    async with IcpayClient(
        config,
        ledger_factory=agent.ledger_factory,
        tracking_factory=agent.tracking_factory,
        connected_wallet=ExternalWalletSigner(get_principal=agent.principal),
    ) as icpay:
        for event in (
            IcpayEventName.TRANSACTION_CREATED,
            IcpayEventName.TRANSACTION_UPDATED,
            IcpayEventName.TRANSACTION_COMPLETED,
            IcpayEventName.TRANSACTION_FAILED,
        ):
            icpay.events.on(event, print_event(event.value))

        balance = await icpay.get_single_ledger_balance(LEDGER_CANISTER_ID)
        print(f"Balance: {balance.formatted_balance} {balance.ledger_symbol}")

        try:
            if USD_AMOUNT:
                result = await icpay.send_funds_usd(
                    {"ledgerCanisterId": LEDGER_CANISTER_ID, "usdAmount": USD_AMOUNT}
                )
            else:
                result = await icpay.send_funds(
                    {"ledgerCanisterId": LEDGER_CANISTER_ID, "amount": AMOUNT}
                )
        except IcpayError as e:
            logger.error(f"Payment failed: {e.code.value}: {e.message}")
            if e.user_action:
                print(f"Hint: {e.user_action}")
            sys.exit(1)

        print("\n" + "=" * 60)
        print(f"Transaction: {result.transaction_id}")
        print(f"Status:      {result.status.value}")
        print(f"Amount:      {result.amount}")
        print(f"Block index: {result.block_index}")
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
