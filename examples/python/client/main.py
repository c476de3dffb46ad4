"""
Public API tour: account, verified ledgers and a USD price quote.

Needs only ICPAY_PUBLISHABLE_KEY (read from the environment or the repo .env).
"""

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

from icpay_sdk import IcpayClient, IcpayConfig, IcpayError
from icpay_sdk.logging_config import setup_logging

load_dotenv(Path(__file__).parent.parent.parent.parent / ".env")

setup_logging()
logging.getLogger("icpay_sdk").setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)

USD_AMOUNT = 5


async def main():
    config = IcpayConfig.from_env(env_file=None)

    async with IcpayClient(config) as icpay:
        account = await icpay.get_account_info()
        print(f"Account: {account.id} (canister {account.account_canister_id})")
        print(f"  Live: {account.is_live}")

        ledgers = await icpay.get_verified_ledgers()
        print("\nVerified ledgers:")
        for ledger in ledgers:
            price = f"${ledger.current_price}" if ledger.current_price else "no price"
            print(f"  {ledger.symbol:8} {ledger.canister_id} decimals={ledger.decimals} {price}")

        priced = [ledger for ledger in ledgers if ledger.current_price]
        if not priced:
            print("\nNo ledger has a price yet")
            return

        try:
            quote = await icpay.calculate_token_amount_from_usd(
                {"usdAmount": USD_AMOUNT, "ledgerCanisterId": priced[0].canister_id}
            )
        except IcpayError as e:
            logger.error(f"Price calculation failed: {e.code.value}: {e.message}")
            return
        print(
            f"\n${USD_AMOUNT} = {quote.token_amount_human} {quote.ledger_symbol} "
            f"({quote.token_amount_decimals} base units at ${quote.current_price})"
        )


if __name__ == "__main__":
    asyncio.run(main())
