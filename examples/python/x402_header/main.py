"""
Sign an x402 X-PAYMENT header for an EVM acceptance with a local key.
"""

import asyncio
import json
import os
from pathlib import Path

from dotenv import load_dotenv

from icpay_sdk.logging_config import setup_logging
from icpay_sdk.x402 import LocalEvmSigner, build_and_sign_x402_payment_header, decode_x402_header

load_dotenv(Path(__file__).parent.parent.parent.parent / ".env")

setup_logging()

EVM_PRIVATE_KEY = os.getenv("EVM_PRIVATE_KEY", "")

if not EVM_PRIVATE_KEY:
    raise ValueError("EVM_PRIVATE_KEY environment variable is required")

# USDC on Base, paying 0.10 USDC
ACCEPTANCE = {
    "scheme": "exact",
    "network": "8453",
    "maxAmountRequired": "100000",
    "payTo": os.getenv("PAY_TO_ADDRESS") or "0x209693Bc6afc0C5328bA36FaF03C514EF312287C",
    "asset": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    "maxTimeoutSeconds": 300,
    "extra": {"name": "USD Coin", "eip3009Version": "2"},
}


async def main():
    signer = LocalEvmSigner(EVM_PRIVATE_KEY)
    header = await build_and_sign_x402_payment_header(ACCEPTANCE, signer)

    print("X-PAYMENT:")
    print(header)
    print("\nDecoded:")
    print(json.dumps(decode_x402_header(header).model_dump(by_alias=True), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
