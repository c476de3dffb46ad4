"""
Ledger registry - Well-known ICRC-1 ledgers and their decimals
"""

from dataclasses import dataclass

from icpay_sdk.exceptions import LedgerNotFoundError

ICP_LEDGER_CANISTER_ID = "ryjl3-tyaaa-aaaaa-aaaba-cai"


@dataclass
class LedgerToken:
    """Ledger token information"""

    canister_id: str
    decimals: int
    name: str
    symbol: str


class LedgerRegistry:
    """Ledger registry"""

    _ledgers: dict[str, LedgerToken] = {
        ICP_LEDGER_CANISTER_ID: LedgerToken(
            canister_id=ICP_LEDGER_CANISTER_ID,
            decimals=8,
            name="Internet Computer",
            symbol="ICP",
        ),
        "mxzaw-hiaaa-aaaar-qaada-cai": LedgerToken(
            canister_id="mxzaw-hiaaa-aaaar-qaada-cai",
            decimals=8,
            name="ckBTC",
            symbol="ckBTC",
        ),
        "ss2fx-dyaaa-aaaar-qacoq-cai": LedgerToken(
            canister_id="ss2fx-dyaaa-aaaar-qacoq-cai",
            decimals=18,
            name="ckETH",
            symbol="ckETH",
        ),
        "xevnm-gaaaa-aaaar-qafnq-cai": LedgerToken(
            canister_id="xevnm-gaaaa-aaaar-qafnq-cai",
            decimals=6,
            name="ckUSDC",
            symbol="ckUSDC",
        ),
    }

    @classmethod
    def register_ledger(cls, ledger: LedgerToken) -> None:
        """Register a custom ledger

        Args:
            ledger: LedgerToken to register
        """
        cls._ledgers[ledger.canister_id] = ledger

    @classmethod
    def get_ledger(cls, canister_id: str) -> LedgerToken:
        """Get ledger information by canister id

        Raises:
            LedgerNotFoundError: If the ledger is not registered
        """
        ledger = cls._ledgers.get(canister_id)
        if ledger is None:
            raise LedgerNotFoundError(canister_id)
        return ledger

    @classmethod
    def find_by_symbol(cls, symbol: str) -> LedgerToken | None:
        """Find ledger information by symbol (case-insensitive)"""
        for ledger in cls._ledgers.values():
            if ledger.symbol.lower() == symbol.lower():
                return ledger
        return None

    @classmethod
    def get_decimals(cls, canister_id: str, default: int = 8) -> int:
        """Decimals for a ledger, falling back to ``default`` for unknown ledgers"""
        ledger = cls._ledgers.get(canister_id)
        return ledger.decimals if ledger else default
