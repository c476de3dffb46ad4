"""
Internet Computer principal and account identifier helpers
"""

import base64
import hashlib
import zlib
from dataclasses import dataclass

_ACCOUNT_DOMAIN_SEPARATOR = b"\x0aaccount-id"
_SUBACCOUNT_LENGTH = 32
_MAX_PRINCIPAL_LENGTH = 29


def _crc32_bytes(data: bytes) -> bytes:
    return (zlib.crc32(data) & 0xFFFFFFFF).to_bytes(4, "big")


@dataclass(frozen=True)
class Principal:
    """Principal identifier backed by its raw bytes"""

    raw: bytes

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        """Parse the dashed, lower-case base32 textual form

        Raises:
            ValueError: If the text is not a canonical principal
        """
        compact = text.strip().replace("-", "").upper()
        if not compact:
            raise ValueError("Empty principal text")
        padding = "=" * (-len(compact) % 8)
        try:
            decoded = base64.b32decode(compact + padding)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid principal text {text!r}: {e}") from e
        if len(decoded) < 4:
            raise ValueError(f"Invalid principal text {text!r}: too short")

        checksum, raw = decoded[:4], decoded[4:]
        if len(raw) > _MAX_PRINCIPAL_LENGTH:
            raise ValueError(f"Invalid principal text {text!r}: too long")
        if checksum != _crc32_bytes(raw):
            raise ValueError(f"Invalid principal text {text!r}: checksum mismatch")

        principal = cls(raw)
        if principal.to_text() != text.strip():
            raise ValueError(f"Principal text {text!r} is not in canonical form")
        return principal

    def to_text(self) -> str:
        encoded = base64.b32encode(_crc32_bytes(self.raw) + self.raw).decode("ascii")
        encoded = encoded.rstrip("=").lower()
        return "-".join(encoded[i : i + 5] for i in range(0, len(encoded), 5))

    @property
    def is_anonymous(self) -> bool:
        return self.raw == b"\x04"

    def __str__(self) -> str:
        return self.to_text()


def is_valid_principal(text: str) -> bool:
    try:
        Principal.from_text(text)
    except ValueError:
        return False
    return True


def account_identifier(principal: Principal | str, subaccount: bytes | None = None) -> str:
    """
    Derive the hex ICP ledger account identifier of a principal.

    Args:
        principal: Principal or its textual form
        subaccount: Optional 32-byte subaccount (defaults to all zeros)

    Returns:
        64-character hex string (CRC32 checksum followed by the SHA-224 hash)
    """
    if isinstance(principal, str):
        principal = Principal.from_text(principal)
    if subaccount is None:
        subaccount = bytes(_SUBACCOUNT_LENGTH)
    if len(subaccount) != _SUBACCOUNT_LENGTH:
        raise ValueError(f"Subaccount must be {_SUBACCOUNT_LENGTH} bytes, got {len(subaccount)}")

    digest = hashlib.sha224(_ACCOUNT_DOMAIN_SEPARATOR + principal.raw + subaccount).digest()
    return (_crc32_bytes(digest) + digest).hex()
