"""Shared type definitions for pool models.

Addresses identify accounts in the reserve-asset and issued-token ledgers
(traders, recipients, the treasury, the governor, and the pool itself).
"""

from typing import Annotated

from pydantic import AfterValidator, Field

from crr_amm.constants import ZERO_ADDRESS
from crr_amm.errors import ValidationError


def normalize_address(address: str) -> str:
    """Normalize an address to lowercase with 0x prefix.

    Args:
        address: An address (with or without 0x prefix)

    Returns:
        Lowercase address with 0x prefix

    Note:
        This function does NOT check if the input is a valid address. Use
        is_valid_address() or require_address() for that.
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a well-formed address (0x + 40 hex chars)."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def require_address(name: str, address: str) -> str:
    """Validate, normalize, and reject the zero address.

    Raises:
        ValidationError: If the address is malformed or the zero address
    """
    if not is_valid_address(address):
        raise ValidationError(f"Invalid {name} address", parameter=name, value=address)
    normalized = normalize_address(address)
    if normalized == ZERO_ADDRESS:
        raise ValidationError(f"{name} cannot be the zero address", parameter=name)
    return normalized


# Address in pydantic models: format checked, stored lowercase
Address = Annotated[
    str,
    Field(pattern=r"^0x[a-fA-F0-9]{40}$"),
    AfterValidator(normalize_address),
]
