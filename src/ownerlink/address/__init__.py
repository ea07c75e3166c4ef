"""Wallet address lexical matching and sanitizing."""

from ownerlink.address.patterns import (
    XRPL_ADDRESS,
    AddressPattern,
    find_addresses,
    first_address,
    is_address,
    sanitize_address,
)

__all__ = [
    "XRPL_ADDRESS",
    "AddressPattern",
    "find_addresses",
    "first_address",
    "is_address",
    "sanitize_address",
]
