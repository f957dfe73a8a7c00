"""Deterministic address derivation.

Every registry and escrow lives at an address that can be computed before it
exists, from the creator's address and the creator's nonce:

    address = keccak256(rlp([creator, nonce]))[12:]

This is the EVM CREATE rule, so a precomputed address matches what an
EVM-compatible runtime would assign. Addresses are rendered EIP-55
checksummed; comparisons go through ``normalize_address``.
"""

from __future__ import annotations

import re

from Cryptodome.Hash import keccak

from marketplace_escrow.domain.exceptions import InvalidAddressError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def is_address(value: object) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def to_checksum_address(value: str) -> str:
    """Return the EIP-55 mixed-case form of a hex address."""
    if not is_address(value):
        raise InvalidAddressError(value)
    lowered = value[2:].lower()
    digest = keccak256(lowered.encode("ascii")).hex()
    return "0x" + "".join(
        ch.upper() if ch.isalpha() and int(digest[i], 16) >= 8 else ch
        for i, ch in enumerate(lowered)
    )


def normalize_address(value: object) -> str:
    """Validate an address and return its checksummed form."""
    if not is_address(value):
        raise InvalidAddressError(value)
    return to_checksum_address(value)  # type: ignore[arg-type]


# --- RLP (only the shapes needed for [address, nonce]) ---


def _rlp_length_prefix(length: int, offset: int) -> bytes:
    if length <= 55:
        return bytes([offset + length])
    encoded_length = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([offset + 55 + len(encoded_length)]) + encoded_length


def _rlp_encode_bytes(data: bytes) -> bytes:
    if len(data) == 1 and data[0] < 0x80:
        return data
    return _rlp_length_prefix(len(data), 0x80) + data


def _rlp_encode_uint(value: int) -> bytes:
    if value < 0:
        raise ValueError("RLP cannot encode negative integers")
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    return _rlp_encode_bytes(raw)


def _rlp_encode_list(items: list[bytes]) -> bytes:
    payload = b"".join(items)
    return _rlp_length_prefix(len(payload), 0xC0) + payload


def derive_create_address(creator: str, nonce: int) -> str:
    """Compute the address of the entity ``creator`` creates at ``nonce``.

    Args:
        creator: Address of the creating account or registry.
        nonce: The creator's nonce at creation time (registries start at 1).

    Returns:
        The checksummed address of the new entity.
    """
    creator_bytes = bytes.fromhex(normalize_address(creator)[2:])
    encoded = _rlp_encode_list([_rlp_encode_bytes(creator_bytes), _rlp_encode_uint(nonce)])
    return to_checksum_address("0x" + keccak256(encoded)[12:].hex())
