"""
Content hashing using BLAKE3 or SHA-256.

Hash functions are selected by their multihash code so that every
content identifier names the function that produced it.
"""

import hashlib
from typing import Callable, Dict

import blake3

SHA2_256 = 0x12
BLAKE3 = 0x1e

DEFAULT_HASH_CODE = BLAKE3


def _sha2_256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _blake3(data: bytes) -> bytes:
    return blake3.blake3(data).digest()


HASH_FUNCTIONS: Dict[int, Callable[[bytes], bytes]] = {
    SHA2_256: _sha2_256,
    BLAKE3: _blake3,
}

HASH_NAMES: Dict[int, str] = {
    SHA2_256: 'sha2-256',
    BLAKE3: 'blake3',
}


def is_supported_hash(hash_code: int) -> bool:
    """Check whether a multihash code has a known hash function."""
    return hash_code in HASH_FUNCTIONS


def compute_digest(data: bytes, hash_code: int = DEFAULT_HASH_CODE) -> bytes:
    """
    Compute the raw digest of bytes with the given hash function.

    Raises ValueError for an unknown hash code.
    """
    try:
        func = HASH_FUNCTIONS[hash_code]
    except KeyError:
        raise ValueError(f"Unsupported hash function: 0x{hash_code:x}")
    return func(data)


def get_hash_prefix(hash_str: str, prefix_length: int = 2) -> str:
    """
    Get prefix of hash for directory sharding.

    Default is 2 characters.
    """
    if len(hash_str) < prefix_length:
        raise ValueError(f"Hash too short for prefix length {prefix_length}")
    return hash_str[:prefix_length]
