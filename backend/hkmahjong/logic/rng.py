"""
Random number generation for wall shuffling.

The wall order is the only randomness in the rules engine, and it is fully
determined by a game seed and the round number:

1. A cryptographic seed (96 bytes) is generated once per game.
2. Each round derives its own PCG64DXSM state via SHA512 with a versioned
   domain prefix, so rounds are independent and O(1) to derive.
3. A Fisher-Yates shuffle with rejection sampling permutes tile ids 0-143.

Callers that need a fixed wall (tests, replays) pass their own Shuffler to
the game instead of the default `shuffle_tiles`.
"""

import hashlib
import random
import secrets
from collections.abc import Callable

from hkmahjong.logic.tiles import TOTAL_TILES

SEED_BYTES = 96
_WALL_DOMAIN_PREFIX = b"hkmahjong-wall-v1:"
_AI_DOMAIN_PREFIX = b"hkmahjong-ai-v1:"

# PCG64DXSM constants
_PCG_MULTIPLIER = 0x2360ED051FC65DA44385DF649FCCF645
_PCG_DXSM_MUL = 0xDA942042E4DD58B5
_UINT128_MASK = (1 << 128) - 1
_UINT64_MASK = (1 << 64) - 1

# (seed_hex, round_number) -> permutation of range(TOTAL_TILES)
Shuffler = Callable[[str, int], list[int]]


def validate_seed_hex(seed_hex: str) -> None:
    """Validate that a seed string is 192 hex characters.

    Raises TypeError for non-string input, ValueError for invalid format.
    """
    if not isinstance(seed_hex, str):
        raise TypeError(f"Seed must be a string, got {type(seed_hex).__name__}")
    expected_length = SEED_BYTES * 2
    if len(seed_hex) != expected_length:
        raise ValueError(f"Seed must be exactly {expected_length} hex characters, got {len(seed_hex)}")
    try:
        bytes.fromhex(seed_hex)
    except ValueError:
        raise ValueError("Seed contains invalid hex characters") from None


class PCG64DXSM:
    """
    Pure Python PCG64DXSM generator.

    128-bit LCG state with the DXSM output permutation, producing 64-bit values.
    """

    def __init__(self, state: int, increment: int) -> None:
        self._inc = ((increment << 1) | 1) & _UINT128_MASK
        self._state = (state + self._inc) & _UINT128_MASK
        self._state = (self._state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK
        self._state = (self._state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK

    def next_uint64(self) -> int:
        """Generate the next 64-bit unsigned integer and advance state."""
        state = self._state
        hi = (state >> 64) & _UINT64_MASK
        lo = (state & _UINT64_MASK) | 1

        hi ^= hi >> 32
        hi = (hi * _PCG_DXSM_MUL) & _UINT64_MASK
        hi ^= hi >> 48
        hi = (hi * lo) & _UINT64_MASK

        self._state = (state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK
        return hi


def generate_seed() -> str:
    """Generate a cryptographic seed as a hex string (192 chars)."""
    return secrets.token_bytes(SEED_BYTES).hex()


def _derive_pcg(domain_prefix: bytes, data: bytes) -> PCG64DXSM:
    """Build a PCG from SHA512(domain_prefix + data): 16 bytes state, 16 bytes increment."""
    derived = hashlib.sha512(domain_prefix + data).digest()
    state = int.from_bytes(derived[:16], byteorder="little")
    increment = int.from_bytes(derived[16:32], byteorder="little")
    return PCG64DXSM(state, increment)


def _derive_round_pcg(seed_hex: str, round_number: int) -> PCG64DXSM:
    if not (0 <= round_number < 2**32):
        raise ValueError("round_number must be in [0, 2^32)")
    validate_seed_hex(seed_hex)
    round_bytes = round_number.to_bytes(4, byteorder="little")
    return _derive_pcg(_WALL_DOMAIN_PREFIX, bytes.fromhex(seed_hex) + round_bytes)


def _bounded_uint64(pcg: PCG64DXSM, bound: int) -> int:
    """Unbiased integer in [0, bound), rejecting the partial final bucket."""
    if bound <= 0 or bound > (1 << 64):
        raise ValueError("bound must be in (0, 2^64]")
    limit = (1 << 64) - ((1 << 64) % bound)
    while True:
        r = pcg.next_uint64()
        if r < limit:
            return r % bound


def _fisher_yates_shuffle(tiles: list[int], pcg: PCG64DXSM) -> list[int]:
    """Return a shuffled copy: for i in 0..n-2 swap tiles[i] with tiles[i + bounded(n - i)]."""
    n = len(tiles)
    result = list(tiles)
    for i in range(n - 1):
        j = i + _bounded_uint64(pcg, n - i)
        result[i], result[j] = result[j], result[i]
    return result


def shuffle_tiles(seed_hex: str, round_number: int) -> list[int]:
    """Shuffle all 144 tile ids for a round. Deterministic per (seed, round)."""
    pcg = _derive_round_pcg(seed_hex, round_number)
    return _fisher_yates_shuffle(list(range(TOTAL_TILES)), pcg)


def create_ai_rng(seed_hex: str | None, seat: int) -> random.Random:
    """
    Create a seeded RNG for an automated player's tie-breaking choices.

    stdlib random.Random is enough here; the choices do not affect wall fairness.
    """
    if seed_hex is None:
        return random.Random()  # noqa: S311
    validate_seed_hex(seed_hex)
    digest = hashlib.sha512(_AI_DOMAIN_PREFIX + bytes.fromhex(seed_hex) + bytes([seat])).digest()
    return random.Random(int.from_bytes(digest[:16], byteorder="little"))  # noqa: S311
