"""Bloom filter over byte strings.

Bit positions come from double hashing a 128-bit BLAKE2b digest split into
two 64-bit halves, ``h1 + i * h2 (mod m)`` for ``i`` in ``range(k)``.
"""

from __future__ import annotations

import hashlib
import math
import typing as typ

_DIGEST_SIZE = 16


@typ.runtime_checkable
class MembershipFilter(typ.Protocol):
    """Set-like structure supporting membership tests and insertion."""

    def test(self, item: bytes) -> bool:
        """Return ``True`` when ``item`` may have been added."""
        ...

    def add(self, item: bytes) -> None:
        """Record ``item``."""
        ...


class BloomFilter:
    """Fixed-size probabilistic set with no false negatives.

    Parameters
    ----------
    m
        Number of bits.
    k
        Number of hash functions.

    Examples
    --------
    >>> bloom = BloomFilter(1024, 3)
    >>> bloom.add(b"event")
    >>> bloom.test(b"event")
    True

    """

    __slots__ = ("_bits", "_k", "_m")

    def __init__(self, m: int, k: int) -> None:
        """Allocate ``m`` zeroed bits."""
        if m < 1:
            msg = f"m must be positive, got: {m}"
            raise ValueError(msg)
        if k < 1:
            msg = f"k must be positive, got: {k}"
            raise ValueError(msg)
        self._m = m
        self._k = k
        self._bits = bytearray((m + 7) // 8)

    @classmethod
    def from_estimate(cls, n: int, fp_rate: float) -> BloomFilter:
        """Size a filter for ``n`` items at false-positive rate ``fp_rate``."""
        if n < 1:
            msg = f"n must be positive, got: {n}"
            raise ValueError(msg)
        if not 0.0 < fp_rate < 1.0:
            msg = f"fp_rate must be in (0, 1), got: {fp_rate}"
            raise ValueError(msg)
        m = math.ceil(-n * math.log(fp_rate) / (math.log(2) ** 2))
        k = math.ceil(math.log(2) * m / n)
        return cls(m, k)

    @property
    def m(self) -> int:
        """Return the number of bits."""
        return self._m

    @property
    def k(self) -> int:
        """Return the number of hash functions."""
        return self._k

    def estimated_false_positive_rate(self, n: int) -> float:
        """Return the theoretical false-positive rate after ``n`` insertions."""
        return (1.0 - math.exp(-self._k * n / self._m)) ** self._k

    def _locations(self, item: bytes) -> typ.Iterator[int]:
        digest = hashlib.blake2b(item, digest_size=_DIGEST_SIZE).digest()
        h1 = int.from_bytes(digest[:8], "little")
        h2 = int.from_bytes(digest[8:], "little") | 1
        for i in range(self._k):
            yield (h1 + i * h2) % self._m

    def add(self, item: bytes) -> None:
        """Set the ``k`` bits for ``item``."""
        for location in self._locations(item):
            self._bits[location >> 3] |= 1 << (location & 7)

    def test(self, item: bytes) -> bool:
        """Return ``True`` if all ``k`` bits for ``item`` are set."""
        return all(
            self._bits[location >> 3] & (1 << (location & 7))
            for location in self._locations(item)
        )


class ExactMembershipSet:
    """Exact set with the :class:`MembershipFilter` interface.

    Memory grows with every distinct item; suitable for small deployments
    and tests.
    """

    def __init__(self) -> None:
        self._items: set[bytes] = set()

    def __len__(self) -> int:
        return len(self._items)

    def test(self, item: bytes) -> bool:
        """Return ``True`` if ``item`` was added before."""
        return item in self._items

    def add(self, item: bytes) -> None:
        """Record ``item``."""
        self._items.add(item)
