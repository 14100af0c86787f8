"""Unit tests for the Bloom filter and exact membership set."""

from __future__ import annotations

import pytest

from cfaudit.dedup import (
    DEFAULT_FILTER_BITS,
    DEFAULT_FILTER_HASHES,
    BloomFilter,
    ExactMembershipSet,
    MembershipFilter,
    default_filter,
)


def _items(prefix: str, count: int) -> list[bytes]:
    return [f'{{"guid":"{prefix}-{index}"}}'.encode() for index in range(count)]


def test_added_items_are_always_reported_present() -> None:
    """A Bloom filter has no false negatives."""
    bloom = default_filter()
    items = _items("seen", 2000)

    for item in items:
        bloom.add(item)

    assert all(bloom.test(item) for item in items)


def test_false_positive_rate_is_low_for_expected_load() -> None:
    """Unseen items are rarely reported present at moderate load."""
    bloom = default_filter()
    for item in _items("seen", 2000):
        bloom.add(item)

    unseen = _items("unseen", 5000)
    hits = sum(bloom.test(item) for item in unseen)

    assert hits / len(unseen) < 0.01
    assert bloom.estimated_false_positive_rate(2000) < 0.01


def test_empty_filter_reports_nothing() -> None:
    """Nothing is present before the first insertion."""
    bloom = BloomFilter(64, 3)

    assert not bloom.test(b"anything")


def test_default_filter_dimensions() -> None:
    """The default filter uses 43008 bits and nine hash functions."""
    bloom = default_filter()

    assert (bloom.m, bloom.k) == (DEFAULT_FILTER_BITS, DEFAULT_FILTER_HASHES)
    assert bloom.m == 43008


def test_from_estimate_sizes_filter_for_target_rate() -> None:
    """Sizing from an estimate meets the requested false-positive rate."""
    bloom = BloomFilter.from_estimate(1000, 0.01)

    assert bloom.m >= 9585
    assert bloom.k == 7
    assert bloom.estimated_false_positive_rate(1000) <= 0.0101


@pytest.mark.parametrize(
    ("m", "k"), [(0, 3), (-8, 3), (64, 0)], ids=["zero-bits", "neg-bits", "zero-k"]
)
def test_invalid_dimensions_are_rejected(m: int, k: int) -> None:
    """Bit count and hash count must both be positive."""
    with pytest.raises(ValueError, match="must be positive"):
        BloomFilter(m, k)


@pytest.mark.parametrize(("n", "rate"), [(0, 0.01), (10, 0.0), (10, 1.0)])
def test_invalid_estimates_are_rejected(n: int, rate: float) -> None:
    """Estimates need a positive count and a rate strictly between 0 and 1."""
    with pytest.raises(ValueError, match="must be"):
        BloomFilter.from_estimate(n, rate)


def test_exact_set_is_a_membership_filter() -> None:
    """The exact set tracks items precisely."""
    exact = ExactMembershipSet()
    exact.add(b"a")
    exact.add(b"a")

    assert isinstance(exact, MembershipFilter)
    assert isinstance(default_filter(), MembershipFilter)
    assert exact.test(b"a")
    assert not exact.test(b"b")
    assert len(exact) == 1
