from decimal import Decimal

import pytest

from money import (
    apply_discount,
    apply_rate,
    format_cents,
    lower_bound_cents,
    to_basis_points,
    to_cents,
    upper_bound_cents,
)


@pytest.mark.parametrize("value,cents", [
    ("25.00", 2500),
    ("25", 2500),
    (19.99, 1999),
    (Decimal("0.1"), 10),
    ("0.005", 1),
    (0, 0),
])
def test_to_cents(value, cents):
    assert to_cents(value) == cents


def test_to_cents_rejects_garbage():
    with pytest.raises(ValueError):
        to_cents("twelve")
    with pytest.raises(ValueError):
        to_cents(Decimal("Infinity"))


def test_format_cents():
    assert format_cents(7200) == "72.00"
    assert format_cents(5) == "0.05"
    assert format_cents(-150) == "-1.50"


def test_basis_points():
    assert to_basis_points("20") == 2000
    assert to_basis_points("12.5") == 1250


def test_apply_discount():
    assert apply_discount(9000, 2000) == 7200
    assert apply_discount(9000, 0) == 9000
    assert apply_discount(9000, 10000) == 0
    # 999 * 0.85 = 849.15 -> 849
    assert apply_discount(999, 1500) == 849
    # 1 * 0.5 rounds half up
    assert apply_discount(1, 5000) == 1


def test_apply_discount_out_of_range():
    with pytest.raises(ValueError):
        apply_discount(100, 10001)


def test_float_sum_has_no_drift():
    # 0.1 * 3 in floats is 0.30000000000000004
    assert sum(to_cents(0.1) for _ in range(3)) == 30


def test_apply_rate():
    assert apply_rate(7200, Decimal("0.08")) == 576
    assert apply_rate(1999, Decimal("0.08")) == 160


def test_bounds_round_inward():
    assert lower_bound_cents("10.005") == 1001
    assert upper_bound_cents("10.005") == 1000
    assert lower_bound_cents("10.01") == 1001
    assert upper_bound_cents("10.01") == 1001
    assert upper_bound_cents("0.009") == 0
