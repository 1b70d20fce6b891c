from __future__ import annotations

import pickle

import pytest

from extended_collatz import (
    InvariantViolation,
    Magnitude,
    Width,
    get_exponent,
    modulus_power,
    reference_step,
    step,
)

U64 = 1 << 64
U128 = 1 << 128


def test_constructor_picks_narrowest_width() -> None:
    assert Magnitude(0).width is Width.NARROW
    assert Magnitude(U64 - 1).width is Width.NARROW
    assert Magnitude(U64).width is Width.WIDE
    assert Magnitude(U128 - 1).width is Width.WIDE
    assert Magnitude(U128).width is Width.BIG


def test_constructor_rejects_bad_values() -> None:
    with pytest.raises(ValueError):
        Magnitude(-1)
    with pytest.raises(ValueError):
        Magnitude(U64, Width.NARROW)
    with pytest.raises(TypeError):
        Magnitude(1.5)


def test_equality_and_order_ignore_width() -> None:
    narrow, wide, big = Magnitude(5), Magnitude(5, Width.WIDE), Magnitude(5, Width.BIG)
    assert narrow == wide == big
    assert hash(narrow) == hash(big)
    assert len({narrow, wide, big}) == 1
    assert Magnitude(4, Width.BIG) < Magnitude(5)
    assert Magnitude(U64) > Magnitude(U64 - 1)
    assert Magnitude(3).compare(Magnitude(7, Width.WIDE)) == -1
    assert Magnitude(7).compare(Magnitude(7, Width.BIG)) == 0
    assert Magnitude(U128).compare(Magnitude(1)) == 1


def test_magnitude_is_immutable() -> None:
    m = Magnitude(3)
    with pytest.raises(AttributeError):
        m._value = 4
    assert m.multiply_by_small(2) == Magnitude(6)
    assert m == Magnitude(3)


def test_multiply_promotes_on_overflow() -> None:
    assert Magnitude(U64 - 1).multiply_by_small(1).width is Width.NARROW
    doubled = Magnitude(U64 - 1).multiply_by_small(2)
    assert doubled.width is Width.WIDE
    assert doubled.value == 2 * (U64 - 1)
    big = Magnitude(U128 - 1).multiply_by_small(3)
    assert big.width is Width.BIG
    assert big.value == 3 * (U128 - 1)


def test_operations_return_narrowest_width() -> None:
    assert Magnitude(5, Width.BIG).multiply_by_small(3).width is Width.NARROW
    assert Magnitude(5, Width.WIDE).round_up_to_multiple(4).width is Width.NARROW
    assert Magnitude(U64 - 1, Width.BIG).round_up_to_multiple(2).width is Width.WIDE
    assert Magnitude(U64, Width.BIG).multiply_by_small(2).width is Width.WIDE
    assert Magnitude(8, Width.BIG).round_up_to_multiple(4).width is Width.NARROW


def test_round_up_to_multiple() -> None:
    assert Magnitude(15).round_up_to_multiple(4) == Magnitude(16)
    assert Magnitude(16).round_up_to_multiple(4) == Magnitude(16)
    crossed = Magnitude(U64 - 1).round_up_to_multiple(4)
    assert crossed.value == U64
    assert crossed.width is Width.WIDE
    assert Magnitude(U128 - 1).round_up_to_multiple(2).width is Width.BIG


def test_divide_demotes_to_narrowest() -> None:
    assert Magnitude(U64 * 2).divide_by_small(2).width is Width.WIDE
    assert Magnitude(U64 * 2).divide_by_small(4).width is Width.NARROW
    assert Magnitude(U128 * 8).divide_by_small(16).width is Width.WIDE
    assert Magnitude(12, Width.BIG).divide_by_small(3).width is Width.NARROW


def test_divide_requires_exact_division() -> None:
    assert Magnitude(12).is_divisible_by(3)
    assert not Magnitude(13).is_divisible_by(3)
    with pytest.raises(InvariantViolation):
        Magnitude(13).divide_by_small(3)


def test_small_operands_are_bounded() -> None:
    with pytest.raises(ValueError):
        Magnitude(3).multiply_by_small(0)
    with pytest.raises(ValueError):
        Magnitude(3).multiply_by_small(U64)


def test_pickle_keeps_value_and_width() -> None:
    m = Magnitude(7, Width.WIDE)
    restored = pickle.loads(pickle.dumps(m))
    assert restored == m
    assert restored.width is Width.WIDE


def test_exponent_selector() -> None:
    assert get_exponent(3, 2) == 1
    assert get_exponent(5, 2) == 2
    assert get_exponent(7, 2) == 2
    assert get_exponent(9, 2) == 3
    assert get_exponent(7, 3) == 2
    assert get_exponent(1, 2) == 1
    with pytest.raises(ValueError):
        get_exponent(3, 1)


def test_modulus_power_must_fit_narrow_width() -> None:
    assert modulus_power(2, 63) == 1 << 63
    with pytest.raises(ValueError):
        modulus_power(2, 64)


def test_step_known_values() -> None:
    assert step(Magnitude(3), 5, 2, 1) == Magnitude(1)
    assert step(Magnitude(3), 5, 2, 2) == Magnitude(1)
    assert step(Magnitude(3), 7, 2, 2) == Magnitude(3)
    assert step(Magnitude(47), 5, 2, 2) == Magnitude(59)
    assert step(Magnitude(59), 5, 2, 2) == Magnitude(37)


def test_step_strips_every_factor_not_just_e() -> None:
    # 5 * 3 = 15 -> 16 carries four factors of 2 although e = 1
    assert step(Magnitude(3), 5, 2, 1).value == 1
    # 7 * 9 = 63 -> 64 under e = 2
    assert step(Magnitude(9), 7, 2, 2).value == 1


def test_step_rejects_zero() -> None:
    with pytest.raises(ValueError):
        step(Magnitude(0), 3, 2, 1)


BOUNDARY_VALUES = [
    1, 3, 23, 59, 1001,
    U64 - 3, U64 - 1, U64 + 1, U64 + 3,
    U128 - 3, U128 - 1, U128 + 1, U128 + 3,
    (1 << 200) + 1,
]
RULES = [(3, 2), (5, 2), (7, 2), (9, 2), (7, 3), (11, 5), (13, 3)]


@pytest.mark.parametrize("n", BOUNDARY_VALUES)
@pytest.mark.parametrize("a,p", RULES)
def test_width_paths_agree_with_plain_ints(n: int, a: int, p: int) -> None:
    if n % p == 0:
        n += 1
    e = get_exponent(a, p)
    expected = reference_step(n, a, p, e)
    narrowest = step(Magnitude(n), a, p, e)
    unbounded = step(Magnitude(n, Width.BIG), a, p, e)
    assert narrowest.value == expected
    assert unbounded == narrowest
    assert unbounded.width is Magnitude(expected).width
    assert narrowest.width is Magnitude(expected).width
