"""
Unit tests for field arithmetic primitives.
"""

import pytest

from shared.zk.field import (
    FIELD_ORDER,
    BooleanConstraintError,
    DivisionConstraintError,
    FieldRangeError,
    assert_boolean,
    average,
    commit_hash,
    divide,
    from_hex,
    greater_equal,
    is_equal,
    less_equal,
    product_reduce,
    select_index,
    sum_count,
    to_field,
    to_hex,
    weighted_bitmask,
)


class TestComparators:
    """Tests for bit-decomposition comparisons."""

    def test_greater_equal(self) -> None:
        assert greater_equal(5, 5) == 1
        assert greater_equal(6, 5) == 1
        assert greater_equal(4, 5) == 0

    def test_less_equal(self) -> None:
        assert less_equal(5, 5) == 1
        assert less_equal(4, 5) == 1
        assert less_equal(6, 5) == 0

    def test_bounds_of_bit_width(self) -> None:
        assert greater_equal(1023, 0) == 1
        assert greater_equal(0, 1023) == 0

    def test_out_of_range_operand_rejected(self) -> None:
        with pytest.raises(FieldRangeError):
            greater_equal(1024, 0)
        with pytest.raises(FieldRangeError):
            less_equal(-1, 0)

    def test_wider_bit_width(self) -> None:
        assert greater_equal(5000, 4999, bit_width=20) == 1

    def test_is_equal_reduces_mod_field(self) -> None:
        assert is_equal(3, 3) == 1
        assert is_equal(3, 3 + FIELD_ORDER) == 1
        assert is_equal(3, 4) == 0


class TestDivision:
    """Tests for proved integer division."""

    def test_average_satisfies_remainder_constraint(self) -> None:
        result = average([1, 2, 2])

        assert result.quotient == 1
        assert result.remainder == 2
        assert result.quotient * result.count + result.remainder == result.total
        assert 0 <= result.remainder < result.count

    def test_average_floors(self) -> None:
        assert int(average([900, 950, 870])) == 906

    def test_exact_mode_rejects_remainder(self) -> None:
        with pytest.raises(DivisionConstraintError, match="not divisible"):
            divide(7, 2, exact=True)

        assert divide(8, 2, exact=True).quotient == 4

    def test_empty_vector_rejected(self) -> None:
        with pytest.raises(DivisionConstraintError):
            average([])

    def test_non_positive_count_rejected(self) -> None:
        with pytest.raises(DivisionConstraintError):
            divide(10, 0)


class TestReductions:
    """Tests for products, counts, selection and bitmasks."""

    def test_product_reduce_is_and(self) -> None:
        assert product_reduce([1, 1, 1]) == 1
        assert product_reduce([1, 0, 1]) == 0

    def test_empty_product_is_one(self) -> None:
        assert product_reduce([]) == 1

    def test_non_boolean_flag_rejected(self) -> None:
        with pytest.raises(BooleanConstraintError):
            assert_boolean(2)
        with pytest.raises(BooleanConstraintError):
            product_reduce([1, 2])

    def test_sum_count(self) -> None:
        assert sum_count([1, 0, 1, 1]) == 3
        assert sum_count([]) == 0

    def test_select_index(self) -> None:
        assert select_index([5, 6, 7], 1) == 6
        assert select_index([5, 6, 7], 0) == 5

    def test_select_index_out_of_range_is_zero(self) -> None:
        assert select_index([5, 6, 7], 3) == 0
        assert select_index([], 0) == 0

    def test_weighted_bitmask(self) -> None:
        assert weighted_bitmask([1, 0, 1]) == 5
        assert weighted_bitmask([0, 0, 0, 1]) == 8
        assert weighted_bitmask([]) == 0


class TestHashing:
    """Tests for field mapping and commitments."""

    def test_to_field_hashes_strings(self) -> None:
        value = to_field("agent-001")

        assert 0 <= value < FIELD_ORDER
        assert value == to_field("agent-001")
        assert value != to_field("agent-002")
        assert to_field("agent-001") == to_field(b"agent-001")

    def test_to_field_reduces_integers(self) -> None:
        assert to_field(FIELD_ORDER + 1) == 1
        assert to_field(True) == 1

    def test_commit_hash_is_order_sensitive(self) -> None:
        assert commit_hash(1, 2) != commit_hash(2, 1)
        assert commit_hash(1, 2) == commit_hash(1, 2)

    def test_commit_hash_binds_arity(self) -> None:
        assert commit_hash(0) != commit_hash(0, 0)

    def test_hex_roundtrip(self) -> None:
        element = commit_hash("agent-001", 42)
        rendered = to_hex(element)

        assert rendered.startswith("0x")
        assert len(rendered) == 66
        assert from_hex(rendered) == element
