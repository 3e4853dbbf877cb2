"""
Field Arithmetic Primitives
===========================

Building blocks shared by every verification circuit. Each primitive mirrors
the constraint it stands for in an arithmetic circuit over the BN254 scalar
field: comparisons are bit-decomposition checks, boolean AND is a running
product, division is proved by a multiplication identity and array indexing
is an equality-indicator dot product.

Version: 0.1.0
"""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass

# BN254 scalar field order
FIELD_ORDER = 21888242871839275222246405745257275088548364400416034343698204186575808495617

DEFAULT_BIT_WIDTH = 10

COMMIT_DOMAIN = b"zk-agentmesh/commit/v1"


class FieldRangeError(ValueError):
    """A value does not fit the declared bit width."""


class DivisionConstraintError(ValueError):
    """A claimed quotient does not satisfy its division constraint."""


class BooleanConstraintError(ValueError):
    """A flag is neither 0 nor 1."""


def to_field(value: int | str | bytes) -> int:
    """
    Map a value to a field element.

    Integers are reduced mod the field order. Strings and bytes are hashed
    with SHA-256 first, which is how agent and creator identifiers enter
    the circuits.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value % FIELD_ORDER
    if isinstance(value, str):
        value = value.encode()
    digest = hashlib.sha256(value).digest()
    return int.from_bytes(digest, "big") % FIELD_ORDER


def range_check(value: int, bit_width: int = DEFAULT_BIT_WIDTH) -> int:
    """Assert that value is representable as an unsigned bit_width-bit integer."""
    if not 0 <= value < (1 << bit_width):
        raise FieldRangeError(f"Value {value} does not fit in {bit_width} bits")
    return value


def assert_boolean(flag: int) -> int:
    """Enforce flag * (flag - 1) == 0."""
    if flag * (flag - 1) != 0:
        raise BooleanConstraintError(f"Flag {flag} is not boolean")
    return flag


def greater_equal(a: int, b: int, bit_width: int = DEFAULT_BIT_WIDTH) -> int:
    """
    Return 1 iff a >= b, for a and b that fit in bit_width bits.

    Uses the borrow bit of ``a + 2**n - b``: bit n is set exactly when the
    subtraction did not underflow.
    """
    range_check(a, bit_width)
    range_check(b, bit_width)
    return ((a + (1 << bit_width) - b) >> bit_width) & 1


def less_equal(a: int, b: int, bit_width: int = DEFAULT_BIT_WIDTH) -> int:
    """Return 1 iff a <= b."""
    return greater_equal(b, a, bit_width)


def is_equal(a: int, b: int) -> int:
    """Equality indicator over field elements."""
    return 1 if (a - b) % FIELD_ORDER == 0 else 0


@dataclass(frozen=True)
class Quotient:
    """Floor quotient together with the witness that proves it."""

    quotient: int
    remainder: int
    total: int
    count: int

    def __int__(self) -> int:
        return self.quotient


def divide(total: int, count: int, exact: bool = False) -> Quotient:
    """
    Integer division proved by ``quotient * count + remainder == total``.

    Args:
        total: Dividend (non-negative)
        count: Divisor (positive)
        exact: Reject a non-zero remainder, so that ``quotient * count == total``

    Raises:
        DivisionConstraintError: If the division constraint cannot hold
    """
    if count <= 0:
        raise DivisionConstraintError("Division by a non-positive count")
    if total < 0:
        raise DivisionConstraintError(f"Negative dividend {total}")

    quotient, remainder = divmod(total, count)

    # The constraints a circuit would enforce on the prover-supplied witness
    if quotient * count + remainder != total or not 0 <= remainder < count:
        raise DivisionConstraintError(
            f"Quotient {quotient} does not satisfy {quotient} * {count} + {remainder} == {total}"
        )
    if exact and remainder != 0:
        raise DivisionConstraintError(
            f"{total} is not divisible by {count}: {quotient} * {count} != {total}"
        )

    return Quotient(quotient=quotient, remainder=remainder, total=total, count=count)


def average(values: Sequence[int], exact: bool = False) -> Quotient:
    """Average of N values with a proved division."""
    if not values:
        raise DivisionConstraintError("Cannot average an empty evidence vector")
    return divide(sum(values), len(values), exact=exact)


def product_reduce(flags: Sequence[int]) -> int:
    """
    Logical AND of boolean flags as an iterated product.

    The empty product is 1: no checks means nothing failed.
    """
    acc = 1
    for flag in flags:
        acc = acc * assert_boolean(flag)
    return acc


def sum_count(flags: Sequence[int]) -> int:
    """Running total of boolean flags."""
    total = 0
    for flag in flags:
        total = total + assert_boolean(flag)
    return total


def select_index(values: Sequence[int], index: int) -> int:
    """
    Return values[index] as ``sum(eq(index, i) * values[i])``.

    An index matching no position selects nothing and yields 0.
    """
    acc = 0
    for i, value in enumerate(values):
        acc = acc + is_equal(index, i) * value
    return acc


def weighted_bitmask(flags: Sequence[int]) -> int:
    """Accumulate ``flag_i * 2**i``."""
    acc = 0
    weight = 1
    for flag in flags:
        acc = acc + assert_boolean(flag) * weight
        weight = weight * 2
    return acc


def commit_hash(*inputs: int | str | bytes) -> int:
    """
    Order-sensitive multi-input commitment.

    Absorbs a domain tag, the arity and each input as a 32-byte big-endian
    field element, then squeezes one field element.
    """
    hasher = hashlib.sha256()
    hasher.update(COMMIT_DOMAIN)
    hasher.update(len(inputs).to_bytes(4, "big"))
    for item in inputs:
        hasher.update(to_field(item).to_bytes(32, "big"))
    return int.from_bytes(hasher.digest(), "big") % FIELD_ORDER


def to_hex(element: int) -> str:
    """Render a field element as a 0x-prefixed 32-byte hex string."""
    return "0x" + element.to_bytes(32, "big").hex()


def from_hex(value: str) -> int:
    """Parse a 0x-prefixed hex digest back into a field element."""
    return int(value, 16) % FIELD_ORDER
