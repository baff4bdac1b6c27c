"""
Checked fixed-point arithmetic for reward accrual.

All values are non-negative integers scaled by SCALE (1e18). Products are
checked against the uint256 range and divisions truncate toward zero, so
rounding always favours the pool.
"""

from __future__ import annotations

from typing import Any

from .config import SCALE, UINT256_MAX
from .exceptions import ArithmeticOverflow, InvalidArgument


class FixedPointMath:
    """Overflow-checked integer helpers."""

    @staticmethod
    def is_integer(value: Any) -> bool:
        """True for ints; bool is rejected even though it subclasses int."""
        return isinstance(value, int) and not isinstance(value, bool)

    @staticmethod
    def mul(*factors: int, name: str = "product") -> int:
        """Multiply factors left to right, failing as soon as a partial product overflows."""
        result = 1
        for factor in factors:
            if factor < 0:
                raise InvalidArgument(f"{name}: negative operand {factor}")
            result *= factor
            if result > UINT256_MAX:
                raise ArithmeticOverflow(
                    f"{name}: uint256 overflow",
                    details={"operands": [str(f) for f in factors]},
                )
        return result

    @staticmethod
    def div(numerator: int, denominator: int, name: str = "quotient") -> int:
        """Truncating division."""
        if denominator == 0:
            raise ArithmeticOverflow(f"{name}: division by zero")
        return numerator // denominator

    @classmethod
    def mul_div(cls, a: int, b: int, denominator: int, name: str = "mul_div") -> int:
        """a * b / denominator with the multiplication checked first."""
        return cls.div(cls.mul(a, b, name=name), denominator, name=name)

    @classmethod
    def share(cls, part: int, total: int) -> int:
        """part / total as a SCALE fixed-point fraction, truncated."""
        return cls.mul_div(part, SCALE, total, name="share")

    @staticmethod
    def add(a: int, b: int, name: str = "sum") -> int:
        result = a + b
        if result > UINT256_MAX:
            raise ArithmeticOverflow(f"{name}: uint256 overflow")
        return result

    @staticmethod
    def sub(a: int, b: int, name: str = "difference") -> int:
        if b > a:
            raise ArithmeticOverflow(f"{name}: underflow ({a} - {b})")
        return a - b
