"""
Token Unit Conversion

Exact, Decimal-based conversion between human-readable token amounts and
smallest-unit integers. Floats never enter the computation: amounts are
parsed from their string form so ``"0.1"`` stays exactly one tenth.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, List, Sequence, Union

from ..bases import UnitConverter


def amount_to_value(*, amount: Union[str, int, Decimal], decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    Args:
        amount: Human-readable amount (e.g. "10.5"). Accepts str/int/Decimal.
        decimals: Token decimals (e.g. 18 for ArGo).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if not dec_amount.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    scaled = dec_amount.scaleb(decimals)

    # Require exact smallest-unit representability (no fractional smallest units)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals} "
            f"(would create fractional smallest units)"
        )

    return int(scaled)


def value_to_amount(*, value: Union[str, int, Decimal], decimals: int) -> str:
    """Convert a smallest-unit integer `value` into a human-readable decimal string.

    The result always carries a fractional part: ``10**18`` at 18 decimals
    gives ``"1.0"`` and ``10500000000000000000`` gives ``"10.5"``.

    Raises:
        ValueError: If inputs are invalid.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value: {value!r}") from e

    if not dec_value.is_finite() or dec_value != dec_value.to_integral_value():
        raise ValueError("value must be an integer in smallest units")

    sign = "-" if dec_value < 0 else ""
    digits = str(abs(int(dec_value))).rjust(decimals + 1, "0")
    whole = digits[: len(digits) - decimals] if decimals else digits
    fraction = (digits[len(digits) - decimals:] if decimals else "").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction}"


def unwrap_result(result: Any) -> Any:
    """
    Unwrap a single-output contract result.

    Some providers hand back single return values wrapped in a list or
    tuple (``[value]``); multi-output results are left untouched.
    """
    if isinstance(result, (list, tuple)) and len(result) == 1:
        return result[0]
    return result


class DecimalUnitConverter(UnitConverter):
    """
    ``UnitConverter`` backed by ``decimal.Decimal`` arithmetic.

    Example:
        converter = DecimalUnitConverter()
        wei = converter.to_wei("10.5", 18)       # 10500000000000000000
        converter.from_wei(wei, 18)              # "10.5"
    """

    def to_wei(self, amount: Union[str, int, Decimal], precision: int) -> int:
        return amount_to_value(amount=amount, decimals=precision)

    def from_wei(self, value: Any, precision: int) -> str:
        return value_to_amount(value=unwrap_result(value), decimals=precision)

    def to_int(self, value: Union[str, int]) -> int:
        try:
            if isinstance(value, str):
                text = value.strip()
                return int(text, 16) if text.lower().startswith("0x") else int(text)
            return int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid integer: {value!r}") from e

    def to_int_array(self, values: Sequence[Union[str, int]]) -> List[int]:
        return [self.to_int(value) for value in values]
