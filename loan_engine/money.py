"""
Decimal Money Utilities

Safe decimal construction, the rounding policy applied to every returned
monetary value, and small decimal helpers. NEVER uses float for monetary values.
"""

from decimal import (
    Decimal, InvalidOperation, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP,
    localcontext
)
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Union
import re

from .errors import CalculationError, InvalidDecimal


DecimalLike = Union[Decimal, int, float, str]

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')

# Enough significant digits to quantize any accepted principal to the cent
MIN_DECIMAL_PRECISION = 12


class RoundingMode(Enum):
    """Rounding modes for monetary values"""
    ROUND_UP = "ROUND_UP"            # Ceiling
    ROUND_DOWN = "ROUND_DOWN"        # Floor
    ROUND_NEAREST = "ROUND_NEAREST"  # Half-up

    @property
    def decimal_rounding(self) -> str:
        return {
            RoundingMode.ROUND_UP: ROUND_CEILING,
            RoundingMode.ROUND_DOWN: ROUND_FLOOR,
            RoundingMode.ROUND_NEAREST: ROUND_HALF_UP,
        }[self]


@dataclass(frozen=True)
class CalculationConfig:
    """
    Per-call calculation settings. Passed explicitly to every entry point so
    that no calculation depends on process-wide mutable state.
    """
    precision: int = 2                  # Decimal places for money values
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST
    decimal_precision: int = 28         # Significant digits for intermediate math

    def __post_init__(self):
        if not isinstance(self.rounding_mode, RoundingMode):
            object.__setattr__(self, 'rounding_mode', RoundingMode(self.rounding_mode))

        if self.precision < 0:
            raise ValueError("Precision must be zero or positive")
        if self.decimal_precision < MIN_DECIMAL_PRECISION:
            raise ValueError(f"Decimal precision must be at least {MIN_DECIMAL_PRECISION}")
        if self.decimal_precision < self.precision + 1:
            raise ValueError("Decimal precision must exceed money precision")

    @classmethod
    def from_settings(cls, settings) -> 'CalculationConfig':
        """Build a config from EngineSettings"""
        return cls(
            precision=settings.money_precision,
            rounding_mode=RoundingMode(settings.rounding_mode.upper()),
            decimal_precision=settings.decimal_precision
        )


DEFAULT_CONFIG = CalculationConfig()


def resolve_config(config: Optional[CalculationConfig]) -> CalculationConfig:
    """Return the given config or the default one"""
    return config if config is not None else DEFAULT_CONFIG


@contextmanager
def calculation_context(config: Optional[CalculationConfig] = None):
    """
    Thread-local decimal context for one calculation. The global decimal
    context is left untouched.
    """
    config = resolve_config(config)
    with localcontext() as ctx:
        ctx.prec = config.decimal_precision
        yield ctx


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric or textual value to an exact Decimal

    Args:
        value: Decimal, int, float or numeric string

    Returns:
        Decimal value

    Raises:
        InvalidDecimal: If the value cannot be represented as a finite decimal
    """
    if isinstance(value, bool):
        raise InvalidDecimal(value)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # Go through str() so 0.1 becomes Decimal('0.1'), not its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidDecimal(value)
    else:
        raise InvalidDecimal(value)

    if not result.is_finite():
        raise InvalidDecimal(value)
    return result


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert user-entered text to Decimal, handling common formats

    Args:
        value: String representation of number, e.g. "$1,250.50" or "1250,50"

    Returns:
        Decimal value

    Raises:
        InvalidDecimal: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise InvalidDecimal(value)

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    # Handle comma as decimal separator (European format)
    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - assume comma is thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        # Single comma - could be decimal separator
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:  # Likely decimal separator
            clean_value = clean_value.replace(',', '.')
        else:  # Likely thousands separator
            clean_value = clean_value.replace(',', '')
    elif ',' in clean_value:
        clean_value = clean_value.replace(',', '')

    return to_decimal(clean_value)


def round_money(value: Decimal, mode: RoundingMode = RoundingMode.ROUND_NEAREST,
                precision: int = 2) -> Decimal:
    """
    Round a monetary value

    Args:
        value: Amount to round
        mode: ROUND_UP (ceiling), ROUND_DOWN (floor) or ROUND_NEAREST (half-up)
        precision: Number of decimal places

    Returns:
        Rounded Decimal

    Raises:
        CalculationError: If the rounded value does not fit the decimal context
    """
    if not isinstance(mode, RoundingMode):
        mode = RoundingMode(mode)
    value = to_decimal(value)
    try:
        return value.quantize(Decimal('0.1') ** precision, rounding=mode.decimal_rounding)
    except InvalidOperation:
        raise CalculationError(
            "Value has more digits than the decimal context allows",
            code="PRECISION_OVERFLOW",
            details={"value": str(value), "precision": precision}
        )


def apply_rounding(value: Decimal, config: Optional[CalculationConfig] = None) -> Decimal:
    """Round a monetary value using the rounding policy of a config"""
    config = resolve_config(config)
    return round_money(value, config.rounding_mode, config.precision)


def divide_decimals(dividend: Decimal, divisor: DecimalLike) -> Decimal:
    """Divide two decimals, refusing division by zero"""
    divisor = to_decimal(divisor)
    if divisor.is_zero():
        raise CalculationError("Division by zero", code="DIVISION_BY_ZERO",
                               details={"dividend": str(dividend)})
    return dividend / divisor


def sum_decimals(values: Iterable[Decimal]) -> Decimal:
    """Sum decimal values, starting from an exact zero"""
    return sum(values, ZERO)


def min_decimal(values: List[Decimal]) -> Decimal:
    if not values:
        raise CalculationError("Cannot find minimum of empty list", code="EMPTY_INPUT")
    return min(values)


def max_decimal(values: List[Decimal]) -> Decimal:
    if not values:
        raise CalculationError("Cannot find maximum of empty list", code="EMPTY_INPUT")
    return max(values)


def average_decimals(values: List[Decimal]) -> Decimal:
    if not values:
        raise CalculationError("Cannot calculate average of empty list", code="EMPTY_INPUT")
    return divide_decimals(sum_decimals(values), len(values))


def format_currency(amount: DecimalLike, symbol: str = "$", precision: int = 2) -> str:
    """Format an amount for display, e.g. $1,234.50"""
    amount = round_money(to_decimal(amount), RoundingMode.ROUND_NEAREST, precision)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.{precision}f}"
