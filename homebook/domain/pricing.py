"""
Work selection pricing with decimal-safe arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Collection, Iterable

from .exceptions import ParseError
from .models import WorkItem

CENTS = Decimal("0.01")


def parse_price(raw) -> Decimal:
    """
    Normalize a price that may arrive as a string, int or float.

    Raises:
        ParseError: On missing, non-numeric, non-finite or negative values
    """
    if raw is None or isinstance(raw, bool):
        raise ParseError(f"Missing or invalid price: {raw!r}")

    try:
        # str() first so floats keep their printed value, not their binary one
        amount = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise ParseError(f"Invalid price: {raw!r}") from exc

    if not amount.is_finite():
        raise ParseError(f"Price must be a finite number, got {raw!r}")
    if amount < 0:
        raise ParseError(f"Price must not be negative, got {raw!r}")

    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_price(amount: Decimal, currency: str = "PHP") -> str:
    """Render an amount as ``PHP 350.00``."""
    return f"{currency} {amount.quantize(CENTS, rounding=ROUND_HALF_UP)}"


class WorkSelectionPricer:
    """Totals and validates a selection of work items."""

    @staticmethod
    def compute_total(catalog: Iterable[WorkItem], selected_ids: Collection[int]) -> Decimal:
        """
        Sum the unit prices of selected catalog items.

        Ids with no matching catalog item are ignored; the selection may
        briefly reference a stale catalog while it is refetched.
        """
        total = sum(
            (item.unit_price for item in catalog if item.id in selected_ids),
            Decimal("0"),
        )
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)

    @staticmethod
    def validate_selection(selected_ids: Collection[int]) -> bool:
        """A selection is valid only if it is non-empty."""
        return len(selected_ids) > 0
