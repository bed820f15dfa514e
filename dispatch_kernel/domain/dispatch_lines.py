"""
Dispatch line editor (``dispatch_kernel.domain.dispatch_lines``).

Responsibility
--------------
Seeds one editable ``DispatchLineForm`` per packaging slip line and applies
single-line edits as pure functions returning a new tuple.  The ordered
quantity on each form is a read-only baseline copied from the slip.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over frozen value objects.

Invariants enforced
-------------------
* ``update_line`` changes exactly one line; all others are returned as the
  same objects.  No cross-line recomputation.
* Ship quantity is a finite decimal, never negative.  Price, discount and
  tax rate overrides are finite decimals or ``None``.
* Commercial overrides stay ``None`` until the user enters a value; an
  explicit ``Decimal("0")`` is kept distinct from ``None``.
* A line with ship quantity 0 is not part of the confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any, Sequence

from dispatch_kernel.domain.slip import PackagingSlip, PackagingSlipLine, to_decimal
from dispatch_kernel.exceptions import (
    InvalidLineValueError,
    InvalidShipQuantityError,
    LineIndexError,
    NoShippableLinesError,
    UnknownLineFieldError,
)

ZERO = Decimal("0")

EDITABLE_FIELDS: frozenset[str] = frozenset({
    "ship_qty",
    "batch_id",
    "price_override",
    "discount",
    "tax_rate",
    "tax_inclusive",
})

_DECIMAL_OVERRIDES: frozenset[str] = frozenset({"price_override", "discount", "tax_rate"})


@dataclass(frozen=True)
class DispatchLineForm:
    """The user's proposed action for one slip line, plus read-only display fields."""
    line_id: int | None
    ship_qty: Decimal = ZERO
    batch_id: int | None = None
    price_override: Decimal | None = None
    discount: Decimal | None = None
    tax_rate: Decimal | None = None
    tax_inclusive: bool | None = None
    # Baseline copied from the slip; not editable
    product_name: str | None = None
    product_code: str | None = None
    ordered_quantity: Decimal | None = None
    batch_code: str | None = None

    @property
    def is_shippable(self) -> bool:
        return self.ship_qty > ZERO


def seed_ship_quantity(line: PackagingSlipLine) -> Decimal:
    """Default edit quantity: an already-recorded shipment, else the full order, else 0."""
    return line.shipped_quantity or line.ordered_quantity or ZERO


def build_line_forms(slip: PackagingSlip) -> tuple[DispatchLineForm, ...]:
    """One form per slip line, in slip order."""
    return tuple(
        DispatchLineForm(
            line_id=line.id,
            ship_qty=seed_ship_quantity(line),
            product_name=line.product_name,
            product_code=line.product_code,
            ordered_quantity=line.ordered_quantity,
            batch_code=line.batch_code,
        )
        for line in slip.lines
    )


def _finite_decimal(value: Any) -> Decimal | None:
    """Decimal for ``value``; raises ValueError for text that is not a number, NaN or infinity."""
    number = to_decimal(value)
    if number is not None and not number.is_finite():
        raise ValueError(f"{value!r} is not a finite number")
    return number


def _coerce_change(index: int, name: str, value: Any) -> Any:
    if name == "ship_qty":
        try:
            qty = _finite_decimal(value)
        except ValueError:
            raise InvalidShipQuantityError(index, str(value)) from None
        if qty is None:
            qty = ZERO
        if qty < ZERO:
            raise InvalidShipQuantityError(index, str(qty))
        return qty
    if name in _DECIMAL_OVERRIDES:
        try:
            return _finite_decimal(value)
        except ValueError:
            raise InvalidLineValueError(index, name, str(value)) from None
    if name == "tax_inclusive":
        return None if value is None else bool(value)
    if name == "batch_id":
        return None if value is None else int(value)
    return value


def update_line(
    lines: Sequence[DispatchLineForm],
    index: int,
    **changes: Any,
) -> tuple[DispatchLineForm, ...]:
    """
    Merge ``changes`` into the line at ``index`` and return the new tuple.

    Raises:
        LineIndexError: ``index`` does not address a line.
        UnknownLineFieldError: a change names a non-editable field.
        InvalidShipQuantityError: ``ship_qty`` is negative or not a finite number.
        InvalidLineValueError: an override is not a finite number.
    """
    if index < 0 or index >= len(lines):
        raise LineIndexError(index, len(lines))
    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise UnknownLineFieldError(unknown)

    coerced = {name: _coerce_change(index, name, value) for name, value in changes.items()}
    updated = replace(lines[index], **coerced)
    return tuple(updated if i == index else line for i, line in enumerate(lines))


def has_shippable_line(lines: Sequence[DispatchLineForm]) -> bool:
    return any(line.is_shippable for line in lines)


def shippable_lines(lines: Sequence[DispatchLineForm]) -> tuple[DispatchLineForm, ...]:
    """The non-zero subset, original order preserved."""
    return tuple(line for line in lines if line.is_shippable)


def require_shippable_lines(lines: Sequence[DispatchLineForm]) -> tuple[DispatchLineForm, ...]:
    """Return the non-zero subset or raise NoShippableLinesError."""
    selected = shippable_lines(lines)
    if not selected:
        raise NoShippableLinesError(len(lines))
    return selected


def form_snapshot(lines: Sequence[DispatchLineForm]) -> tuple[dict[str, Any], ...]:
    """Field-by-field copy of the editor state, for comparing before/after."""
    return tuple(
        {f.name: getattr(line, f.name) for f in fields(line)}
        for line in lines
    )
