"""
Normalization of stored cost data.

Everything that enters from the record store passes through here, so the
accrual math only ever sees strict enums, booleans, decimals and datetimes.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from cost_accrual.observability.logger import get_logger
from cost_accrual.storage.models import (
    CostRecord,
    EntityType,
    Frequency,
    OwnerKey,
)

logger = get_logger(__name__)

_TRUE_STRINGS = {"1", "true", "t", "yes", "y"}
_FALSE_STRINGS = {"0", "false", "f", "no", "n", ""}


def normalize_frequency(value: Union[Frequency, str, None]) -> Frequency:
    """Map a raw frequency value onto the Frequency enum.

    Empty, missing and unrecognized values fall back to DAILY so a bad row
    never breaks a dashboard total.

    Args:
        value: Frequency, string (any case, surrounding whitespace allowed) or None

    Returns:
        Normalized Frequency
    """
    if isinstance(value, Frequency):
        return value
    if value is None:
        return Frequency.DAILY

    text = str(value).strip().upper()
    if not text:
        return Frequency.DAILY

    try:
        return Frequency(text)
    except ValueError:
        logger.warning("frequency.unrecognized", value=text, fallback=Frequency.DAILY.value)
        return Frequency.DAILY


def coerce_flag(value: Any, default: bool) -> bool:
    """Convert a loosely typed boolean column value to a strict bool.

    Handles the representations a schemaless store hands back: real
    booleans, 0/1 integers, "0"/"1" and true/false/yes/no strings.

    Args:
        value: Raw value from storage or user input
        default: Result when value is None

    Returns:
        Strict boolean

    Raises:
        ValueError: If the value has no boolean reading
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def coerce_amount(value: Any) -> Decimal:
    """Convert a monetary value to Decimal.

    Floats are converted through their string form to avoid carrying
    binary rounding noise into the ledger.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def coerce_datetime(value: Union[datetime, date, str]) -> datetime:
    """Convert a stored timestamp to datetime.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat only accepts a Z suffix from Python 3.11
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise ValueError(f"Invalid timestamp: {value!r}")


def to_date(value: Union[datetime, date]) -> date:
    """Drop the time of day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def stored_flag(row: Mapping[str, Any], column: str, default: bool) -> bool:
    """Read a boolean column, falling back to default when it is unreadable."""
    value = row.get(column)
    try:
        return coerce_flag(value, default)
    except ValueError:
        logger.warning(
            "flag.unrecognized",
            cost_id=row.get("id"),
            column=column,
            value=repr(value),
            fallback=default,
        )
        return default


def owner_from_columns(entity_type: Optional[str], entity_id: Optional[str]) -> OwnerKey:
    """Build an OwnerKey from stored entity columns.

    NULL, empty and USER entity types are treated as personal, as are rows
    with a company type but no entity id.
    """
    kind = (entity_type or "").strip().upper()
    if not kind or kind == EntityType.USER.value or not entity_id:
        return OwnerKey.personal()
    return OwnerKey.entity(EntityType(kind), entity_id)


def record_from_row(row: Mapping[str, Any]) -> CostRecord:
    """Build a CostRecord from a stored row mapping.

    A NULL or unreadable `is_fixed` reads as non-recurring, and ONCE always
    wins over the stored flag. An unreadable `is_active` reads as inactive.

    Args:
        row: Mapping with the fixed_cost column names as keys

    Returns:
        Strictly typed CostRecord

    Raises:
        ValueError: If a column such as the amount or a timestamp cannot be parsed
    """
    frequency = normalize_frequency(row.get("frequency"))
    is_recurring = stored_flag(row, "is_fixed", default=False)
    if frequency is Frequency.ONCE:
        is_recurring = False

    updated_at = row.get("updated_at")
    description = row.get("description")

    return CostRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        name=row.get("name") or "",
        amount=coerce_amount(row["amount"]),
        frequency=frequency,
        is_recurring=is_recurring,
        created_at=coerce_datetime(row["created_at"]),
        active=stored_flag(row, "is_active", default=False),
        owner=owner_from_columns(row.get("entity_type"), row.get("entity_id")),
        description=description or None,
        updated_at=coerce_datetime(updated_at) if updated_at else None,
    )
