"""
Fixed-cost accrual calculation.

Computes how much a set of cost records has accrued as of a reference date.

Accrual rules:
1. One-time costs (ONCE, or not recurring) count their amount once, from
   their creation day onward.
2. Recurring costs restart counting at the first of every month. In the
   month a cost is created, counting starts at its creation day instead.
3. Counting is inclusive: the anchor day, week or month is unit one.
   Counts below one clamp to zero, so a weekly or monthly cost created
   later in the reference week or month still counts one unit.

The engine is pure. It never raises for bad data; anything unusable
contributes zero.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Union

from cost_accrual.storage.models import CostRecord, Frequency
from .normalize import to_date

DateLike = Union[date, datetime]


class AccrualKind(Enum):
    """How a record was treated by the engine."""
    ONE_TIME = "one_time"
    RECURRING = "recurring"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class RecordAccrual:
    """Contribution of a single record as of the reference date."""
    record_id: str
    name: str
    kind: AccrualKind
    frequency: Frequency
    units: int
    contribution: Decimal
    anchor_date: Optional[date] = None


@dataclass(frozen=True)
class AccrualResult:
    """Total accrued obligation plus the per-record breakdown."""
    reference_date: date
    total: Decimal
    items: List[RecordAccrual] = field(default_factory=list)

    def contribution_for(self, record_id: str) -> Decimal:
        """Sum of contributions reported for a record id."""
        return sum(
            (item.contribution for item in self.items if item.record_id == record_id),
            Decimal("0"),
        )


def start_of_month(day: DateLike) -> date:
    """First calendar day of the month containing day."""
    day = to_date(day)
    return day.replace(day=1)


def start_of_week(day: DateLike) -> date:
    """Sunday on or before day."""
    day = to_date(day)
    # date.weekday() is 0 for Monday; shift so Sunday is 0
    days_since_sunday = (day.weekday() + 1) % 7
    return day - timedelta(days=days_since_sunday)


def _recurring_units(frequency: Frequency, anchor: date, reference: date) -> int:
    if frequency is Frequency.DAILY:
        return (reference - anchor).days + 1
    if frequency is Frequency.WEEKLY:
        weeks = (start_of_week(reference) - start_of_week(anchor)).days // 7
        return weeks + 1
    if frequency is Frequency.MONTHLY:
        months = (reference.year - anchor.year) * 12 + (reference.month - anchor.month)
        return months + 1
    return 0


def record_contribution(reference_date: DateLike, record: CostRecord) -> RecordAccrual:
    """Compute what a single record has accrued as of reference_date.

    Args:
        reference_date: Evaluation day (time of day ignored)
        record: Normalized cost record

    Returns:
        RecordAccrual with the units counted and the resulting amount
    """
    reference = to_date(reference_date)
    created = to_date(record.created_at)
    zero = Decimal("0")

    if not record.active:
        return RecordAccrual(
            record_id=record.id,
            name=record.name,
            kind=AccrualKind.INACTIVE,
            frequency=record.frequency,
            units=0,
            contribution=zero,
        )

    if record.is_one_time:
        units = 1 if reference >= created else 0
        return RecordAccrual(
            record_id=record.id,
            name=record.name,
            kind=AccrualKind.ONE_TIME,
            frequency=record.frequency,
            units=units,
            contribution=record.amount if units else zero,
        )

    anchor = max(created, start_of_month(reference))
    units = max(_recurring_units(record.frequency, anchor, reference), 0)

    return RecordAccrual(
        record_id=record.id,
        name=record.name,
        kind=AccrualKind.RECURRING,
        frequency=record.frequency,
        units=units,
        contribution=record.amount * units if units else zero,
        anchor_date=anchor,
    )


def compute_accrued_total(
    reference_date: DateLike,
    records: Iterable[CostRecord],
) -> AccrualResult:
    """Total obligation accrued by records as of reference_date.

    Inactive records are reported but contribute nothing. The total is the
    plain sum of per-record contributions.

    Args:
        reference_date: Evaluation day (time of day ignored)
        records: One owner's candidate cost records

    Returns:
        AccrualResult with total and per-record classification
    """
    reference = to_date(reference_date)
    items = [record_contribution(reference, record) for record in records]
    total = sum((item.contribution for item in items), Decimal("0"))

    return AccrualResult(reference_date=reference, total=total, items=items)
