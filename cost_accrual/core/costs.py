"""
Fixed-cost management operations.

Create, list, update and delete a user's fixed costs, and report what they
have accrued as of a date. Every operation receives the caller's session
and the repository explicitly.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union
from uuid import uuid4

from cost_accrual.observability.logger import get_logger
from cost_accrual.storage.models import CostRecord, Frequency, OwnerKey
from cost_accrual.storage.repository import CostRepository
from .accrual import AccrualResult, compute_accrued_total
from .normalize import coerce_amount

logger = get_logger(__name__)


class CostAccrualError(Exception):
    """Base class for fixed-cost operation errors."""


class NotAuthenticatedError(CostAccrualError):
    """Raised when an operation is attempted without a user identity."""


class CostValidationError(CostAccrualError, ValueError):
    """Raised when fixed-cost input fails validation."""


class CostNotFoundError(CostAccrualError, LookupError):
    """Raised when a cost id does not exist for the session's user."""


@dataclass(frozen=True)
class Session:
    """Authenticated identity handed in by the caller."""
    user_id: Optional[str]


@dataclass(frozen=True)
class FixedCostInput:
    """Fields accepted when creating a fixed cost."""
    name: str
    amount: Union[Decimal, int, float, str]
    frequency: Union[Frequency, str, None] = Frequency.DAILY
    is_recurring: Optional[bool] = None
    description: Optional[str] = None
    active: bool = True
    owner: OwnerKey = OwnerKey()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class FixedCostUpdate:
    """Partial update; None leaves a field unchanged."""
    name: Optional[str] = None
    amount: Optional[Union[Decimal, int, float, str]] = None
    frequency: Optional[Union[Frequency, str]] = None
    is_recurring: Optional[bool] = None
    description: Optional[str] = None
    active: Optional[bool] = None


def _require_user(session: Optional[Session]) -> str:
    if session is None or not session.user_id:
        raise NotAuthenticatedError("User is not authenticated")
    return session.user_id


def _validate_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise CostValidationError("Fixed cost name is required")
    return name.strip()


def _validate_amount(amount) -> Decimal:
    try:
        value = coerce_amount(amount)
    except ValueError:
        raise CostValidationError(f"Invalid amount: {amount!r}")
    if value <= 0:
        raise CostValidationError("Amount must be greater than zero")
    return value


def _validate_frequency(frequency: Union[Frequency, str, None]) -> Frequency:
    """Parse user-supplied frequency; empty means DAILY, unknown is rejected."""
    if isinstance(frequency, Frequency):
        return frequency
    text = (frequency or "").strip().upper()
    if not text:
        return Frequency.DAILY
    try:
        return Frequency(text)
    except ValueError:
        valid = [f.value for f in Frequency]
        raise CostValidationError(f"Frequency must be one of: {valid}")


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return description.strip() or None


def get_fixed_costs(
    session: Session,
    repository: CostRepository,
    owner: Optional[OwnerKey] = None,
) -> List[CostRecord]:
    """List the user's fixed costs for an owner, newest first.

    Args:
        session: Caller identity
        repository: Cost record source
        owner: Owner scope; personal when None

    Raises:
        NotAuthenticatedError: If the session has no user
    """
    user_id = _require_user(session)
    return repository.list_for_owner(user_id, owner)


def create_fixed_cost(
    session: Session,
    repository: CostRepository,
    data: FixedCostInput,
) -> CostRecord:
    """Validate and store a new fixed cost.

    A ONCE cost is never recurring. Other frequencies are recurring unless
    the input says otherwise.

    Args:
        session: Caller identity
        repository: Cost record source
        data: New cost fields

    Returns:
        The stored CostRecord

    Raises:
        NotAuthenticatedError: If the session has no user
        CostValidationError: If name, amount or frequency are invalid
    """
    user_id = _require_user(session)
    name = _validate_name(data.name)
    amount = _validate_amount(data.amount)
    frequency = _validate_frequency(data.frequency)

    if frequency is Frequency.ONCE:
        is_recurring = False
    else:
        is_recurring = True if data.is_recurring is None else data.is_recurring

    now = datetime.now()
    record = CostRecord(
        id=uuid4().hex[:12],
        user_id=user_id,
        name=name,
        amount=amount,
        frequency=frequency,
        is_recurring=is_recurring,
        created_at=data.created_at or now,
        active=data.active,
        owner=data.owner,
        description=_clean_description(data.description),
        updated_at=now,
    )
    repository.insert(record)

    logger.info(
        "fixed_cost.created",
        cost_id=record.id,
        user_id=user_id,
        frequency=frequency.value,
        is_recurring=is_recurring,
    )
    return record


def update_fixed_cost(
    session: Session,
    repository: CostRepository,
    cost_id: str,
    changes: FixedCostUpdate,
) -> CostRecord:
    """Apply a partial update to one of the user's fixed costs.

    Raises:
        NotAuthenticatedError: If the session has no user
        CostNotFoundError: If the cost does not belong to the user
        CostValidationError: If a provided field is invalid
    """
    user_id = _require_user(session)
    existing = repository.get(cost_id, user_id)
    if existing is None:
        raise CostNotFoundError(f"Fixed cost not found: {cost_id}")

    updated = existing
    if changes.name is not None:
        updated = replace(updated, name=_validate_name(changes.name))
    if changes.amount is not None:
        updated = replace(updated, amount=_validate_amount(changes.amount))
    if changes.frequency is not None:
        updated = replace(updated, frequency=_validate_frequency(changes.frequency))
    if changes.is_recurring is not None:
        updated = replace(updated, is_recurring=changes.is_recurring)
    if changes.description is not None:
        updated = replace(updated, description=_clean_description(changes.description))
    if changes.active is not None:
        updated = replace(updated, active=changes.active)

    if updated.frequency is Frequency.ONCE:
        updated = replace(updated, is_recurring=False)
    updated = replace(updated, updated_at=datetime.now())

    if not repository.update(updated):
        raise CostNotFoundError(f"Fixed cost not found: {cost_id}")

    logger.info("fixed_cost.updated", cost_id=cost_id, user_id=user_id)
    return updated


def delete_fixed_cost(session: Session, repository: CostRepository, cost_id: str) -> None:
    """Delete one of the user's fixed costs.

    Raises:
        NotAuthenticatedError: If the session has no user
        CostNotFoundError: If the cost does not belong to the user
    """
    user_id = _require_user(session)
    if not repository.delete(cost_id, user_id):
        raise CostNotFoundError(f"Fixed cost not found: {cost_id}")
    logger.info("fixed_cost.deleted", cost_id=cost_id, user_id=user_id)


def calculate_fixed_cost_for_date(
    session: Session,
    repository: CostRepository,
    reference_date: Union[date, datetime],
    owner: Optional[OwnerKey] = None,
) -> AccrualResult:
    """Accrued fixed cost of the user's active records as of a date.

    Args:
        session: Caller identity
        repository: Cost record source
        reference_date: Evaluation day
        owner: Owner scope; personal when None

    Returns:
        AccrualResult with the total and per-record breakdown

    Raises:
        NotAuthenticatedError: If the session has no user
    """
    user_id = _require_user(session)
    records = repository.list_for_owner(user_id, owner, active_only=True)
    result = compute_accrued_total(reference_date, records)

    logger.info(
        "fixed_cost.total_computed",
        user_id=user_id,
        reference_date=result.reference_date.isoformat(),
        record_count=len(records),
        total=str(result.total),
    )
    return result
