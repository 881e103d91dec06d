"""
Unit tests for fixed-cost management operations.

Tests validation, session checks, partial updates and the accrual report.
"""

import os
import tempfile
from datetime import date, datetime
from decimal import Decimal

import pytest

from cost_accrual.core.costs import (
    CostNotFoundError,
    CostValidationError,
    FixedCostInput,
    FixedCostUpdate,
    NotAuthenticatedError,
    Session,
    calculate_fixed_cost_for_date,
    create_fixed_cost,
    delete_fixed_cost,
    get_fixed_costs,
    update_fixed_cost,
)
from cost_accrual.storage.db import get_connection
from cost_accrual.storage.models import EntityType, Frequency, OwnerKey
from cost_accrual.storage.repository import CostRepository

SESSION = Session(user_id="user-1")
ACME = OwnerKey.entity(EntityType.COMPANY, "acme")


@pytest.fixture
def repository():
    """Repository over a fresh temporary database."""
    with tempfile.TemporaryDirectory() as temp_dir:
        repo = CostRepository(os.path.join(temp_dir, "test.db"))
        repo.initialize_schema()
        yield repo


class TestSession:
    """Test that every operation requires an identity."""

    @pytest.mark.parametrize("session", [None, Session(user_id=None), Session(user_id="")])
    def test_unauthenticated(self, repository, session):
        with pytest.raises(NotAuthenticatedError):
            get_fixed_costs(session, repository)
        with pytest.raises(NotAuthenticatedError):
            create_fixed_cost(session, repository, FixedCostInput(name="Rent", amount="1"))
        with pytest.raises(NotAuthenticatedError):
            update_fixed_cost(session, repository, "x", FixedCostUpdate(name="y"))
        with pytest.raises(NotAuthenticatedError):
            delete_fixed_cost(session, repository, "x")
        with pytest.raises(NotAuthenticatedError):
            calculate_fixed_cost_for_date(session, repository, date(2025, 1, 1))


class TestCreateFixedCost:
    """Test creation and validation."""

    def test_defaults(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="  Rent ", amount="1200")
        )
        assert record.name == "Rent"
        assert record.amount == Decimal("1200")
        assert record.frequency is Frequency.DAILY
        assert record.is_recurring is True
        assert record.active is True
        assert record.owner.is_personal
        assert repository.get(record.id, "user-1") == record

    def test_once_is_never_recurring(self, repository):
        record = create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Laptop", amount=2500, frequency="once", is_recurring=True
        ))
        assert record.frequency is Frequency.ONCE
        assert record.is_recurring is False

    def test_explicit_non_recurring_kept(self, repository):
        record = create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Deposit", amount="300", frequency=Frequency.MONTHLY, is_recurring=False
        ))
        assert record.is_recurring is False

    def test_empty_frequency_defaults_to_daily(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="Coffee", amount="4", frequency="")
        )
        assert record.frequency is Frequency.DAILY

    def test_description_is_trimmed(self, repository):
        blank = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="A", amount="1", description="   ")
        )
        filled = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="B", amount="1", description=" note ")
        )
        assert blank.description is None
        assert filled.description == "note"

    @pytest.mark.parametrize("data", [
        FixedCostInput(name="", amount="10"),
        FixedCostInput(name="   ", amount="10"),
        FixedCostInput(name="Rent", amount="0"),
        FixedCostInput(name="Rent", amount="-5"),
        FixedCostInput(name="Rent", amount="ten"),
        FixedCostInput(name="Rent", amount="10", frequency="YEARLY"),
    ])
    def test_invalid_input(self, repository, data):
        with pytest.raises(CostValidationError):
            create_fixed_cost(SESSION, repository, data)
        assert get_fixed_costs(SESSION, repository) == []

    def test_company_owner(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="Office", amount="900", owner=ACME)
        )
        assert get_fixed_costs(SESSION, repository) == []
        assert [r.id for r in get_fixed_costs(SESSION, repository, ACME)] == [record.id]


class TestUpdateFixedCost:
    """Test partial updates."""

    def test_partial_update(self, repository):
        record = create_fixed_cost(
            SESSION, repository,
            FixedCostInput(name="Gym", amount="60", frequency="MONTHLY", description="x"),
        )
        updated = update_fixed_cost(
            SESSION, repository, record.id, FixedCostUpdate(amount="75", active=False)
        )
        assert updated.amount == Decimal("75")
        assert updated.active is False
        assert updated.name == "Gym"
        assert updated.frequency is Frequency.MONTHLY
        assert updated.description == "x"
        assert updated.created_at == record.created_at
        assert repository.get(record.id, "user-1") == updated

    def test_switch_to_once_clears_recurring(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="Gym", amount="60", frequency="WEEKLY")
        )
        updated = update_fixed_cost(
            SESSION, repository, record.id,
            FixedCostUpdate(frequency="ONCE", is_recurring=True),
        )
        assert updated.frequency is Frequency.ONCE
        assert updated.is_recurring is False

    def test_invalid_update(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="Gym", amount="60")
        )
        with pytest.raises(CostValidationError):
            update_fixed_cost(SESSION, repository, record.id, FixedCostUpdate(amount="0"))
        with pytest.raises(CostValidationError):
            update_fixed_cost(SESSION, repository, record.id, FixedCostUpdate(name=" "))

    def test_other_users_cost_not_found(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="Gym", amount="60")
        )
        with pytest.raises(CostNotFoundError):
            update_fixed_cost(
                Session(user_id="user-2"), repository, record.id, FixedCostUpdate(name="x")
            )


class TestDeleteFixedCost:
    """Test deletion."""

    def test_delete(self, repository):
        record = create_fixed_cost(
            SESSION, repository, FixedCostInput(name="Gym", amount="60")
        )
        delete_fixed_cost(SESSION, repository, record.id)
        assert get_fixed_costs(SESSION, repository) == []

    def test_delete_missing(self, repository):
        with pytest.raises(CostNotFoundError):
            delete_fixed_cost(SESSION, repository, "missing")


class TestCalculateFixedCostForDate:
    """Test the accrual report over stored costs."""

    def test_total_over_active_costs(self, repository):
        create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Setup fee", amount="200", frequency="ONCE",
            created_at=datetime(2025, 1, 1),
        ))
        create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Old plan", amount="999", frequency="MONTHLY",
            created_at=datetime(2024, 6, 1), active=False,
        ))
        create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Cleaning", amount="30", frequency="WEEKLY",
            created_at=datetime(2025, 1, 13),
        ))

        result = calculate_fixed_cost_for_date(SESSION, repository, date(2025, 1, 15))
        assert result.total == Decimal("230")
        assert len(result.items) == 2

    def test_scoped_to_owner_and_user(self, repository):
        create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Coffee", amount="5", created_at=datetime(2025, 3, 1),
        ))
        create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Office", amount="100", frequency="MONTHLY",
            created_at=datetime(2025, 1, 1), owner=ACME,
        ))
        create_fixed_cost(Session(user_id="user-2"), repository, FixedCostInput(
            name="Theirs", amount="1000", created_at=datetime(2025, 3, 1),
        ))

        reference = datetime(2025, 3, 4, 18, 30)
        personal = calculate_fixed_cost_for_date(SESSION, repository, reference)
        company = calculate_fixed_cost_for_date(SESSION, repository, reference, ACME)
        assert personal.total == Decimal("20")
        assert company.total == Decimal("100")
        assert personal.reference_date == date(2025, 3, 4)

    def test_damaged_rows_do_not_block_the_total(self, repository):
        """Unreadable flags fall back to defaults and unparseable rows are skipped."""
        create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Coffee", amount="10", created_at=datetime(2025, 3, 1),
        ))
        legacy = create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Legacy plan", amount="100", frequency="MONTHLY",
            created_at=datetime(2025, 1, 1),
        ))
        broken = create_fixed_cost(SESSION, repository, FixedCostInput(
            name="Broken", amount="7", created_at=datetime(2025, 2, 1),
        ))

        conn = get_connection(repository.db_path)
        try:
            conn.execute("UPDATE fixed_cost SET is_fixed = 'maybe' WHERE id = ?", (legacy.id,))
            conn.execute("UPDATE fixed_cost SET amount = 'abc' WHERE id = ?", (broken.id,))
            conn.commit()
        finally:
            conn.close()

        result = calculate_fixed_cost_for_date(SESSION, repository, date(2025, 3, 5))
        # Legacy plan reads as non-recurring and counts once
        assert result.contribution_for(legacy.id) == Decimal("100")
        assert result.total == Decimal("150")
        assert len(result.items) == 2
        assert [r.name for r in get_fixed_costs(SESSION, repository)] == ["Coffee", "Legacy plan"]
