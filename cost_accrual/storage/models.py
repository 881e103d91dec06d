"""
Data models for storage layer.

Defines fixed-cost records and the owner keys that scope them.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Frequency(Enum):
    """How often a fixed cost is charged."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    ONCE = "ONCE"  # Applied a single time, never multiplied


class EntityType(Enum):
    """Kind of entity a cost can belong to."""
    USER = "USER"
    COMPANY = "COMPANY"


@dataclass(frozen=True)
class OwnerKey:
    """Identity that scopes a set of cost records.

    A personal key has no entity. A business key names the entity type
    and its id. Stored rows with a NULL, empty or USER entity type all
    count as personal.
    """
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None

    def __post_init__(self):
        """Validate that entity type and id come together."""
        if (self.entity_type is None) != (self.entity_id is None):
            raise ValueError("entity_type and entity_id must be given together")
        if self.entity_id is not None and not self.entity_id.strip():
            raise ValueError("entity_id cannot be empty")

    @classmethod
    def personal(cls) -> "OwnerKey":
        return cls()

    @classmethod
    def entity(cls, entity_type: EntityType, entity_id: str) -> "OwnerKey":
        return cls(entity_type=entity_type, entity_id=entity_id)

    @property
    def is_personal(self) -> bool:
        return self.entity_type is None


@dataclass(frozen=True)
class CostRecord:
    """A recurring or one-time monetary obligation.

    `is_recurring` is stored as the `is_fixed` column. A ONCE record is
    never recurring; a record with `is_recurring=False` and another
    frequency is still applied once.
    """
    id: str
    user_id: str
    name: str
    amount: Decimal
    frequency: Frequency
    is_recurring: bool
    created_at: datetime
    active: bool = True
    owner: OwnerKey = OwnerKey()
    description: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_one_time(self) -> bool:
        """Whether the record contributes its amount only once."""
        return self.frequency is Frequency.ONCE or not self.is_recurring
