"""Row change events published by the change feed."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ChangeType(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change on a watched table.

    Attributes:
        table: Table the row belongs to.
        change_type: Kind of change.
        record_id: Primary key of the changed row, when known.
    """

    table: str
    change_type: ChangeType
    record_id: UUID | None = None
