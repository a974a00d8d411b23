"""
Entity Schema

The fixed schema of the analysed dataset. The field kinds drive the
compiler's equality policy (fuzzy for text, exact for everything else) and
the validator's value-type checks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class FieldKind(str, Enum):
    """Storage kind of an entity field"""
    ID = "id"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"


_TYPE_NAMES = {
    FieldKind.ID: "Int",
    FieldKind.NUMBER: "Float",
    FieldKind.TEXT: "String",
    FieldKind.DATE: "DateTime",
}


@dataclass(frozen=True)
class EntitySchema:
    """Name and field kinds of a queryable entity"""
    name: str
    fields: Dict[str, FieldKind] = field(default_factory=dict)

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def is_text(self, name: str) -> bool:
        return self.fields.get(name) == FieldKind.TEXT

    def is_numeric(self, name: str) -> bool:
        return self.fields.get(name) in (FieldKind.ID, FieldKind.NUMBER)

    def is_date(self, name: str) -> bool:
        return self.fields.get(name) == FieldKind.DATE

    def describe(self) -> str:
        """One-line schema description, e.g. ``Users (id: Int, first_name: String, ...)``"""
        columns = ", ".join(f"{name}: {_TYPE_NAMES[kind]}" for name, kind in self.fields.items())
        return f"{self.name} ({columns})"


USERS_SCHEMA = EntitySchema(
    name="Users",
    fields={
        "id": FieldKind.ID,
        "first_name": FieldKind.TEXT,
        "last_name": FieldKind.TEXT,
        "email": FieldKind.TEXT,
        "gender": FieldKind.TEXT,
        "job_title": FieldKind.TEXT,
        "device": FieldKind.TEXT,
        "car": FieldKind.TEXT,
        "language": FieldKind.TEXT,
        "country": FieldKind.TEXT,
        "created_at": FieldKind.DATE,
    },
)
