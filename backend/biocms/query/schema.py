"""
Per-resource field declarations consumed by the query engine.

A ``ResourceSchema`` is the allow-list for a collection: which API fields can
be filtered, sorted, searched and projected, how their raw string values are
coerced, and which model attribute each one maps to.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Dict, Optional, Tuple

from biocms.core.config import settings


class FieldKind(str, enum.Enum):
    """Value kinds the engine knows how to coerce"""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    ENUM = "enum"
    ID = "id"
    LIST = "list"
    DOCUMENT = "document"


ORDERABLE_KINDS = frozenset({FieldKind.STRING, FieldKind.INTEGER, FieldKind.FLOAT, FieldKind.DATETIME})


@dataclass(frozen=True)
class FieldSpec:
    """One API-visible field of a resource"""
    name: str
    attribute: str
    kind: FieldKind = FieldKind.STRING
    filterable: bool = True
    sortable: bool = True
    searchable: bool = False
    projectable: bool = True
    internal: bool = False
    choices: Tuple[str, ...] = ()

    @property
    def orderable(self) -> bool:
        return self.kind in ORDERABLE_KINDS


def PublicField(name: str, attribute: Optional[str] = None, kind: FieldKind = FieldKind.STRING, **flags: Any) -> FieldSpec:
    """Shorthand that defaults the model attribute to the snake_case of ``name``"""
    return FieldSpec(name=name, attribute=attribute or _snake_case(name), kind=kind, **flags)


def InternalField(name: str, attribute: Optional[str] = None) -> FieldSpec:
    """Stored field that never leaves the server (hashes, tokens)"""
    return FieldSpec(
        name=name,
        attribute=attribute or _snake_case(name),
        filterable=False,
        sortable=False,
        projectable=False,
        internal=True,
    )


def _snake_case(name: str) -> str:
    chars = []
    for char in name:
        if char.isupper():
            chars.append("_")
            chars.append(char.lower())
        else:
            chars.append(char)
    return "".join(chars)


@dataclass(frozen=True)
class ResourceSchema:
    """Allow-list and defaults for one collection"""
    resource: str
    fields: Tuple[FieldSpec, ...]
    default_sort: Tuple[str, ...] = ("-createdAt",)
    default_limit: int = field(default_factory=lambda: settings.DEFAULT_PAGE_SIZE)
    max_limit: int = field(default_factory=lambda: settings.MAX_PAGE_SIZE)
    id_field: str = "id"

    def __post_init__(self):
        names = [spec.name for spec in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in schema '{self.resource}'")
        if self.id_field not in names:
            raise ValueError(f"Schema '{self.resource}' must declare '{self.id_field}'")

    def get(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    @property
    def searchable_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.searchable)

    @property
    def public_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if not spec.internal)

    def serialize(self, record: Any, projection=None) -> Dict[str, Any]:
        """
        Render a model instance as an API dict.

        The id is always present; internal fields never are.
        """
        data: Dict[str, Any] = {}
        for spec in self.public_fields:
            if spec.name != self.id_field and projection is not None and not projection.allows(spec.name):
                continue
            value = getattr(record, spec.attribute, None)
            if isinstance(value, enum.Enum):
                value = value.value
            elif isinstance(value, (datetime, date)):
                value = value.isoformat()
            data[spec.name] = value
        return data
