"""Schemas for generic model classes."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from warp_server.domain.errors import ValidationError
from warp_server.domain.models import RESERVED_CLASSES, USER_CLASS, Pointer

RESERVED_KEYS = frozenset({"id", "created_at", "updated_at"})
FIELD_TYPES = frozenset({"string", "number", "boolean", "date", "json", "pointer"})


@dataclass(frozen=True)
class FieldSpec:
    """Declared type of a single class field."""

    name: str
    type: str
    target_class: str | None = None

    @classmethod
    def parse(cls, name: str, declaration: str) -> "FieldSpec":
        """Parse declarations such as ``string`` or ``pointer.user``."""
        type_name, _, target = declaration.partition(".")
        if type_name not in FIELD_TYPES:
            raise ValueError(f"Unknown field type `{declaration}` for `{name}`")
        if type_name == "pointer" and not target:
            raise ValueError(f"Pointer field `{name}` needs a target class")
        if type_name != "pointer" and target:
            raise ValueError(f"Field `{name}` cannot declare a target class")
        if target in RESERVED_CLASSES - {USER_CLASS}:
            raise ValueError(f"Field `{name}` cannot point to `{target}`")
        return cls(name=name, type=type_name, target_class=target or None)

    def coerce(self, value: object) -> object:  # noqa: PLR0911
        """Validate a value for this field and return its stored form."""
        if value is None:
            return None
        if self.type == "string" and isinstance(value, str):
            return value
        if (
            self.type == "number"
            and isinstance(value, int | float)
            and not isinstance(value, bool)
        ):
            return value
        if self.type == "boolean" and isinstance(value, bool):
            return value
        if self.type == "date" and isinstance(value, str):
            try:
                datetime.fromisoformat(value)
            except ValueError:
                pass
            else:
                return value
        if self.type == "json" and isinstance(value, dict | list):
            return value
        if self.type == "pointer":
            return self._coerce_pointer(value)
        raise ValidationError(f"Key `{self.name}` must be of type `{self.type}`")

    def _coerce_pointer(self, value: object) -> Pointer:
        if isinstance(value, int) and not isinstance(value, bool):
            return Pointer(class_name=str(self.target_class), id=value)
        if isinstance(value, Mapping):
            class_name = value.get("class_name")
            pointer_id = value.get("id")
            if (
                class_name == self.target_class
                and isinstance(pointer_id, int)
                and not isinstance(pointer_id, bool)
            ):
                return Pointer(class_name=class_name, id=pointer_id)
        raise ValidationError(
            f"Key `{self.name}` must be a pointer to `{self.target_class}`"
        )


@dataclass(frozen=True)
class ModelSchema:
    """Declared fields of a generic class."""

    class_name: str
    fields: dict[str, FieldSpec] = field(default_factory=dict)

    def build_keys(
        self, keys: Mapping[str, object], partial: bool = False
    ) -> dict[str, object]:
        """Return validated keys, rejecting unknown and mismatched ones."""
        if not isinstance(keys, Mapping):
            raise ValidationError("Keys must be an object")
        if partial and not keys:
            raise ValidationError("At least one key must be provided")
        built: dict[str, object] = {}
        for name, value in keys.items():
            if name in RESERVED_KEYS:
                raise ValidationError(f"Key `{name}` is reserved")
            spec = self.fields.get(name)
            if spec is None:
                raise ValidationError(
                    f"Key `{name}` is not defined for `{self.class_name}`"
                )
            built[name] = spec.coerce(value)
        return built

    def read_keys(self, row: Mapping[str, object]) -> dict[str, object]:
        """Convert a stored row into record keys."""
        keys: dict[str, object] = {}
        for name, spec in self.fields.items():
            if name not in row:
                continue
            value = row[name]
            if spec.type == "pointer" and isinstance(value, int):
                value = Pointer(class_name=str(spec.target_class), id=value)
            keys[name] = value
        return keys
