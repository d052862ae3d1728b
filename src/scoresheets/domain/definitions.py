"""Template definition model and its JSON wire format."""

import json
import math
from dataclasses import dataclass, field
from enum import StrEnum

from scoresheets.domain.errors import ValidationError, Violation

FieldValue = float | str | bool


class FieldType(StrEnum):
    """Declared type of a scoring field."""

    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"


# Older clients stored boolean fields as "checkbox".
_FIELD_TYPE_ALIASES = {"checkbox": FieldType.BOOLEAN}


@dataclass(frozen=True)
class ScoreField:
    """One user-entered scoring input per player."""

    id: str
    name: str
    type: FieldType = FieldType.NUMBER
    default_value: FieldValue | None = None
    min_value: float | None = None
    max_value: float | None = None
    required: bool = False
    section_id: str | None = None


@dataclass(frozen=True)
class ScoreSection:
    """Organizational grouping of fields."""

    id: str
    name: str
    order: int = 0


@dataclass(frozen=True)
class ScoreRule:
    """Named arithmetic expression producing a derived per-player value."""

    id: str
    name: str
    expression: str
    target_field_id: str


@dataclass(frozen=True)
class TemplateDefinition:
    """Parsed fields, sections and rules of a template or session snapshot."""

    fields: tuple[ScoreField, ...] = ()
    sections: tuple[ScoreSection, ...] = ()
    rules: tuple[ScoreRule, ...] = ()
    _fields_by_id: dict[str, ScoreField] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        fields_by_id: dict[str, ScoreField] = {}
        for item in self.fields:
            fields_by_id.setdefault(item.id, item)
        object.__setattr__(self, "_fields_by_id", fields_by_id)

    def get_field(self, field_id: str) -> ScoreField | None:
        """Return the first field declared with this id, if any."""
        return self._fields_by_id.get(field_id)


def parse_definition(raw: str | dict[str, object]) -> TemplateDefinition:
    """Parse a definition from its JSON text or decoded object.

    Raises ``ValidationError`` listing every malformed entry.
    """
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                [Violation("definition", f"is not valid JSON ({exc.msg})")]
            ) from exc
    else:
        payload = raw
    if not isinstance(payload, dict):
        raise ValidationError([Violation("definition", "must be a JSON object")])

    violations: list[Violation] = []
    raw_fields = payload.get("fields")
    if not isinstance(raw_fields, list):
        violations.append(Violation("fields", "must be a list"))
        raw_fields = []
    fields = [
        parsed
        for index, item in enumerate(raw_fields)
        if (parsed := _parse_field(item, f"fields[{index}]", violations)) is not None
    ]
    sections = [
        parsed
        for index, item in enumerate(_optional_list(payload, "sections", violations))
        if (parsed := _parse_section(item, f"sections[{index}]", violations))
        is not None
    ]
    rules = [
        parsed
        for index, item in enumerate(_optional_list(payload, "rules", violations))
        if (parsed := _parse_rule(item, f"rules[{index}]", violations)) is not None
    ]
    if violations:
        raise ValidationError(violations)
    return TemplateDefinition(
        fields=tuple(fields), sections=tuple(sections), rules=tuple(rules)
    )


def definition_to_dict(definition: TemplateDefinition) -> dict[str, object]:
    """Return the wire representation of a definition."""
    payload: dict[str, object] = {
        "fields": [_field_to_dict(item) for item in definition.fields]
    }
    if definition.sections:
        payload["sections"] = [
            {"id": item.id, "name": item.name, "order": item.order}
            for item in definition.sections
        ]
    if definition.rules:
        payload["rules"] = [
            {
                "id": item.id,
                "name": item.name,
                "expression": item.expression,
                "targetFieldId": item.target_field_id,
            }
            for item in definition.rules
        ]
    return payload


def serialize_definition(definition: TemplateDefinition) -> str:
    """Serialize a definition to JSON text."""
    return json.dumps(definition_to_dict(definition), indent=2)


def _field_to_dict(item: ScoreField) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": item.id,
        "name": item.name,
        "type": item.type.value,
        "required": item.required,
    }
    if item.default_value is not None:
        payload["defaultValue"] = item.default_value
    if item.min_value is not None:
        payload["minValue"] = item.min_value
    if item.max_value is not None:
        payload["maxValue"] = item.max_value
    if item.section_id is not None:
        payload["sectionId"] = item.section_id
    return payload


def _optional_list(
    payload: dict[str, object], key: str, violations: list[Violation]
) -> list[object]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        violations.append(Violation(key, "must be a list"))
        return []
    return value


def _required_str(
    item: dict[str, object], key: str, path: str, violations: list[Violation]
) -> str | None:
    value = item.get(key)
    if not isinstance(value, str) or not value.strip():
        violations.append(Violation(f"{path}.{key}", "is required"))
        return None
    return value


def _optional_number(
    item: dict[str, object], key: str, path: str, violations: list[Violation]
) -> float | None:
    value = item.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        violations.append(Violation(f"{path}.{key}", "must be a number"))
        return None
    if not math.isfinite(value):
        violations.append(Violation(f"{path}.{key}", "must be a finite number"))
        return None
    return float(value)


def _parse_field(
    item: object, path: str, violations: list[Violation]
) -> ScoreField | None:
    if not isinstance(item, dict):
        violations.append(Violation(path, "must be an object"))
        return None
    before = len(violations)
    field_id = _required_str(item, "id", path, violations)
    raw_type = item.get("type", FieldType.NUMBER.value)
    field_type: FieldType | None = None
    if isinstance(raw_type, str):
        field_type = _FIELD_TYPE_ALIASES.get(raw_type)
        if field_type is None and raw_type in {member.value for member in FieldType}:
            field_type = FieldType(raw_type)
    if field_type is None:
        violations.append(Violation(f"{path}.type", f"unknown field type {raw_type!r}"))
    min_value = _optional_number(item, "minValue", path, violations)
    max_value = _optional_number(item, "maxValue", path, violations)
    section_id = item.get("sectionId")
    if section_id is not None and not isinstance(section_id, str):
        violations.append(Violation(f"{path}.sectionId", "must be a string"))
    default_value = item.get("defaultValue")
    if default_value is not None and not isinstance(default_value, str | int | float):
        violations.append(Violation(f"{path}.defaultValue", "must be a JSON scalar"))
    elif isinstance(default_value, float) and not math.isfinite(default_value):
        violations.append(
            Violation(f"{path}.defaultValue", "must be a finite number")
        )
    required = item.get("required", item.get("isRequired"))
    if required is None:
        required = False
    elif not isinstance(required, bool):
        violations.append(Violation(f"{path}.required", "must be a boolean"))
    if len(violations) > before:
        return None
    if isinstance(default_value, int) and not isinstance(default_value, bool):
        default_value = float(default_value)
    return ScoreField(
        id=field_id,
        name=str(item.get("name") or field_id),
        type=field_type,
        default_value=default_value,
        min_value=min_value,
        max_value=max_value,
        required=required,
        section_id=section_id,
    )


def _parse_section(
    item: object, path: str, violations: list[Violation]
) -> ScoreSection | None:
    if not isinstance(item, dict):
        violations.append(Violation(path, "must be an object"))
        return None
    section_id = _required_str(item, "id", path, violations)
    order = item.get("order", 0)
    if isinstance(order, bool) or not isinstance(order, int):
        violations.append(Violation(f"{path}.order", "must be an integer"))
        return None
    if section_id is None:
        return None
    return ScoreSection(
        id=section_id, name=str(item.get("name") or section_id), order=order
    )


def _parse_rule(
    item: object, path: str, violations: list[Violation]
) -> ScoreRule | None:
    if not isinstance(item, dict):
        violations.append(Violation(path, "must be an object"))
        return None
    rule_id = _required_str(item, "id", path, violations)
    expression = _required_str(item, "expression", path, violations)
    target = _required_str(item, "targetFieldId", path, violations)
    if rule_id is None or expression is None or target is None:
        return None
    return ScoreRule(
        id=rule_id,
        name=str(item.get("name") or rule_id),
        expression=expression,
        target_field_id=target,
    )
