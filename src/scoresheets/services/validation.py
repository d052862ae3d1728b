"""Structural and business validation of template definitions."""

from collections import Counter

from scoresheets.domain.definitions import FieldType, ScoreField, TemplateDefinition
from scoresheets.domain.errors import (
    ExpressionSyntaxError,
    ValidationError,
    Violation,
)
from scoresheets.services.expressions import referenced_fields


def validate_definition(
    definition: TemplateDefinition, min_players: int, max_players: int
) -> list[Violation]:
    """Return every violated constraint; an empty list means the definition is valid."""
    violations: list[Violation] = []
    violations.extend(_check_player_bounds(min_players, max_players))
    violations.extend(
        _check_unique("fields", [item.id for item in definition.fields], "field")
    )
    violations.extend(
        _check_unique("sections", [item.id for item in definition.sections], "section")
    )
    violations.extend(
        _check_unique("rules", [item.id for item in definition.rules], "rule")
    )

    section_ids = {section.id for section in definition.sections}
    for index, item in enumerate(definition.fields):
        path = f"fields[{index}]"
        if item.section_id is not None and item.section_id not in section_ids:
            violations.append(
                Violation(
                    f"{path}.sectionId", f"unknown section {item.section_id!r}"
                )
            )
        violations.extend(_check_field_values(path, item))

    field_ids = {item.id for item in definition.fields}
    for index, rule in enumerate(definition.rules):
        path = f"rules[{index}].expression"
        try:
            names = referenced_fields(rule.expression)
        except ExpressionSyntaxError as exc:
            violations.append(Violation(path, f"invalid expression: {exc}"))
            continue
        violations.extend(
            Violation(path, f"references unknown field {name!r}")
            for name in sorted(names - field_ids)
        )
    return violations


def ensure_valid_definition(
    definition: TemplateDefinition, min_players: int, max_players: int
) -> None:
    """Raise ``ValidationError`` if the definition violates any constraint."""
    violations = validate_definition(definition, min_players, max_players)
    if violations:
        raise ValidationError(violations)


def _check_player_bounds(min_players: int, max_players: int) -> list[Violation]:
    violations = []
    if min_players < 1:
        violations.append(Violation("minPlayers", "must be at least 1"))
    if max_players < min_players:
        violations.append(
            Violation("maxPlayers", "must be greater than or equal to minPlayers")
        )
    return violations


def _check_unique(path: str, ids: list[str], label: str) -> list[Violation]:
    counts = Counter(ids)
    return [
        Violation(path, f"duplicate {label} id {item_id!r}")
        for item_id, count in counts.items()
        if count > 1
    ]


def _check_field_values(path: str, item: ScoreField) -> list[Violation]:
    violations = []
    has_bounds = item.min_value is not None or item.max_value is not None
    if has_bounds and item.type is not FieldType.NUMBER:
        violations.append(Violation(path, "bounds are only allowed on number fields"))
    if (
        item.min_value is not None
        and item.max_value is not None
        and item.min_value > item.max_value
    ):
        violations.append(
            Violation(f"{path}.minValue", "must be less than or equal to maxValue")
        )
    default = item.default_value
    if default is None:
        return violations
    if not matches_type(item.type, default):
        violations.append(
            Violation(f"{path}.defaultValue", f"must be a {item.type.value}")
        )
    elif item.type is FieldType.NUMBER and not within_bounds(item, default):
        violations.append(Violation(f"{path}.defaultValue", "is out of bounds"))
    return violations


def matches_type(field_type: FieldType, value: object) -> bool:
    """Return whether a JSON scalar matches a declared field type."""
    if field_type is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type is FieldType.TEXT:
        return isinstance(value, str)
    return isinstance(value, int | float) and not isinstance(value, bool)


def within_bounds(item: ScoreField, value: float) -> bool:
    """Return whether a numeric value respects a field's optional bounds."""
    if item.min_value is not None and value < item.min_value:
        return False
    return item.max_value is None or value <= item.max_value
