"""Totals calculation over a definition's rules."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from scoresheets.domain.definitions import FieldValue, TemplateDefinition
from scoresheets.domain.errors import EvaluationError
from scoresheets.domain.sessions import FieldValues, ScoreSessionData
from scoresheets.services.expressions import evaluate_expression

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleFailure:
    """A rule that could not be evaluated for one player."""

    player_id: str
    rule_id: str
    message: str


@dataclass(frozen=True)
class TotalsResult:
    """Totals per player, per-target derived values and evaluation failures."""

    totals: dict[str, float] = field(default_factory=dict)
    derived: dict[str, dict[str, float]] = field(default_factory=dict)
    failures: list[RuleFailure] = field(default_factory=list)


def compute_totals(
    definition: TemplateDefinition,
    field_values: Mapping[str, Mapping[str, FieldValue | None]],
) -> TotalsResult:
    """Apply every rule to every player's field values.

    Rules run in declaration order; when several rules share a target field
    the last one wins. A player's total is the value of the last declared
    rule's target. A failed evaluation contributes zero and is reported.
    """
    derived: dict[str, dict[str, float]] = {
        player_id: {} for player_id in field_values
    }
    failures: list[RuleFailure] = []
    for rule in definition.rules:
        for player_id, values in field_values.items():
            try:
                result = evaluate_expression(rule.expression, values)
            except EvaluationError as exc:
                _logger.warning(
                    "Rule evaluation failed: rule=%s player=%s error=%s",
                    rule.id,
                    player_id,
                    exc,
                )
                failures.append(RuleFailure(player_id, rule.id, str(exc)))
                result = 0.0
            derived[player_id][rule.target_field_id] = result

    totals: dict[str, float] = {}
    for player_id in field_values:
        if definition.rules:
            target = definition.rules[-1].target_field_id
            totals[player_id] = derived[player_id][target]
        else:
            totals[player_id] = 0.0
    return TotalsResult(totals=totals, derived=derived, failures=failures)


def effective_field_values(data: ScoreSessionData) -> FieldValues:
    """Merge session-level values with every round's values.

    Numeric values are summed across the session level and all rounds. Other
    values come from the latest round that sets them, falling back to the
    session level.
    """
    merged: FieldValues = {
        player_id: dict(values) for player_id, values in data.field_values.items()
    }
    for round_ in sorted(data.rounds, key=lambda item: item.order):
        for player_id, values in round_.field_values.items():
            player_values = merged.setdefault(player_id, {})
            for field_id, value in values.items():
                current = player_values.get(field_id)
                if _is_number(value) and (current is None or _is_number(current)):
                    player_values[field_id] = float(current or 0.0) + float(value)
                elif value is not None:
                    player_values[field_id] = value
    return merged


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)
