"""Tests for totals calculation."""

from scoresheets.domain.definitions import ScoreField, ScoreRule, TemplateDefinition
from scoresheets.domain.sessions import ScoreRound, ScoreSessionData
from scoresheets.services.totals import (
    RuleFailure,
    compute_totals,
    effective_field_values,
)
from tests.conftest import categories_definition


def _definition(*rules: ScoreRule) -> TemplateDefinition:
    fields = tuple(ScoreField(name, name.upper()) for name in ("a", "b", "c"))
    return TemplateDefinition(fields=fields, rules=rules)


def test_totals_for_every_player() -> None:
    result = compute_totals(
        categories_definition(),
        {
            "p1": {"coins": 10, "bonuses": 5, "penalties": 2},
            "p2": {"coins": 4},
        },
    )

    assert result.totals == {"p1": 13, "p2": 4}
    assert result.derived == {"p1": {"total": 13}, "p2": {"total": 4}}
    assert result.failures == []


def test_missing_field_reference_counts_as_zero() -> None:
    definition = _definition(ScoreRule("total", "Total", "a + b", "total"))
    assert compute_totals(definition, {"p1": {"a": 3}}).totals == {"p1": 3}


def test_precedence_is_respected() -> None:
    definition = _definition(ScoreRule("total", "Total", "a + b * c", "total"))
    result = compute_totals(definition, {"p1": {"a": 2, "b": 3, "c": 4}})
    assert result.totals == {"p1": 14}


def test_division_by_zero_contributes_zero_and_is_reported() -> None:
    definition = _definition(ScoreRule("ratio", "Ratio", "a / b", "ratio"))

    result = compute_totals(
        definition, {"p1": {"a": 10, "b": 0}, "p2": {"a": 10, "b": 4}}
    )

    assert result.totals == {"p1": 0, "p2": 2.5}
    assert result.failures == [RuleFailure("p1", "ratio", "division by zero")]


def test_failure_does_not_stop_other_rules() -> None:
    definition = _definition(
        ScoreRule("bad", "Bad", "a + c", "bad"),
        ScoreRule("good", "Good", "b * 2", "good"),
    )

    result = compute_totals(definition, {"p1": {"a": 1, "b": 4, "c": "x"}})

    assert result.derived == {"p1": {"bad": 0, "good": 8}}
    assert result.totals == {"p1": 8}
    assert [failure.rule_id for failure in result.failures] == ["bad"]


def test_last_rule_wins_for_shared_target() -> None:
    definition = _definition(
        ScoreRule("first", "First", "a", "total"),
        ScoreRule("second", "Second", "b", "total"),
    )

    result = compute_totals(definition, {"p1": {"a": 1, "b": 2}})

    assert result.derived == {"p1": {"total": 2}}
    assert result.totals == {"p1": 2}


def test_total_is_the_last_declared_rule_target() -> None:
    definition = _definition(
        ScoreRule("subtotal", "Subtotal", "a + b", "subtotal"),
        ScoreRule("total", "Total", "a + b + c", "total"),
    )

    result = compute_totals(definition, {"p1": {"a": 1, "b": 2, "c": 3}})

    assert result.derived == {"p1": {"subtotal": 3, "total": 6}}
    assert result.totals == {"p1": 6}


def test_no_rules_gives_zero_totals() -> None:
    result = compute_totals(_definition(), {"p1": {"a": 5}})
    assert result.totals == {"p1": 0}


def test_compute_totals_is_idempotent() -> None:
    definition = categories_definition()
    values = {"p1": {"coins": 3, "bonuses": 1}, "p2": {"penalties": 2}}

    first = compute_totals(definition, values)
    second = compute_totals(definition, values)

    assert first == second
    assert values == {"p1": {"coins": 3, "bonuses": 1}, "p2": {"penalties": 2}}


def test_effective_values_sum_numbers_across_rounds() -> None:
    data = ScoreSessionData(
        field_values={"p1": {"a": 1, "memo": "start"}},
        rounds=(
            ScoreRound("round_2", "Round 2", 2, {"p1": {"a": 5, "memo": "late"}}),
            ScoreRound("round_1", "Round 1", 1, {"p1": {"a": 2, "memo": "early"}}),
            ScoreRound("round_3", "Round 3", 3, {"p2": {"a": 7}}),
        ),
    )

    merged = effective_field_values(data)

    assert merged == {"p1": {"a": 8, "memo": "late"}, "p2": {"a": 7}}
    assert data.field_values == {"p1": {"a": 1, "memo": "start"}}


def test_deeply_nested_rule_fails_alone() -> None:
    definition = _definition(
        ScoreRule("deep", "Deep", "-" * 3000 + "a", "b"),
        ScoreRule("total", "Total", "a + 1", "total"),
    )

    result = compute_totals(definition, {"p1": {"a": 2}, "p2": {"a": 5}})

    assert result.totals == {"p1": 3, "p2": 6}
    assert result.derived["p1"]["b"] == 0
    assert [failure.player_id for failure in result.failures] == ["p1", "p2"]
    assert {failure.rule_id for failure in result.failures} == {"deep"}
