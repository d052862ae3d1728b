"""Ready-made definitions for common score sheet layouts."""

from scoresheets.domain.definitions import ScoreField, ScoreRule, TemplateDefinition


def _score_field(field_id: str, name: str) -> ScoreField:
    return ScoreField(id=field_id, name=name, default_value=0.0, min_value=0.0)


def simple_high_score() -> TemplateDefinition:
    """Single score field where the highest total wins."""
    return TemplateDefinition(
        fields=(_score_field("score", "Score"),),
        rules=(ScoreRule("total", "Total Score", "score", "score"),),
    )


def simple_low_score() -> TemplateDefinition:
    """Single score field where the lowest total wins."""
    return simple_high_score()


def rounds(round_count: int = 5) -> TemplateDefinition:
    """One field per round, summed into a total."""
    fields = tuple(
        _score_field(f"round_{index}", f"Round {index}")
        for index in range(1, round_count + 1)
    )
    expression = " + ".join(item.id for item in fields) or "0"
    return TemplateDefinition(
        fields=fields,
        rules=(ScoreRule("total", "Total", expression, "total"),),
    )


def categories() -> TemplateDefinition:
    """Coins and bonuses minus penalties."""
    return TemplateDefinition(
        fields=(
            _score_field("coins", "Coins"),
            _score_field("bonuses", "Bonuses"),
            _score_field("penalties", "Penalties"),
        ),
        rules=(
            ScoreRule("total", "Total", "coins + bonuses - penalties", "total"),
        ),
    )


PRESETS = {
    "simple_high_score": simple_high_score,
    "simple_low_score": simple_low_score,
    "rounds": rounds,
    "categories": categories,
}
