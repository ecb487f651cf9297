"""Goal progress for day totals."""

import math

from nutrition_engine.domain.goals import (
    GOAL_NUTRIENTS,
    GoalProgress,
    MacroProgress,
    NutritionGoal,
)
from nutrition_engine.domain.nutrition import NutritionTotals, check_amount
from nutrition_engine.services.scaling import round2


def macro_progress(actual: float, target: float | None) -> MacroProgress:
    """Compare one nutrient.

    A missing or zero target has no percentage, and neither does a ratio too
    large to represent as a float.
    """
    actual = check_amount("actual", actual)
    if target is not None:
        target = check_amount("target", target)
    if target is None or target == 0:
        return MacroProgress(target=target, actual=actual, percentage=None)
    ratio = actual / target * 100
    return MacroProgress(
        target=target,
        actual=actual,
        percentage=round2(ratio) if math.isfinite(ratio) else None,
    )


def progress(totals: NutritionTotals, goal: NutritionGoal | None) -> GoalProgress:
    """Compare day totals against ``goal``; without a goal only actuals are set."""
    return GoalProgress(
        **{
            name: macro_progress(
                getattr(totals, name),
                goal.target_for(name) if goal is not None else None,
            )
            for name in GOAL_NUTRIENTS
        }
    )
