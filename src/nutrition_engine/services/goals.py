"""Nutrition goal management."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.errors import NotFoundError, ValidationError
from nutrition_engine.domain.goals import TARGET_FIELDS, NutritionGoal
from nutrition_engine.domain.nutrition import check_amount

_logger = logging.getLogger(__name__)


class GoalRepository(Protocol):
    """Persistence interface for nutrition goals."""

    def list_goals(self, user_id: UUID) -> list[NutritionGoal]:
        """Return all goals for a user."""

    def get_goal(self, goal_id: UUID) -> NutritionGoal | None:
        """Return a goal by id."""

    def create_goal(
        self, user_id: UUID, start_date: date, targets: dict[str, float | None]
    ) -> NutritionGoal:
        """Create an open-ended goal and return it."""

    def update_goal(self, goal_id: UUID, changes: dict[str, object]) -> NutritionGoal:
        """Update the given goal columns and return the goal."""


@dataclass
class GoalService:
    """Application service for nutrition goals."""

    repository: GoalRepository

    def get_active(self, user_id: UUID, on: date | None = None) -> NutritionGoal | None:
        """Return the goal covering ``on`` (today in UTC by default)."""
        day = on or _today()
        active = [
            goal for goal in self.repository.list_goals(user_id) if goal.is_active_on(day)
        ]
        if not active:
            return None
        return max(active, key=lambda goal: goal.start_date)

    def get_history(self, user_id: UUID) -> list[NutritionGoal]:
        """Return closed goals, most recent first."""
        closed = [
            goal for goal in self.repository.list_goals(user_id) if goal.end_date
        ]
        return sorted(closed, key=lambda goal: goal.start_date, reverse=True)

    def create(
        self,
        user_id: UUID,
        targets: Mapping[str, float | None],
        start_date: date | None = None,
    ) -> NutritionGoal:
        """Start a new goal, closing the goal active on its start date."""
        cleaned = _clean_targets(targets)
        if all(value is None for value in cleaned.values()):
            raise ValidationError("At least one nutrition target must be set")
        start = start_date or _today()
        for goal in self.repository.list_goals(user_id):
            if goal.is_active_on(start):
                self.repository.update_goal(goal.id, {"end_date": start})
                _logger.info(
                    "Goal closed: goal_id=%s end_date=%s", goal.id, start.isoformat()
                )
        full_targets = {name: cleaned.get(name) for name in TARGET_FIELDS}
        return self.repository.create_goal(user_id, start, full_targets)

    def update(
        self, user_id: UUID, goal_id: UUID, targets: Mapping[str, float | None]
    ) -> NutritionGoal:
        """Change targets on the user's open goal; ``None`` clears a target."""
        goal = self._get_owned(user_id, goal_id)
        if goal.end_date is not None:
            raise NotFoundError(f"Active goal with ID {goal_id} not found")
        cleaned = _clean_targets(targets)
        merged = {**goal.targets(), **cleaned}
        if all(value is None for value in merged.values()):
            raise ValidationError("At least one nutrition target must be set")
        return self.repository.update_goal(goal_id, dict(cleaned))

    def deactivate(
        self, user_id: UUID, goal_id: UUID, on: date | None = None
    ) -> NutritionGoal:
        """Close a goal as of ``on`` (today in UTC by default)."""
        goal = self._get_owned(user_id, goal_id)
        end = on or _today()
        if goal.end_date is not None and goal.end_date <= end:
            return goal
        return self.repository.update_goal(goal_id, {"end_date": end})

    def _get_owned(self, user_id: UUID, goal_id: UUID) -> NutritionGoal:
        goal = self.repository.get_goal(goal_id)
        if goal is None or goal.user_id != user_id:
            raise NotFoundError(f"Goal with ID {goal_id} not found")
        return goal


def _clean_targets(targets: Mapping[str, float | None]) -> dict[str, float | None]:
    unknown = set(targets) - set(TARGET_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown goal targets: {', '.join(sorted(unknown))}")
    return {
        name: None if value is None else check_amount(name, value)
        for name, value in targets.items()
    }


def _today() -> date:
    return datetime.now(tz=UTC).date()
