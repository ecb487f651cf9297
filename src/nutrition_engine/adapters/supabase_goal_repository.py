"""Supabase repository for nutrition goals."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.goals import TARGET_FIELDS, NutritionGoal
from nutrition_engine.services.goals import GoalRepository


@dataclass
class SupabaseGoalRepository(GoalRepository):
    """Supabase implementation for nutrition goals."""

    client: Client

    def list_goals(self, user_id: UUID) -> list[NutritionGoal]:
        """Return all goals for a user, newest start first."""
        response = (
            self.client.table("nutrition_goals")
            .select("*")
            .eq("user_id", str(user_id))
            .order("start_date", desc=True)
            .execute()
        )
        return [_parse_goal(row) for row in response.data or []]

    def get_goal(self, goal_id: UUID) -> NutritionGoal | None:
        """Return a goal by id."""
        response = (
            self.client.table("nutrition_goals")
            .select("*")
            .eq("id", str(goal_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_goal(response.data[0])

    def create_goal(
        self, user_id: UUID, start_date: date, targets: dict[str, float | None]
    ) -> NutritionGoal:
        """Create a goal row and return it."""
        response = (
            self.client.table("nutrition_goals")
            .insert(
                {
                    "user_id": str(user_id),
                    "start_date": start_date.isoformat(),
                    "end_date": None,
                    **targets,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create nutrition goal")
        return _parse_goal(response.data[0])

    def update_goal(self, goal_id: UUID, changes: dict[str, object]) -> NutritionGoal:
        """Update goal columns and return the goal."""
        payload = {
            key: value.isoformat() if isinstance(value, date) else value
            for key, value in changes.items()
        }
        response = (
            self.client.table("nutrition_goals")
            .update(payload)
            .eq("id", str(goal_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update nutrition goal")
        return _parse_goal(response.data[0])


def _parse_goal(row: dict[str, object]) -> NutritionGoal:
    end_raw = row.get("end_date")
    return NutritionGoal(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        start_date=_parse_date(row["start_date"]),
        end_date=_parse_date(end_raw) if end_raw else None,
        **{
            name: float(row[name]) if row.get(name) is not None else None
            for name in TARGET_FIELDS
        },
    )


def _parse_date(value: object) -> date:
    """Parse a date column; timestamps are truncated to their date."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
