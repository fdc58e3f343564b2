"""
Restaurant onboarding checklist.

Every restaurant carries one row per step in restaurant_onboarding_steps.
The wizard endpoints tick steps off as the matching data is saved.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.models import OnboardingStep
from menuca.schemas.onboarding import ONBOARDING_STEPS
from menuca.utils import model_to_dict, utcnow


def add_onboarding_steps(db: AsyncSession, restaurant_id: int, completed: tuple[str, ...] = ("basic_info",)) -> None:
    now = utcnow()
    for order, step_name in enumerate(ONBOARDING_STEPS, start=1):
        done = step_name in completed
        db.add(OnboardingStep(
            restaurant_id=restaurant_id,
            step_name=step_name,
            step_order=order,
            is_completed=done,
            completed_at=now if done else None,
        ))


def summarize_onboarding(steps: list[OnboardingStep]) -> dict:
    completed = sum(1 for s in steps if s.is_completed)
    total = len(steps)
    return {
        "steps": [model_to_dict(s) for s in steps],
        "completed_steps": completed,
        "total_steps": total,
        "completion_percentage": round(completed / total * 100, 1) if total else 0.0,
        "current_step": next((s.step_name for s in steps if not s.is_completed), None),
    }


async def load_onboarding_steps(db: AsyncSession, restaurant_id: int) -> list[OnboardingStep]:
    result = await db.execute(
        select(OnboardingStep)
        .where(OnboardingStep.restaurant_id == restaurant_id)
        .order_by(OnboardingStep.step_order)
    )
    return list(result.scalars().all())


async def mark_onboarding_step(
    db: AsyncSession,
    restaurant_id: int,
    step_name: str,
    completed: bool = True,
) -> OnboardingStep:
    """Set a step's state, creating the row if the restaurant predates it. Does not commit."""
    result = await db.execute(select(OnboardingStep).where(
        OnboardingStep.restaurant_id == restaurant_id,
        OnboardingStep.step_name == step_name,
    ))
    step = result.scalar_one_or_none()
    if step is None:
        step = OnboardingStep(
            restaurant_id=restaurant_id,
            step_name=step_name,
            step_order=ONBOARDING_STEPS.index(step_name) + 1,
        )
        db.add(step)
    step.is_completed = completed
    step.completed_at = utcnow() if completed else None
    return step
