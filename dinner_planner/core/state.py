"""Planner state machine — phases, loading overlay and pure transitions.

The state is one immutable record.  Each transition takes the current state
(and a payload) and returns the next state; transitions that start work also
return an Effect telling the caller which pipeline call to run.  Entry
transitions are no-ops while a stage is loading, which is how only one stage
runs at a time per session.

    welcome   --start-->    (fetch)  --ok--> selection
    selection --refresh-->  (fetch)  --ok--> selection (selection cleared)
    selection --confirm-->  planning --ok--> dashboard
                                     --err-> selection
    dashboard --restart-->  selection
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from dinner_planner.models import DailyPlan, Dish, PlanDetails, Recipe, ShoppingCategory

FETCH_LOADING_MESSAGE = "正在为您挑选适合减脂的家常菜..."
PLAN_LOADING_MESSAGE = "正在根据您的选择规划下周食谱..."
DETAILS_LOADING_MESSAGE = "正在生成购物清单和制作步骤..."


class Phase(str, Enum):
    WELCOME = "welcome"
    SELECTION = "selection"
    PLANNING = "planning"
    DASHBOARD = "dashboard"


class PlanningStatus(str, Enum):
    AWAITING_SCHEDULE = "awaiting_schedule"
    AWAITING_DETAILS = "awaiting_details"


class Effect(str, Enum):
    FETCH_RECOMMENDATIONS = "fetch_recommendations"
    GENERATE_PLAN = "generate_plan"


@dataclass(frozen=True)
class PlannerState:
    phase: Phase = Phase.WELCOME
    loading: bool = False
    loading_message: str = ""
    error: Optional[str] = None
    recommendations: tuple[Dish, ...] = ()
    selected_ids: frozenset = frozenset()
    plan: tuple[DailyPlan, ...] = ()
    shopping_list: tuple[ShoppingCategory, ...] = ()
    recipes: tuple[Recipe, ...] = ()
    planning_status: Optional[PlanningStatus] = None
    pending_plan: tuple[DailyPlan, ...] = ()

    @property
    def selected_dishes(self) -> list[Dish]:
        """Selected dishes in recommendation order."""
        return [d for d in self.recommendations if d.id in self.selected_ids]

    @property
    def can_confirm(self) -> bool:
        return self.phase == Phase.SELECTION and not self.loading and bool(self.selected_ids)


Transition = tuple[PlannerState, Optional[Effect]]


# ── Recommendations ────────────────────────────────────────────────────────────

def begin_recommendations(state: PlannerState) -> Transition:
    """Start (welcome) or refresh (selection) the recommendation batch."""
    if state.loading or state.phase not in (Phase.WELCOME, Phase.SELECTION):
        return state, None
    return replace(
        state, loading=True, loading_message=FETCH_LOADING_MESSAGE, error=None,
    ), Effect.FETCH_RECOMMENDATIONS


def recommendations_loaded(state: PlannerState, dishes: list[Dish]) -> PlannerState:
    """Replace the batch; old ids mean nothing now, so the selection is cleared."""
    return replace(
        state,
        phase=Phase.SELECTION,
        recommendations=tuple(dishes),
        selected_ids=frozenset(),
        error=None,
    )


def recommendations_failed(state: PlannerState, message: str) -> PlannerState:
    return replace(state, error=message)


# ── Selection ──────────────────────────────────────────────────────────────────

def toggle_dish(state: PlannerState, dish_id: str) -> PlannerState:
    if state.loading or state.phase != Phase.SELECTION:
        return state
    if dish_id not in {d.id for d in state.recommendations}:
        return state
    return replace(state, selected_ids=state.selected_ids ^ {dish_id})


# ── Planning ───────────────────────────────────────────────────────────────────

def begin_plan(state: PlannerState) -> Transition:
    """Enter planning right away; the plan is generated by the returned effect."""
    if not state.can_confirm:
        return state, None
    return replace(
        state,
        phase=Phase.PLANNING,
        planning_status=PlanningStatus.AWAITING_SCHEDULE,
        pending_plan=(),
        loading=True,
        loading_message=PLAN_LOADING_MESSAGE,
        error=None,
    ), Effect.GENERATE_PLAN


def schedule_loaded(state: PlannerState, plan: list[DailyPlan]) -> PlannerState:
    """Hold the schedule until the shopping list and recipes arrive."""
    return replace(
        state,
        pending_plan=tuple(plan),
        planning_status=PlanningStatus.AWAITING_DETAILS,
        loading_message=DETAILS_LOADING_MESSAGE,
    )


def details_loaded(state: PlannerState, details: PlanDetails) -> PlannerState:
    """Commit schedule, shopping list and recipes together and show the dashboard."""
    return replace(
        state,
        phase=Phase.DASHBOARD,
        plan=state.pending_plan,
        shopping_list=tuple(details.shopping_list),
        recipes=tuple(details.recipes),
        pending_plan=(),
        planning_status=None,
        error=None,
    )


def plan_failed(state: PlannerState, message: str) -> PlannerState:
    """Back to selection with the user's dishes still selected."""
    return replace(
        state,
        phase=Phase.SELECTION,
        pending_plan=(),
        planning_status=None,
        error=message,
    )


def restart(state: PlannerState) -> PlannerState:
    """Leave the dashboard, keeping the recommendation batch and selection."""
    if state.loading or state.phase != Phase.DASHBOARD:
        return state
    return replace(
        state,
        phase=Phase.SELECTION,
        plan=(),
        shopping_list=(),
        recipes=(),
        error=None,
    )


def finish_loading(state: PlannerState) -> PlannerState:
    return replace(state, loading=False, loading_message="")
