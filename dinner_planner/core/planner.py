"""Planner controller — runs the state machine against the generation pipeline.

One Planner owns one browser session's state.  Each action applies a
transition from core/state.py, stores the result immediately (so a second
request sees loading=True), then awaits the pipeline call the transition asked
for.  Failures are caught per stage, logged, and turned into a single
user-facing message; loading is always cleared afterwards.
"""

from dinner_planner.core import ai_assistant
from dinner_planner.core import state as machine
from dinner_planner.core.ai_assistant import ConfigurationError, PlannerError
from dinner_planner.core.state import Effect, PlannerState
from dinner_planner.logging import get_logger

logger = get_logger(__name__)

CONFIG_ERROR_MESSAGE = "未检测到 API Key。请在部署环境配置 API_KEY 环境变量。"
FETCH_ERROR_MESSAGE = "获取推荐失败，请检查网络或 API 配置。"
PLAN_ERROR_MESSAGE = "生成计划失败，请重试。"


class Planner:
    def __init__(self, state: PlannerState = None):
        self.state = state or PlannerState()

    async def start(self) -> PlannerState:
        """Fetch the first recommendation batch (welcome → selection)."""
        return await self._fetch()

    async def refresh(self) -> PlannerState:
        """Replace the recommendation batch; clears the current selection."""
        return await self._fetch()

    def toggle(self, dish_id: str) -> PlannerState:
        self.state = machine.toggle_dish(self.state, dish_id)
        return self.state

    async def confirm(self) -> PlannerState:
        """Generate schedule, then shopping list and recipes, for the selection."""
        self.state, effect = machine.begin_plan(self.state)
        if effect is not Effect.GENERATE_PLAN:
            return self.state
        try:
            names = [d.name for d in self.state.selected_dishes]
            plan = await ai_assistant.generate_week_plan(names)
            self.state = machine.schedule_loaded(self.state, plan)
            details = await ai_assistant.generate_plan_details(plan)
            self.state = machine.details_loaded(self.state, details)
        except ConfigurationError as e:
            logger.warning("planner.plan.config_error error=%s", e)
            self.state = machine.plan_failed(self.state, CONFIG_ERROR_MESSAGE)
        except PlannerError as e:
            logger.error(
                "planner.plan.failed status=%s error_type=%s error=%s",
                self.state.planning_status, type(e).__name__, e,
            )
            self.state = machine.plan_failed(self.state, PLAN_ERROR_MESSAGE)
        except Exception:
            logger.exception("planner.plan.unexpected_error status=%s", self.state.planning_status)
            self.state = machine.plan_failed(self.state, PLAN_ERROR_MESSAGE)
        finally:
            self.state = machine.finish_loading(self.state)
        return self.state

    def restart(self) -> PlannerState:
        self.state = machine.restart(self.state)
        return self.state

    async def _fetch(self) -> PlannerState:
        self.state, effect = machine.begin_recommendations(self.state)
        if effect is not Effect.FETCH_RECOMMENDATIONS:
            return self.state
        try:
            dishes = await ai_assistant.fetch_recommendations()
            self.state = machine.recommendations_loaded(self.state, dishes)
        except ConfigurationError as e:
            logger.warning("planner.fetch.config_error error=%s", e)
            self.state = machine.recommendations_failed(self.state, CONFIG_ERROR_MESSAGE)
        except PlannerError as e:
            logger.error("planner.fetch.failed error_type=%s error=%s", type(e).__name__, e)
            self.state = machine.recommendations_failed(self.state, FETCH_ERROR_MESSAGE)
        except Exception:
            logger.exception("planner.fetch.unexpected_error")
            self.state = machine.recommendations_failed(self.state, FETCH_ERROR_MESSAGE)
        finally:
            self.state = machine.finish_loading(self.state)
        return self.state
