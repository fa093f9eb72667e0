import asyncio

from conftest import fenced
from dinner_planner.core import images
from dinner_planner.core.planner import (
    CONFIG_ERROR_MESSAGE,
    FETCH_ERROR_MESSAGE,
    PLAN_ERROR_MESSAGE,
    Planner,
)
from dinner_planner.core.state import Phase


def _planner_with_batch(fake_claude, dishes_reply) -> Planner:
    planner = Planner()
    fake_claude.queue(dishes_reply)
    asyncio.run(planner.start())
    return planner


def test_start_loads_recommendations(fake_claude, dishes_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    state = planner.state
    assert state.phase == Phase.SELECTION
    assert len(state.recommendations) == 12
    assert all(d.image.startswith("https://") for d in state.recommendations)
    assert state.error is None
    assert not state.loading


def test_start_failure_stays_on_welcome(fake_claude):
    fake_claude.queue(RuntimeError("network down"))
    planner = Planner()
    asyncio.run(planner.start())
    assert planner.state.phase == Phase.WELCOME
    assert planner.state.error == FETCH_ERROR_MESSAGE
    assert not planner.state.loading


def test_missing_api_key_reports_configuration_error(fake_claude, no_api_key):
    planner = Planner()
    asyncio.run(planner.start())
    assert planner.state.phase == Phase.WELCOME
    assert planner.state.error == CONFIG_ERROR_MESSAGE
    assert fake_claude.calls == []
    assert not planner.state.loading


def test_full_plan_reaches_dashboard(fake_claude, dishes_reply, plan_reply, details_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d1")
    planner.toggle("d3")
    fake_claude.queue(plan_reply, details_reply)
    asyncio.run(planner.confirm())

    state = planner.state
    assert state.phase == Phase.DASHBOARD
    assert len(state.plan) == 5
    assert state.shopping_list
    assert state.recipes
    assert state.error is None
    assert not state.loading
    assert "清蒸鲈鱼, 白灼虾" in fake_claude.prompt(1)


def test_details_parse_failure_returns_to_selection(fake_claude, dishes_reply, plan_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d1")
    planner.toggle("d2")
    fake_claude.queue(plan_reply, "```json\n{not json\n```")
    asyncio.run(planner.confirm())

    state = planner.state
    assert state.phase == Phase.SELECTION
    assert state.selected_ids == {"d1", "d2"}
    assert state.error == PLAN_ERROR_MESSAGE
    assert state.plan == ()
    assert state.shopping_list == ()
    assert state.recipes == ()
    assert not state.loading


def test_schedule_failure_skips_details(fake_claude, dishes_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d1")
    fake_claude.queue(fenced({"not": "a list"}))
    asyncio.run(planner.confirm())
    assert planner.state.phase == Phase.SELECTION
    assert planner.state.error == PLAN_ERROR_MESSAGE
    assert len(fake_claude.calls) == 2


def test_confirm_without_selection_does_nothing(fake_claude, dishes_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    asyncio.run(planner.confirm())
    assert planner.state.phase == Phase.SELECTION
    assert len(fake_claude.calls) == 1


def test_refresh_clears_selection_and_keeps_images_stable(fake_claude, dishes_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    first = {d.name: d.image for d in planner.state.recommendations}
    planner.toggle("d4")

    fake_claude.queue(dishes_reply)
    asyncio.run(planner.refresh())

    second = {d.name: d.image for d in planner.state.recommendations}
    assert planner.state.selected_ids == frozenset()
    assert first == second


def test_refresh_failure_keeps_current_batch(fake_claude, dishes_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d5")
    fake_claude.queue(RuntimeError("timeout"))
    asyncio.run(planner.refresh())
    assert planner.state.phase == Phase.SELECTION
    assert len(planner.state.recommendations) == 12
    assert planner.state.selected_ids == {"d5"}
    assert planner.state.error == FETCH_ERROR_MESSAGE


def test_restart_returns_to_selection_without_refetch(fake_claude, dishes_reply, plan_reply, details_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d1")
    fake_claude.queue(plan_reply, details_reply)
    asyncio.run(planner.confirm())

    planner.restart()
    state = planner.state
    assert state.phase == Phase.SELECTION
    assert len(state.recommendations) == 12
    assert state.selected_ids == {"d1"}
    assert state.plan == ()
    assert len(fake_claude.calls) == 3


def test_second_action_is_ignored_while_loading(fake_claude, dishes_reply, plan_reply, details_reply):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d1")
    fake_claude.queue(plan_reply, details_reply)

    async def run_both():
        first = asyncio.ensure_future(planner.confirm())
        await asyncio.sleep(0)
        assert planner.state.loading
        assert planner.state.phase == Phase.PLANNING
        await planner.refresh()
        planner.toggle("d2")
        await first

    asyncio.run(run_both())
    assert planner.state.phase == Phase.DASHBOARD
    assert planner.state.selected_ids == {"d1"}
    assert len(fake_claude.calls) == 3


def test_unexpected_error_during_plan_returns_to_selection(fake_claude, dishes_reply, plan_reply, details_reply, monkeypatch):
    planner = _planner_with_batch(fake_claude, dishes_reply)
    planner.toggle("d1")
    monkeypatch.setenv("PLANNER_TIMEOUT_MS", "abc")
    asyncio.run(planner.confirm())

    state = planner.state
    assert state.phase == Phase.SELECTION
    assert state.error == PLAN_ERROR_MESSAGE
    assert state.selected_ids == {"d1"}
    assert not state.loading

    monkeypatch.delenv("PLANNER_TIMEOUT_MS")
    fake_claude.queue(plan_reply, details_reply)
    asyncio.run(planner.confirm())
    assert planner.state.phase == Phase.DASHBOARD
    assert planner.state.error is None


def test_unexpected_error_during_fetch_stays_on_welcome(fake_claude, dishes_reply, monkeypatch, tmp_path):
    images._cached_rules.cache_clear()
    monkeypatch.setenv("IMAGE_RULES_PATH", str(tmp_path / "missing.json"))
    fake_claude.queue(dishes_reply)
    planner = Planner()
    asyncio.run(planner.start())

    assert planner.state.phase == Phase.WELCOME
    assert planner.state.error == FETCH_ERROR_MESSAGE
    assert not planner.state.loading

    monkeypatch.delenv("IMAGE_RULES_PATH")
    fake_claude.queue(dishes_reply)
    asyncio.run(planner.start())
    assert planner.state.phase == Phase.SELECTION
