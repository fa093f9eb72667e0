"""Claude AI integration — dish recommendations, weekly plans, shopping lists and recipes.

Every stage sends a prompt plus a JSON schema describing the reply, then
sanitizes, parses and validates the returned text before turning it into
models.  The schema is a request, not a guarantee, so anything that does not
match it raises MalformedResponseError instead of leaking half-typed data.

Errors:
    ConfigurationError      — no API key; raised before any network call.
    ServiceError            — the API call itself failed.
    MalformedResponseError  — reply is not JSON or not the requested shape.
"""

import json
import time
from typing import Optional

import anthropic
import httpx

from dinner_planner.config import get_api_key, get_max_tokens, get_model, get_recommendation_count, get_timeout_ms
from dinner_planner.core.images import resolve_image
from dinner_planner.core.sanitize import clean_json
from dinner_planner.logging import get_logger
from dinner_planner.models import DailyPlan, Dish, PlanDetails, Recipe, ShoppingCategory

logger = get_logger(__name__)


class PlannerError(Exception):
    """Base class for failures of a generation stage."""


class ConfigurationError(PlannerError):
    pass


class ServiceError(PlannerError):
    pass


class MalformedResponseError(PlannerError):
    pass


def _get_client() -> anthropic.AsyncAnthropic:
    """Create an async Anthropic client. Raises ConfigurationError if the API key is not set."""
    api_key = get_api_key()
    if not api_key:
        raise ConfigurationError("API key not set. Configure the API_KEY environment variable.")
    # Single attempt per stage.
    kwargs = {"api_key": api_key, "max_retries": 0}
    timeout_ms = get_timeout_ms()
    if timeout_ms is not None:
        kwargs["timeout"] = httpx.Timeout(timeout_ms / 1000)
    return anthropic.AsyncAnthropic(**kwargs)


# ── Output schemas ─────────────────────────────────────────────────────────────

_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": _STRING}

DISH_LIST_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "id": _STRING,
            "name": _STRING,
            "description": _STRING,
            "tags": _STRING_LIST,
            "calories": _STRING,
        },
        "required": ["id", "name", "description", "tags", "calories"],
    },
}

WEEK_PLAN_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "day": _STRING,
            "mainDish": _STRING,
            "sideDish": _STRING,
            "reason": _STRING,
        },
        "required": ["day", "mainDish", "sideDish", "reason"],
    },
}

PLAN_DETAILS_SCHEMA = {
    "type": "object",
    "properties": {
        "shoppingList": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"category": _STRING, "items": _STRING_LIST},
                "required": ["category", "items"],
            },
        },
        "recipes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "dishName": _STRING,
                    "type": _STRING,
                    "ingredients": _STRING_LIST,
                    "steps": _STRING_LIST,
                    "tips": _STRING,
                },
                "required": ["dishName", "type", "ingredients", "steps", "tips"],
            },
        },
    },
    "required": ["shoppingList", "recipes"],
}


# ── Shared call path ───────────────────────────────────────────────────────────

async def generate(model: str, prompt: str, schema: dict) -> str:
    """Send one prompt to Claude and return the reply text.

    The schema is embedded in the prompt; Claude is asked to answer with JSON
    only.  Any client-side failure is re-raised as ServiceError.
    """
    client = _get_client()
    content = f"""{prompt}

Your reply must be JSON conforming to this JSON schema:
{json.dumps(schema, indent=2)}

Return only the JSON, wrapped in ```json``` code fences."""
    try:
        message = await client.messages.create(
            model=model,
            max_tokens=get_max_tokens(),
            messages=[{"role": "user", "content": content}],
        )
    except Exception as e:
        raise ServiceError(f"Model call failed: {e}") from e
    return "".join(block.text for block in message.content if getattr(block, "type", "text") == "text")


async def _generate_json(stage: str, prompt: str, schema: dict):
    """Run one stage's model call and return the parsed JSON value."""
    model = get_model()
    start = time.time()
    logger.info("llm.call.start stage=%s model=%s", stage, model)
    text = await generate(model, prompt, schema)
    latency_ms = int((time.time() - start) * 1000)
    logger.info("llm.call.end stage=%s latency_ms=%s chars=%s", stage, latency_ms, len(text))
    try:
        return json.loads(clean_json(text))
    except json.JSONDecodeError as e:
        logger.warning("llm.response.invalid_json stage=%s error=%s text=%.200s", stage, e, text)
        raise MalformedResponseError(f"{stage}: reply is not valid JSON ({e})") from e


# ── Validation helpers ─────────────────────────────────────────────────────────

def _require_list(value, what: str) -> list:
    if not isinstance(value, list):
        raise MalformedResponseError(f"{what}: expected a JSON array, got {type(value).__name__}")
    return value


def _require_object(value, what: str) -> dict:
    if not isinstance(value, dict):
        raise MalformedResponseError(f"{what}: expected a JSON object, got {type(value).__name__}")
    return value


def _optional(obj: dict, key: str):
    """Missing or null means empty; anything else must pass validation as-is."""
    value = obj.get(key)
    return [] if value is None else value


def _require_str(obj: dict, key: str, what: str) -> str:
    value = obj.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise MalformedResponseError(f"{what}: missing or non-string field {key!r}")
    return value


def _require_str_list(obj: dict, key: str, what: str) -> tuple[str, ...]:
    value = obj.get(key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedResponseError(f"{what}: field {key!r} must be a list of strings")
    return tuple(value)


def _parse_dish(item, index: int) -> Dish:
    what = f"dish[{index}]"
    item = _require_object(item, what)
    name = _require_str(item, "name", what)
    tags = _require_str_list(item, "tags", what)
    return Dish(
        id=_require_str(item, "id", what),
        name=name,
        description=_require_str(item, "description", what),
        tags=tags,
        image=resolve_image(name, tags),
        calories=_require_str(item, "calories", what),
    )


def _parse_daily_plan(item, index: int) -> DailyPlan:
    what = f"plan[{index}]"
    item = _require_object(item, what)
    return DailyPlan(
        day=_require_str(item, "day", what),
        main_dish=_require_str(item, "mainDish", what),
        side_dish=_require_str(item, "sideDish", what),
        reason=_require_str(item, "reason", what),
    )


def _parse_category(item, index: int) -> ShoppingCategory:
    what = f"shoppingList[{index}]"
    item = _require_object(item, what)
    return ShoppingCategory(
        category=_require_str(item, "category", what),
        items=_require_str_list(item, "items", what),
    )


def _parse_recipe(item, index: int) -> Recipe:
    what = f"recipes[{index}]"
    item = _require_object(item, what)
    tips = item.get("tips")
    return Recipe(
        dish_name=_require_str(item, "dishName", what),
        type=_require_str(item, "type", what),
        ingredients=_require_str_list(item, "ingredients", what),
        steps=_require_str_list(item, "steps", what),
        tips=tips if isinstance(tips, str) else "",
    )


# ── Stage A: recommendations ───────────────────────────────────────────────────

def _recommendations_prompt(count: int) -> str:
    return f"""Recommend {count} distinct, healthy, and weight-loss friendly dinner dishes suitable for Chinese home cooking.

Requirements:
- Variety: Include a mix of stir-fry, steamed, boiled, and cold dishes.
- Flavors: Include diverse styles like Sichuan (mildly spicy), Cantonese (light), Home-style (savory).
- Ingredients: Easy to find in standard supermarkets. High protein, moderate carbs, plenty of vegetables.
- Level: Beginner friendly.

Return a JSON array. Each object should have:
- id: string (unique)
- name: string (Chinese name of the dish, e.g. "西红柿炒鸡蛋")
- description: string (very brief description of taste, e.g. "酸甜开胃，营养丰富")
- tags: string array (e.g., "高蛋白", "快手菜", "低脂", "川味", "清淡")
- calories: string (approximate calories per serving, e.g. "300大卡")"""


async def fetch_recommendations(count: Optional[int] = None) -> list[Dish]:
    """Ask Claude for a batch of dinner dishes, each with a resolved image."""
    if count is None:
        count = get_recommendation_count()
    data = await _generate_json("recommendations", _recommendations_prompt(count), DISH_LIST_SCHEMA)
    items = _require_list(data, "recommendations")
    return [_parse_dish(item, i) for i, item in enumerate(items)]


# ── Stage B: weekly plan ───────────────────────────────────────────────────────

def _week_plan_prompt(dish_names: list[str]) -> str:
    return f"""User selected these dishes: {", ".join(dish_names)}.
Create a 5-day dinner plan (Monday to Friday) suitable for weight loss.
Distribute the selected dishes across the week.
If there are fewer than 5 selected, repeat the best ones or suggest a very similar simple variation to fill the gap.

Return a JSON array of 5 objects (one for each day).
Each object:
- day: string (e.g., "周一")
- mainDish: string (name from selection or variation)
- sideDish: string (a simple side dish to pair with, e.g., "清炒西兰花", "拍黄瓜")
- reason: string (why this combo is good)"""


async def generate_week_plan(dish_names: list[str]) -> list[DailyPlan]:
    """Build a Monday–Friday dinner plan from the selected dish names.

    The length of the returned plan is whatever the model produced; callers
    must not call this with an empty selection.
    """
    data = await _generate_json("week_plan", _week_plan_prompt(dish_names), WEEK_PLAN_SCHEMA)
    items = _require_list(data, "week_plan")
    return [_parse_daily_plan(item, i) for i, item in enumerate(items)]


# ── Stage C: shopping list & recipes ───────────────────────────────────────────

def describe_plan(plan: list[DailyPlan]) -> str:
    """Flatten a plan into "main (Main) + side (Side); ..." for the details prompt."""
    return "; ".join(f"{d.main_dish} (Main) + {d.side_dish} (Side)" for d in plan)


def _plan_details_prompt(plan: list[DailyPlan]) -> str:
    return f"""Based on this weekly plan: {describe_plan(plan)}.

Task 1: Generate a consolidated shopping list.
Task 2: Provide simple, beginner-friendly recipes for EVERY unique MAIN dish and SIDE dish mentioned in the plan.
Keep steps concise and clear.

Return JSON object:
{{
  "shoppingList": [
    {{ "category": "category name (e.g. 蔬菜, 肉类, 调味品)", "items": ["item 1", "item 2"] }}
  ],
  "recipes": [
    {{
      "dishName": "name",
      "type": "Main" or "Side",
      "ingredients": ["ing 1", "ing 2"],
      "steps": ["step 1", "step 2"],
      "tips": "useful tip for beginners"
    }}
  ]
}}"""


async def generate_plan_details(plan: list[DailyPlan]) -> PlanDetails:
    """Generate the shopping list and recipes for a weekly plan.

    A missing shoppingList or recipes key counts as empty; a present but
    malformed one raises MalformedResponseError.
    """
    data = await _generate_json("plan_details", _plan_details_prompt(plan), PLAN_DETAILS_SCHEMA)
    data = _require_object(data, "plan_details")
    shopping = _require_list(_optional(data, "shoppingList"), "shoppingList")
    recipes = _require_list(_optional(data, "recipes"), "recipes")
    return PlanDetails(
        shopping_list=tuple(_parse_category(item, i) for i, item in enumerate(shopping)),
        recipes=tuple(_parse_recipe(item, i) for i, item in enumerate(recipes)),
    )
