"""Dataclass models for everything the generation pipeline produces.

These are plain, frozen data containers.  Field names are snake_case; the
camelCase names used on the wire with the model service are mapped in
core/ai_assistant.py.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Dish:
    """A recommended dish.  Ids are only meaningful within one recommendation batch."""

    id: str
    name: str
    description: str
    tags: tuple[str, ...]
    image: str
    calories: str


@dataclass(frozen=True)
class DailyPlan:
    """One weekday's dinner: a main dish, a side dish and why they pair well."""

    day: str
    main_dish: str
    side_dish: str
    reason: str


@dataclass(frozen=True)
class ShoppingCategory:
    category: str
    items: tuple[str, ...]


@dataclass(frozen=True)
class Recipe:
    """Beginner-friendly recipe.  type is "Main" or "Side"."""

    dish_name: str
    type: str
    ingredients: tuple[str, ...]
    steps: tuple[str, ...]
    tips: str

    @property
    def is_main(self) -> bool:
        return self.type == "Main"


@dataclass(frozen=True)
class PlanDetails:
    """Shopping list and recipes generated for a weekly plan."""

    shopping_list: tuple[ShoppingCategory, ...] = ()
    recipes: tuple[Recipe, ...] = ()
