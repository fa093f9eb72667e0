"""Dish image lookup — pick a representative photo from keyword rules.

Images come from a static table rather than image generation.  Rules are
checked top to bottom and the first match wins, so the order of the rule
lists is significant: a dish mentioning both fish and tomato gets the fish
photo.  Name rules are checked before tag rules.

The built-in table mixes Chinese and English triggers.  A replacement table
can be loaded from JSON with load_rules(); the file looks like:

    {
      "images": {"fish": "https://...", ...},
      "default": "https://...",
      "name_rules": [["fish", ["鱼", "fish"]], ...],
      "tag_rules": [["salad", ["salad", "凉拌"]], ...]
    }
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dinner_planner.config import get_image_rules_path


@dataclass(frozen=True)
class ImageRule:
    """Triggers (lower-case substrings) that map a dish to an image category."""

    category: str
    triggers: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(trigger in text for trigger in self.triggers)


@dataclass(frozen=True)
class ImageRules:
    images: dict
    default: str
    name_rules: tuple[ImageRule, ...]
    tag_rules: tuple[ImageRule, ...]


_UNSPLASH = "https://images.unsplash.com/photo-{}?auto=format&fit=crop&w=800&q=80"

IMAGES = {
    "fish": _UNSPLASH.format("1519708227418-c8fd9a32b7a2"),
    "shrimp": _UNSPLASH.format("1565557623262-b51c2513a641"),
    "beef": _UNSPLASH.format("1558030006-450675393462"),
    "pork": _UNSPLASH.format("1608620888949-055f17a94b46"),
    "chicken": _UNSPLASH.format("1610057099443-fde8c4d29f92"),
    "duck": _UNSPLASH.format("1532258848416-29e2f470550f"),
    "vegetable": _UNSPLASH.format("1553530666-ba11a7da3888"),
    "tofu": _UNSPLASH.format("1546069901-ba9599a7e63c"),
    "egg": _UNSPLASH.format("1524855470716-41712a32c25a"),
    "soup": _UNSPLASH.format("1547592166-23acbe3a624b"),
    "salad": _UNSPLASH.format("1512621776951-a57141f2eefd"),
    "noodle": _UNSPLASH.format("1552611052-33e04de081de"),
    "rice": _UNSPLASH.format("1516685018646-549198525c1b"),
    "spicy": _UNSPLASH.format("1563245372-f21724e3856d"),
    "tomato": _UNSPLASH.format("1592187270271-9a4b84faa228"),
    "potato": _UNSPLASH.format("1518977676601-b53f82a6b6dc"),
    "braised": _UNSPLASH.format("1473093226795-af9932fe5856"),
}

DEFAULT_IMAGE = _UNSPLASH.format("1504674900247-0877df9cc836")

# Checked against the dish name, in this order.
NAME_RULES = (
    ImageRule("fish", ("鱼", "fish")),
    ImageRule("shrimp", ("虾", "shrimp")),
    ImageRule("beef", ("牛", "beef")),
    ImageRule("pork", ("排骨", "肉", "pork", "红烧")),
    ImageRule("chicken", ("鸡", "chicken")),
    ImageRule("duck", ("鸭", "duck")),
    ImageRule("tofu", ("豆腐", "tofu")),
    ImageRule("egg", ("蛋", "egg")),
    ImageRule("soup", ("汤", "soup")),
    ImageRule("noodle", ("面", "noodle")),
    ImageRule("tomato", ("西红柿", "番茄", "tomato")),
    ImageRule("potato", ("土豆", "potato")),
)

# Checked against the joined tags once no name rule matched.
TAG_RULES = (
    ImageRule("salad", ("salad", "凉拌")),
    ImageRule("spicy", ("spicy", "辣")),
    ImageRule("braised", ("braised", "炖")),
)

DEFAULT_RULES = ImageRules(
    images=IMAGES,
    default=DEFAULT_IMAGE,
    name_rules=NAME_RULES,
    tag_rules=TAG_RULES,
)


def _parse_rule_list(raw) -> tuple[ImageRule, ...]:
    rules = []
    for entry in raw:
        category, triggers = entry
        if isinstance(triggers, str):
            triggers = [triggers]
        rules.append(ImageRule(str(category), tuple(str(t).lower() for t in triggers)))
    return tuple(rules)


def load_rules(path: str) -> ImageRules:
    """Load an image rule table from a JSON file.

    Missing sections fall back to the built-in table.  Every category named by
    a rule must have an image, otherwise ValueError is raised.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    images = dict(data.get("images", IMAGES))
    rules = ImageRules(
        images=images,
        default=data.get("default", DEFAULT_IMAGE),
        name_rules=_parse_rule_list(data["name_rules"]) if "name_rules" in data else NAME_RULES,
        tag_rules=_parse_rule_list(data["tag_rules"]) if "tag_rules" in data else TAG_RULES,
    )
    missing = [
        r.category for r in rules.name_rules + rules.tag_rules if r.category not in images
    ]
    if missing:
        raise ValueError(f"No image configured for categories: {', '.join(missing)}")
    return rules


@lru_cache(maxsize=4)
def _cached_rules(path: str) -> ImageRules:
    return load_rules(path)


def get_rules() -> ImageRules:
    """Return the configured rule table (IMAGE_RULES_PATH) or the built-in one."""
    path = get_image_rules_path()
    return _cached_rules(path) if path else DEFAULT_RULES


def categorize(name: str, tags, rules: ImageRules = DEFAULT_RULES) -> Optional[str]:
    """Return the image category for a dish, or None when no rule matches."""
    n = (name or "").lower()
    t = " ".join(tags or ()).lower()
    for rule in rules.name_rules:
        if rule.matches(n):
            return rule.category
    for rule in rules.tag_rules:
        if rule.matches(t):
            return rule.category
    return None


def resolve_image(name: str, tags, rules: ImageRules = None) -> str:
    """Return the image URL for a dish name and tag list."""
    if rules is None:
        rules = get_rules()
    category = categorize(name, tags, rules)
    if category is None:
        return rules.default
    return rules.images[category]
