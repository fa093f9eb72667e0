"""Strip markdown code fences from model replies before JSON parsing."""

import re

# A language tag is only a tag when whitespace follows it, except a bare "json".
_OPENING_FENCE = re.compile(r"^```(?:[\w-]+(?=\s)|json)?[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def clean_json(text: str) -> str:
    """Return text ready for json.loads.

    Empty input becomes "[]".  A leading ``` fence (with or without a
    language tag) and its closing fence are removed; anything else is
    returned trimmed but otherwise untouched.
    """
    if not text:
        return "[]"
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
        cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
        cleaned = cleaned.strip()
    return cleaned
