"""Options schema builder.

A product's options schema is a short positional list:

    [{"name": "Color", "position": 1, "values": ["Red", "Blue"]},
     {"name": "Size", "position": 2, "values": ["S"]}]

Slot i of the schema corresponds to variant column option{i+1}. At most 3
entries. `None` means "no schema" and is stored as SQL NULL, which the
upsert merge treats as "keep whatever is stored".
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any

MAX_OPTIONS = 3

OptionTuple = tuple[str | None, str | None, str | None]


def _distinct_trimmed(values: Iterable[Any]) -> list[str]:
    """Trim, drop blanks and deduplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        if value is None:
            continue
        v = str(value).strip()
        if v:
            seen.setdefault(v, None)
    return list(seen)


def build_options_schema(
    option_names: Sequence[str | None] | None,
    variant_options: Iterable[OptionTuple],
) -> list[dict[str, Any]] | None:
    """Build the schema from form option names and per-variant option values.

    Args:
        option_names: Option names in display order; blanks are dropped, only the first 3 kept.
        variant_options: (option1, option2, option3) for every variant.

    Returns:
        Schema list, or None when no option name remains.
    """
    names = [n.strip() for n in (option_names or []) if n is not None and n.strip()][:MAX_OPTIONS]
    if not names:
        return None

    tuples = list(variant_options)
    schema: list[dict[str, Any]] = []
    for i, name in enumerate(names):
        schema.append(
            {
                "name": name,
                "position": i + 1,
                "values": _distinct_trimmed(t[i] for t in tuples if len(t) > i),
            }
        )
    return schema


def options_schema_from_remote(options: Iterable[Any]) -> list[dict[str, Any]] | None:
    """Canonicalize upstream option definitions.

    Accepts objects with `name`, `position` and `values` attributes (the decoded
    upstream payload). Unnamed entries are dropped, the rest are ordered by the
    upstream position (missing positions last) and renumbered 1..n.
    """
    named = [o for o in options if o.name is not None and o.name.strip()]
    named.sort(key=lambda o: o.position if o.position is not None else float("inf"))

    schema = [
        {
            "name": o.name.strip(),
            "position": i + 1,
            "values": _distinct_trimmed(o.values or []),
        }
        for i, o in enumerate(named[:MAX_OPTIONS])
    ]
    return schema or None


def option_names_from_schema(schema: Any) -> list[str]:
    """Project a stored schema onto its option names, ordered by position.

    Tolerates a JSON string or an already-decoded list. Anything malformed
    yields an empty list rather than an error.
    """
    if schema is None:
        return []
    if isinstance(schema, str):
        if not schema.strip():
            return []
        try:
            schema = json.loads(schema)
        except json.JSONDecodeError:
            return []
    if not isinstance(schema, list):
        return []

    defs = [d for d in schema if isinstance(d, dict)]
    defs.sort(key=lambda d: d["position"] if isinstance(d.get("position"), int) else float("inf"))
    return [d["name"] for d in defs if isinstance(d.get("name"), str)][:MAX_OPTIONS]
