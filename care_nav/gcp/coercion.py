"""Lenient readers for heterogeneous answer values.

Answers arrive as arbitrary JSON. These helpers never raise: malformed or non-finite
numbers read as 0.0 and non-string values read as empty strings.
"""

from __future__ import annotations

import math
from typing import Any


def coerce_number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def lower_str(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def str_list(value: Any) -> list[str]:
    """Read a multi-select answer; a lone string counts as a one-item selection."""

    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str) and item.strip()]
    return []
