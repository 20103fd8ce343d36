"""Helpers for rendering structured, multi-line log messages.

Log events that carry several values (a discovered title, a planned
link, a pass summary) are rendered as a titled block with aligned
labels so they stay readable in both the console and the log file.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from textwrap import wrap
from typing import Union

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{value:.3f}"
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value).strip()


def _field_lines(fields: FieldMapping, indent: str, wrap_width: int, max_label: int) -> list[str]:
    items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
    if not items:
        return []

    label_width = max(min(max(len(str(key)) for key, _ in items), max_label), 8)
    value_width = max(wrap_width - len(indent) - label_width - 4, 32)

    lines: list[str] = []
    for key, value in items:
        wrapped = wrap(_stringify(value), width=value_width) or [""]
        lines.append(f"{indent}{str(key):<{label_width}}: {wrapped[0]}")
        lines.extend(f"{indent}{'':<{label_width}}  {rest}" for rest in wrapped[1:])
    return lines


def render_fields_block(
    title: str,
    fields: FieldMapping | None = None,
    *,
    pad_top: bool = True,
    wrap_width: int = DEFAULT_WRAP_WIDTH,
) -> str:
    lines: list[str] = [""] if pad_top else []
    lines.append(title)
    lines.append("-" * len(title))
    if fields:
        lines.extend(_field_lines(fields, DEFAULT_INDENT, wrap_width, DEFAULT_LABEL_WIDTH))
    return "\n".join(lines).rstrip()
