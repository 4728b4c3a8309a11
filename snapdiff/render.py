"""Plain-text rendering of comparison reports."""

from __future__ import annotations

import json
from typing import Any

from .models import ABSENT, Report, Section, Strategy

INDENT = "  "


def format_value(value: Any) -> str:
    """Format a property value for display."""
    if value is ABSENT:
        return "<absent>"
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def format_report(report: Report) -> str:
    """Render a report as text."""
    lines = [
        "Migration Comparison Report",
        f"{INDENT}Saved Server:   {report.saved_server or '-'}",
        f"{INDENT}Current Server: {report.current_server or '-'}",
        f"{INDENT}Saved At:       {report.saved_timestamp or '-'}",
        f"{INDENT}Compared At:    {report.timestamp or '-'}",
        "",
    ]

    if report.is_in_sync:
        lines.append("No differences found, servers are in sync.")
        return "\n".join(lines) + "\n"

    lines.append(f"{_plural(report.total_differences, 'difference')} found")
    for section in report.sections:
        lines.append("")
        lines.extend(format_section(section))

    return "\n".join(lines) + "\n"


def format_section(section: Section, depth: int = 0) -> list[str]:
    """Render one section (and its child sections) as lines."""
    pad = INDENT * depth
    if section.total_differences:
        badge = str(section.total_differences)
    else:
        badge = "in sync"
    lines = [f"{pad}== {section.label} [{badge}] =="]
    body = pad + INDENT

    if section.total_differences == 0:
        lines.append(f"{body}All items are in sync.")
    elif section.strategy == Strategy.ENTITY:
        lines.extend(_format_entity_body(section, depth))
    else:
        lines.extend(_format_flat_body(section, body))

    for warning in section.warnings:
        lines.append(f"{body}warning: {warning.message}")

    return lines


def _format_entity_body(section: Section, depth: int) -> list[str]:
    body = INDENT * (depth + 1)
    item = body + INDENT
    lines = []

    if section.missing:
        lines.append(f"{body}Missing in Current Server ({len(section.missing)}):")
        lines.extend(f"{item}- {ref.id}" for ref in section.missing)

    if section.extra:
        lines.append(f"{body}Extra in Current Server ({len(section.extra)}):")
        lines.extend(f"{item}- {ref.id}" for ref in section.extra)

    matched = section.matched or []
    changed = [m for m in matched if m.is_changed]
    if changed:
        lines.append(f"{body}Changed Properties:")
        for entity in changed:
            lines.append(f"{item}{entity.id}")
            for diff in entity.differences:
                lines.append(
                    f"{item}{INDENT}{diff.property}: "
                    f"{format_value(diff.saved)} -> {format_value(diff.current)}"
                )

    in_sync = [m.id for m in matched if not m.is_changed]
    if in_sync:
        lines.append(f"{body}{_plural(len(in_sync), 'item')} in sync: {', '.join(in_sync)}")

    # Group child sections by parent, keeping parent order
    grouped: dict[str, list[Section]] = {}
    for child in section.child_sections or []:
        grouped.setdefault(child.parent_id, []).append(child)

    for parent_id, children in grouped.items():
        if not any(c.total_differences for c in children):
            continue
        lines.append(f"{body}{section.label}: {parent_id}")
        for child in children:
            lines.extend(format_section(child, depth + 2))

    return lines


def _format_flat_body(section: Section, body: str) -> list[str]:
    item = body + INDENT
    lines = []

    if section.missing:
        lines.append(f"{body}Missing in Current Server ({len(section.missing)}):")
        lines.extend(f"{item}- {format_value(r)}" for r in section.missing)

    if section.extra:
        lines.append(f"{body}Extra in Current Server ({len(section.extra)}):")
        lines.extend(f"{item}- {format_value(r)}" for r in section.extra)

    return lines
