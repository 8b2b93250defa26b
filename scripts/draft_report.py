#!/usr/bin/env python3
"""Inspect voice drafts saved in a JSON draft store.

Usage:
    python scripts/draft_report.py drafts.json                  # list all drafts
    python scripts/draft_report.py drafts.json --incomplete     # only unfinished, unpromoted drafts
    python scripts/draft_report.py drafts.json --id vd-...      # one draft in detail
    python scripts/draft_report.py drafts.json --id vd-... --raw
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path


def load_drafts(path: Path) -> tuple[list[dict], str | None]:
    """Read the store file. Returns (drafts, active draft id)."""
    data = json.loads(path.read_text())
    return data.get("drafts", []), data.get("active_draft_id")


def _completion(draft: dict) -> int:
    required = ("customer_name", "project_type", "number_of_painters", "estimated_days", "hourly_rate")
    present = [f for f in required if draft.get(f) not in (None, "")]
    return int(round(len(present) / len(required) * 100))


def _when(iso: str) -> str:
    try:
        return datetime.fromisoformat(iso).strftime("%Y-%m-%d %H:%M")
    except (TypeError, ValueError):
        return iso or "?"


def format_summary(drafts: list[dict], active_id: str | None = None) -> str:
    """One line per draft, newest first."""
    lines = []
    for draft in sorted(drafts, key=lambda d: d.get("created_at", ""), reverse=True):
        marker = "*" if draft.get("id") == active_id else " "
        status = "promoted" if draft.get("estimate_id") else "complete" if draft.get("is_complete") else "open"
        total = draft.get("estimate_total") or 0
        lines.append(
            f"{marker} {draft.get('id', '?'):<24} {_when(draft.get('updated_at', '')):<16} "
            f"{(draft.get('customer_name') or '-'):<20} {_completion(draft):>3}% "
            f"{status:<8} ${total:,.2f}"
        )
    return "\n".join(lines)


def format_draft(draft: dict) -> str:
    """Field-by-field view of one draft followed by its conversation."""
    lines = [f"Draft {draft.get('id', '?')} | {_completion(draft)}% | updated {_when(draft.get('updated_at', ''))}"]
    lines.append("═" * 55)

    for label, key in (
        ("Customer", "customer_name"),
        ("Address", "property_address"),
        ("Phone", "phone"),
        ("Email", "email"),
        ("Type", "project_type"),
        ("Painters", "number_of_painters"),
        ("Days", "estimated_days"),
        ("Hours/day", "hours_per_day"),
        ("Rate", "hourly_rate"),
        ("Labor", "labor_cost"),
        ("Materials", "material_subtotal"),
        ("Total", "estimate_total"),
        ("Estimate", "estimate_id"),
    ):
        value = draft.get(key)
        if value not in (None, "", 0, 0.0):
            lines.append(f"{label:<10} {value}")

    if draft.get("areas"):
        lines.append(f"{'Areas':<10} {', '.join(draft['areas'])}")
    for item in draft.get("paint_items", []):
        lines.append(
            f"{'Paint':<10} {item['gallons']}gal {item['product']} {item.get('finish', '')} "
            f"({item['area']}) @ ${item['price_per_gallon']}/gal"
        )
    for color in draft.get("colors", []):
        lines.append(f"{'Color':<10} {color['color']} {color.get('sw_code', '')} ({color['area']})")
    if draft.get("scope_of_work"):
        lines.append(f"{'Prep':<10} {', '.join(draft['scope_of_work'])}")
    for add_on in draft.get("add_ons", []):
        hours = f" ({add_on['hours']} hrs)" if add_on.get("hours") is not None else ""
        lines.append(f"{'Add-on':<10} {add_on['description']}{hours}")

    conversation = draft.get("conversation", [])
    if conversation:
        lines.append("")
        start = conversation[0].get("timestamp", 0.0)
        for entry in conversation:
            t = entry.get("timestamp", start) - start
            speaker = "Agent" if entry.get("role") == "agent" else "Painter"
            lines.append(f"{t:6.1f}s {speaker}: {entry.get('message', '')}")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Inspect saved voice estimate drafts")
    parser.add_argument("store", type=Path, help="Path to the JSON draft store")
    parser.add_argument("--id", type=str, default=None, help="Show one draft in detail")
    parser.add_argument("--incomplete", action="store_true", help="Only drafts not yet complete or promoted")
    parser.add_argument("--raw", action="store_true", help="Output raw JSON")
    args = parser.parse_args()

    try:
        drafts, active_id = load_drafts(args.store)
    except FileNotFoundError:
        print(f"Error: no draft store at {args.store}", file=sys.stderr)
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: {args.store} is not valid JSON: {e}", file=sys.stderr)
        sys.exit(1)

    if args.incomplete:
        drafts = [d for d in drafts if not d.get("is_complete") and not d.get("estimate_id")]

    if args.id:
        matches = [d for d in drafts if d.get("id") == args.id]
        if not matches:
            print(f"Draft {args.id} not found", file=sys.stderr)
            sys.exit(1)
        draft = matches[0]
        print(json.dumps(draft, indent=2) if args.raw else format_draft(draft))
        return

    if not drafts:
        print("No drafts found", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(drafts, indent=2) if args.raw else format_summary(drafts, active_id))


if __name__ == "__main__":
    main()
