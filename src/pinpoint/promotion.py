import logging

from pinpoint.draft import Draft
from pinpoint.lifecycle import DraftManager
from pinpoint.pricing import DEFAULT_HOURS_PER_DAY, recalculate
from pinpoint.tools import PinpointClient
from pinpoint.transcript import to_plain_text

logger = logging.getLogger(__name__)

NOTES_TRANSCRIPT_CHARS = 2000


def _project_name(draft: Draft) -> str:
    parts = [draft.customer_name or "New customer"]
    if draft.project_type:
        parts.append(draft.project_type.capitalize())
    name = " - ".join(parts)
    if draft.areas:
        name += f" ({', '.join(draft.areas[:3])})"
    return name


def _materials(draft: Draft) -> list[dict]:
    materials = []
    for item in draft.paint_items:
        label = f"{item.product.title()} {item.finish}"
        if item.color:
            label += f" - {item.color}"
        materials.append({
            "name": f"{label} ({item.area})",
            "quantity": item.gallons,
            "unit": "gallon",
            "unitPrice": item.price_per_gallon,
            "category": "paint",
        })
    return materials


def _labor(draft: Draft) -> list[dict]:
    if not draft.number_of_painters or not draft.estimated_days:
        return []
    labor = [{
        "description": f"{(draft.project_type or 'painting').capitalize()} painting labor",
        "painters": draft.number_of_painters,
        "days": draft.estimated_days,
        "hoursPerDay": draft.hours_per_day or DEFAULT_HOURS_PER_DAY,
        "hourlyRate": draft.hourly_rate or 0,
    }]
    # Add-ons priced by the hour become single-painter labor lines
    for add_on in draft.add_ons:
        if not add_on.hours:
            continue
        labor.append({
            "description": add_on.description,
            "painters": 1,
            "days": 1,
            "hoursPerDay": add_on.hours,
            "hourlyRate": add_on.hourly_rate if add_on.hourly_rate is not None else (draft.hourly_rate or 0),
        })
    return labor


def _scope(draft: Draft) -> list[str]:
    scope = list(draft.scope_of_work)
    for color in draft.colors:
        code = f" {color.sw_code}" if color.sw_code and color.sw_code != color.color else ""
        scope.append(f"{color.area.capitalize()}: {color.color}{code}")
    for add_on in draft.add_ons:
        if not add_on.hours:
            scope.append(add_on.description)
    return scope


def _notes(draft: Draft) -> str:
    notes = [draft.special_notes] if draft.special_notes else []
    transcript = to_plain_text(draft.conversation)
    if transcript:
        if len(transcript) > NOTES_TRANSCRIPT_CHARS:
            transcript = transcript[:NOTES_TRANSCRIPT_CHARS] + "..."
        notes.append(f"Voice draft {draft.id} transcript:\n{transcript}")
    return "\n\n".join(notes)


def build_estimate_payload(draft: Draft) -> dict:
    """Map a draft onto the backend's estimate entity."""
    totals = recalculate(draft)
    return {
        "customerName": draft.customer_name or "",
        "customerAddress": draft.property_address or "",
        "customerPhone": draft.phone or "",
        "customerEmail": draft.email or "",
        "projectName": _project_name(draft),
        "scopeOfWork": _scope(draft),
        "materials": _materials(draft),
        "labor": _labor(draft),
        "materialMarkupPercent": draft.markup_percent,
        "taxRate": draft.tax_rate,
        "status": "draft",
        "notes": _notes(draft),
        "subtotalMaterials": totals.material_subtotal,
        "subtotalLabor": round((totals.labor_cost or 0) + totals.add_on_cost, 2),
        "markupAmount": totals.markup_amount,
        "taxAmount": totals.tax_amount,
        "total": totals.estimate_total,
        "sourceDraftId": draft.id,
    }


async def promote_draft(manager: DraftManager, client: PinpointClient, draft_id: str | None = None) -> dict:
    """Create an estimate from a draft and link the draft to it.

    Returns the backend response. On failure the draft is left unlinked.
    """
    draft = manager.resolve(draft_id)
    if draft.estimate_id:
        logger.info("draft %s already promoted to %s", draft.id, draft.estimate_id)
        return {"success": True, "id": draft.estimate_id, "already_promoted": True}

    result = await client.create_estimate(build_estimate_payload(draft))
    estimate_id = result.get("id") or (result.get("estimate") or {}).get("id")
    if not estimate_id:
        logger.error("estimate creation for draft %s failed: %s", draft.id, result.get("error", result))
        return result

    manager.link_to_estimate(draft.id, str(estimate_id))
    return result
