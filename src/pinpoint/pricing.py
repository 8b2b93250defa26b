"""Derived money fields for a draft.

Nothing here raises: unknown inputs leave the dependent figure unset
instead of producing a misleading zero.
"""

from dataclasses import dataclass

from pinpoint.draft import Draft

DEFAULT_HOURS_PER_DAY = 8


@dataclass(frozen=True)
class Totals:
    labor_cost: float | None
    material_subtotal: float
    markup_amount: float
    tax_amount: float
    add_on_cost: float
    estimate_total: float


def labor_cost(draft: Draft) -> float | None:
    """painters x days x hours/day x rate, or None while any factor is unknown."""
    if not draft.number_of_painters or not draft.estimated_days or not draft.hourly_rate:
        return None
    hours = draft.hours_per_day or DEFAULT_HOURS_PER_DAY
    return round(draft.number_of_painters * draft.estimated_days * hours * draft.hourly_rate, 2)


def material_subtotal(draft: Draft) -> float:
    return round(sum(item.cost for item in draft.paint_items), 2)


def add_on_cost(draft: Draft) -> float:
    total = 0.0
    for add_on in draft.add_ons:
        rate = add_on.hourly_rate if add_on.hourly_rate is not None else draft.hourly_rate
        if add_on.hours and rate:
            total += add_on.hours * rate
    return round(total, 2)


def recalculate(draft: Draft) -> Totals:
    labor = labor_cost(draft)
    materials = material_subtotal(draft)
    markup = round(materials * (draft.markup_percent or 0) / 100, 2)
    tax = round((materials + markup) * (draft.tax_rate or 0) / 100, 2)
    add_ons = add_on_cost(draft)
    total = round((labor or 0) + materials + markup + tax + add_ons, 2)
    return Totals(
        labor_cost=labor,
        material_subtotal=materials,
        markup_amount=markup,
        tax_amount=tax,
        add_on_cost=add_ons,
        estimate_total=total,
    )


def apply_totals(draft: Draft) -> Draft:
    """Write the derived fields back onto the draft (in place)."""
    totals = recalculate(draft)
    draft.labor_cost = totals.labor_cost
    draft.material_subtotal = totals.material_subtotal
    draft.estimate_total = totals.estimate_total
    return draft
