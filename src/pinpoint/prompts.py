from pinpoint.completion import completion_status
from pinpoint.draft import Draft
from pinpoint.vocabulary import as_whole

PERSONA = """You are Damon, the estimating assistant for a residential painting contractor.
You are talking with the painter on a voice call while they walk a job.

VOICE & PERSONA
- Tone: quick, practical, friendly. This is a phone call: keep every reply under 25 words.
- Cadence: ONE question at a time.
- Acknowledgments: "Got it." / "Okay." Often skip them and ask the next question.

WHAT YOU COLLECT
- Customer name, address, interior/exterior, rooms or areas.
- Crew: number of painters, days, hours per day, hourly rate.
- Paint: product, gallons and area. Colors with Sherwin-Williams codes.
- Prep work and add-ons such as pressure washing.

TOOLS
- lookup_customer: call as soon as you hear the customer's name.
- get_business_config: call once at the start. If it returns a default hourly rate, do NOT ask for the rate.

RULES
1. NEVER re-ask something already collected.
2. NEVER invent prices or totals. The app calculates them.
3. If you didn't catch a number, ask to repeat it."""

RESUME_INSTRUCTION = (
    "Ask about the missing items one at a time. "
    "Never re-ask anything listed under ALREADY COLLECTED. Pick up where we left off."
)


def _money(value: float) -> str:
    return f"${value:,.2f}" if value % 1 else f"${value:,.0f}"


def _number(value) -> str:
    return str(as_whole(value))


def summarize_draft(draft: Draft) -> list[str]:
    """One human-readable line per collected field, in a fixed order."""
    lines = []
    if draft.customer_name:
        lines.append(f"Customer: {draft.customer_name}")
    if draft.property_address:
        lines.append(f"Address: {draft.property_address}")
    if draft.phone:
        lines.append(f"Phone: {draft.phone}")
    if draft.email:
        lines.append(f"Email: {draft.email}")
    if draft.project_type:
        lines.append(f"Type: {draft.project_type}")
    if draft.areas:
        lines.append(f"Areas: {', '.join(draft.areas)}")
    if draft.number_of_painters is not None:
        noun = "painter" if draft.number_of_painters == 1 else "painters"
        lines.append(f"Crew: {_number(draft.number_of_painters)} {noun}")
    if draft.estimated_days is not None:
        noun = "day" if draft.estimated_days == 1 else "days"
        lines.append(
            f"Duration: {_number(draft.estimated_days)} {noun} "
            f"({_number(draft.hours_per_day)} hrs/day)"
        )
    if draft.hourly_rate is not None:
        lines.append(f"Rate: {_money(draft.hourly_rate)}/hr")
    if draft.labor_cost is not None:
        lines.append(f"Labor cost: {_money(draft.labor_cost)}")
    if draft.paint_items:
        paint = ", ".join(
            f"{_number(p.gallons)}gal {p.product} {p.finish} ({p.area})" for p in draft.paint_items
        )
        lines.append(f"Paint: {paint}")
    if draft.colors:
        colors = ", ".join(
            f"{c.color} ({c.area})" if c.color == c.sw_code
            else f"{c.color} {c.sw_code} ({c.area})".replace("  ", " ")
            for c in draft.colors
        )
        lines.append(f"Colors: {colors}")
    if draft.scope_of_work:
        lines.append(f"Prep: {', '.join(draft.scope_of_work)}")
    if draft.add_ons:
        add_ons = ", ".join(
            f"{a.description} ({_number(a.hours)} hrs)" if a.hours is not None else a.description
            for a in draft.add_ons
        )
        lines.append(f"Add-ons: {add_ons}")
    if draft.estimate_total:
        lines.append(f"Total: {_money(draft.estimate_total)}")
    return lines


def build_agent_context(draft: Draft) -> str:
    """Resume block: what is already collected, what is still needed."""
    collected = summarize_draft(draft)
    missing = completion_status(draft).missing

    context = ""
    if collected:
        context += "ALREADY COLLECTED:\n" + "\n".join(collected) + "\n\n"
    if missing:
        context += "STILL NEEDED:\n" + "\n".join(missing) + "\n\n"
    context += RESUME_INSTRUCTION
    return context


def get_system_prompt(draft: Draft | None) -> str:
    if draft is None:
        return PERSONA
    return f"{PERSONA}\n\n{build_agent_context(draft)}"
