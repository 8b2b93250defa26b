from dataclasses import dataclass

from pinpoint.draft import REQUIRED_FIELDS, Draft

# Canonical order; labels are what the agent is told is still needed
REQUIRED_FIELD_LABELS = {
    "customer_name": "Customer name",
    "project_type": "Project type",
    "number_of_painters": "Number of painters",
    "estimated_days": "Estimated days",
    "hourly_rate": "Hourly rate",
}


@dataclass(frozen=True)
class Completion:
    percent: int
    missing: list[str]
    present: list[str]


def _is_present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def completion_status(draft: Draft) -> Completion:
    """Percent of required fields collected and the labels still missing."""
    present = [f for f in REQUIRED_FIELDS if _is_present(getattr(draft, f))]
    missing = [REQUIRED_FIELD_LABELS[f] for f in REQUIRED_FIELDS if f not in present]
    percent = int(round(len(present) / len(REQUIRED_FIELDS) * 100))
    return Completion(percent=percent, missing=missing, present=present)


def is_ready(draft: Draft) -> bool:
    return completion_status(draft).percent == 100
