import random
import string
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone


REQUIRED_FIELDS = (
    "customer_name",
    "project_type",
    "number_of_painters",
    "estimated_days",
    "hourly_rate",
)

NUMERIC_FIELDS = {
    "number_of_painters", "estimated_days", "hours_per_day", "hourly_rate",
    "markup_percent", "tax_rate",
}

# Recomputed on every mutation, never written by callers
DERIVED_FIELDS = {"labor_cost", "material_subtotal", "estimate_total"}

# Owned by the lifecycle manager
PROTECTED_FIELDS = {"id", "created_at", "updated_at", "conversation", "extracted"}

PROJECT_TYPES = {"interior", "exterior", "both"}
ROLES = {"user", "agent"}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_draft_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"vd-{int(time.time() * 1000)}-{suffix}"


@dataclass
class PaintItem:
    area: str
    product: str
    gallons: float
    price_per_gallon: float
    finish: str = "flat"
    color: str = ""
    coats: int = 2

    @property
    def cost(self) -> float:
        return self.gallons * self.price_per_gallon

    def key(self) -> tuple:
        return (self.gallons, self.product.lower(), self.area.lower())


@dataclass
class ColorAssignment:
    area: str
    color: str
    sw_code: str = ""


@dataclass
class AddOn:
    description: str
    hours: float | None = None
    hourly_rate: float | None = None


@dataclass
class ConversationEntry:
    role: str
    message: str
    timestamp: float


@dataclass
class Draft:
    """A resumable, voice-collected estimate.

    ``None`` means "not yet collected". Derived money fields are owned by
    ``pinpoint.pricing`` and recomputed after every mutation.
    """

    id: str = field(default_factory=generate_draft_id)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    # Customer
    customer_name: str | None = None
    property_address: str | None = None
    phone: str | None = None
    email: str | None = None

    # Scope
    project_type: str | None = None
    areas: list[str] = field(default_factory=list)

    # Labor
    number_of_painters: int | None = None
    estimated_days: float | None = None
    hours_per_day: float = 8
    hourly_rate: float | None = None
    labor_cost: float | None = None

    # Materials
    paint_items: list[PaintItem] = field(default_factory=list)
    material_subtotal: float = 0.0

    colors: list[ColorAssignment] = field(default_factory=list)
    scope_of_work: list[str] = field(default_factory=list)
    add_ons: list[AddOn] = field(default_factory=list)
    special_notes: str | None = None

    # Pricing knobs
    markup_percent: float = 20
    tax_rate: float = 8
    estimate_total: float = 0.0

    conversation: list[ConversationEntry] = field(default_factory=list)
    # Last scalar values the transcript produced, so old mentions are not re-applied
    extracted: dict = field(default_factory=dict)

    is_complete: bool = False
    estimate_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Draft":
        data = dict(data)
        data["paint_items"] = [PaintItem(**p) for p in data.get("paint_items", [])]
        data["colors"] = [ColorAssignment(**c) for c in data.get("colors", [])]
        data["add_ons"] = [AddOn(**a) for a in data.get("add_ons", [])]
        data["conversation"] = [ConversationEntry(**e) for e in data.get("conversation", [])]
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in known})
