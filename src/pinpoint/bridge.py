"""Tool calls the voice agent can make mid-conversation.

Each tool returns a ``ToolResult``: the JSON-able payload spoken back to the
LLM plus an optional ``DraftCommand``. The bridge never touches drafts itself;
``handle_tool_call`` hands the command to the ``DraftManager``.
"""

import json
import logging
from dataclasses import dataclass
from difflib import SequenceMatcher

from pinpoint.lifecycle import DraftCommand, DraftManager
from pinpoint.tools import PinpointClient

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 0.6

DEFAULT_BUSINESS_CONFIG = {
    "hourly_rate": 65,
    "markup_percent": 20,
    "tax_rate": 8,
    "hours_per_day": 8,
}

# Backend key -> draft field
_CONFIG_KEYS = {
    "hourly_rate": ("defaultHourlyRate", "default_hourly_rate", "hourlyRate", "hourly_rate"),
    "markup_percent": ("defaultMarkupPercent", "default_markup_percent", "markupPercent", "markup_percent"),
    "tax_rate": ("defaultTaxRate", "default_tax_rate", "taxRate", "tax_rate"),
    "hours_per_day": ("defaultHoursPerDay", "default_hours_per_day", "hoursPerDay", "hours_per_day"),
}


@dataclass
class ToolResult:
    payload: dict
    command: DraftCommand | None = None


def _pick(record: dict, *keys, default=""):
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return default


def customer_name(record: dict) -> str:
    name = _pick(record, "name", "fullName", "full_name")
    if name:
        return str(name).strip()
    first = _pick(record, "firstName", "first_name")
    last = _pick(record, "lastName", "last_name")
    return f"{first} {last}".strip()


def customer_address(record: dict) -> str:
    street = _pick(record, "address", "street")
    city = _pick(record, "city")
    state = _pick(record, "state")
    zip_code = _pick(record, "zipCode", "zip_code", "zip")
    region = " ".join(p for p in (state, zip_code) if p)
    return ", ".join(p for p in (street, city, region) if p)


def best_match(name: str, customers: list[dict]) -> dict | None:
    """Closest customer by name similarity, or None below the threshold."""
    target = name.lower().strip()
    best, best_score = None, 0.0
    for record in customers:
        candidate = customer_name(record).lower()
        if not candidate:
            continue
        score = SequenceMatcher(None, target, candidate).ratio()
        if score > best_score:
            best, best_score = record, score
    if best is None or best_score < MATCH_THRESHOLD:
        return None
    logger.debug("best customer match for %r: %r (%.2f)", name, customer_name(best), best_score)
    return best


def parse_business_config(data: dict) -> dict:
    """Normalize backend business config, filling gaps with built-in defaults."""
    config = dict(DEFAULT_BUSINESS_CONFIG)
    for field_name, keys in _CONFIG_KEYS.items():
        value = _pick(data, *keys, default=None)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            config[field_name] = value

    # Rate tables carry one entry flagged as the default
    rates = data.get("hourlyRates") or data.get("hourly_rates") or []
    for rate in rates:
        if isinstance(rate, dict) and rate.get("isDefault") and isinstance(rate.get("rate"), (int, float)):
            config["hourly_rate"] = rate["rate"]
            break
    return config


class ToolBridge:
    def __init__(self, client: PinpointClient):
        self.client = client

    async def lookup_customer(self, name: str, draft_id: str | None) -> ToolResult:
        name = (name or "").strip()
        if not name:
            return ToolResult({"found": False, "message": "No customer name given."})

        customers = await self.client.search_customers(name)
        match = best_match(name, customers)
        if match is None:
            logger.info("no existing customer for %r", name)
            return ToolResult({
                "found": False,
                "message": f"No existing customer named {name}. Treat them as a new customer.",
            })

        customer = {
            "name": customer_name(match),
            "address": customer_address(match),
            "phone": _pick(match, "phone"),
            "email": _pick(match, "email"),
        }
        payload = {
            "found": True,
            "message": (
                f"Found existing customer {customer['name']}. "
                "Their contact details are on file; do not ask for them again."
            ),
            "customer": customer,
        }
        if draft_id is None:
            return ToolResult(payload)

        updates = {"customer_name": customer["name"]}
        if customer["address"]:
            updates["property_address"] = customer["address"]
        if customer["phone"]:
            updates["phone"] = customer["phone"]
        if customer["email"]:
            updates["email"] = customer["email"]
        return ToolResult(payload, DraftCommand(draft_id, updates=updates, source="lookup_customer"))

    async def get_business_config(self, draft_id: str | None) -> ToolResult:
        data = await self.client.get_business_config()
        if not data:
            logger.info("business config unavailable, using built-in defaults")
        config = parse_business_config(data or {})
        payload = dict(config)
        payload["message"] = (
            f"Default rate is ${config['hourly_rate']}/hr at {config['hours_per_day']} hours a day. "
            "Do not ask for the hourly rate unless the painter wants a different one."
        )
        if draft_id is None:
            return ToolResult(payload)
        return ToolResult(payload, DraftCommand(draft_id, defaults=config, source="get_business_config"))


async def handle_tool_call(manager: DraftManager, bridge: ToolBridge, name: str, args: dict | None) -> str:
    """Run a tool against the active draft and return its JSON payload."""
    args = args or {}
    active = manager.active()
    draft_id = active.id if active else None

    if name == "lookup_customer":
        result = await bridge.lookup_customer(args.get("name", ""), draft_id)
    elif name == "get_business_config":
        result = await bridge.get_business_config(draft_id)
    else:
        logger.warning("unknown tool %s", name)
        return json.dumps({"error": f"Unknown tool: {name}"})

    if result.command is not None:
        manager.apply(result.command)
    logger.info("tool %s -> %s", name, result.payload)
    return json.dumps(result.payload)
