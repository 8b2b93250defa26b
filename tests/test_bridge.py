import json

import pytest
from unittest.mock import AsyncMock

from pinpoint.bridge import ToolBridge, best_match, customer_address, handle_tool_call, parse_business_config
from pinpoint.lifecycle import DraftCommand

SMITH = {
    "id": "c1", "firstName": "John", "lastName": "Smith", "phone": "512-555-1234",
    "email": "john@example.com", "address": "123 Main Street", "city": "Austin",
    "state": "TX", "zipCode": "78701",
}


@pytest.fixture
def client():
    client = AsyncMock()
    client.search_customers.return_value = [SMITH]
    client.get_business_config.return_value = {
        "defaultMarkupPercent": 25, "defaultTaxRate": 7, "defaultHoursPerDay": 9,
        "hourlyRates": [
            {"label": "Standard", "rate": 70, "isDefault": True},
            {"label": "Premium", "rate": 85, "isDefault": False},
        ],
    }
    return client


@pytest.fixture
def bridge(client):
    return ToolBridge(client)


class TestMatching:
    def test_close_spelling_matches(self):
        assert best_match("Jon Smith", [SMITH]) is SMITH

    def test_unrelated_name_does_not_match(self):
        assert best_match("Maria Lopez", [SMITH]) is None

    def test_best_of_several(self):
        smyth = dict(SMITH, firstName="Jane", lastName="Smyth")
        assert best_match("John Smith", [smyth, SMITH]) is SMITH

    def test_address_assembled(self):
        assert customer_address(SMITH) == "123 Main Street, Austin, TX 78701"


class TestLookupCustomer:
    @pytest.mark.asyncio
    async def test_found_returns_command(self, bridge):
        result = await bridge.lookup_customer("john smith", "vd-1")
        assert result.payload["found"] is True
        assert result.payload["customer"]["phone"] == "512-555-1234"
        assert result.command == DraftCommand(
            "vd-1",
            updates={
                "customer_name": "John Smith",
                "property_address": "123 Main Street, Austin, TX 78701",
                "phone": "512-555-1234",
                "email": "john@example.com",
            },
            source="lookup_customer",
        )

    @pytest.mark.asyncio
    async def test_miss_has_no_command(self, bridge, client):
        client.search_customers.return_value = []
        result = await bridge.lookup_customer("Maria Lopez", "vd-1")
        assert result.payload["found"] is False
        assert result.command is None

    @pytest.mark.asyncio
    async def test_empty_name_skips_lookup(self, bridge, client):
        result = await bridge.lookup_customer("  ", "vd-1")
        assert result.payload["found"] is False
        client.search_customers.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_draft_no_command(self, bridge):
        result = await bridge.lookup_customer("John Smith", None)
        assert result.payload["found"] is True
        assert result.command is None


class TestBusinessConfig:
    def test_parse_backend_shape(self):
        config = parse_business_config({
            "defaultMarkupPercent": 25, "defaultTaxRate": 7,
            "hourlyRates": [{"rate": 70, "isDefault": True}],
        })
        assert config == {"hourly_rate": 70, "markup_percent": 25, "tax_rate": 7, "hours_per_day": 8}

    def test_parse_empty_uses_defaults(self):
        assert parse_business_config({}) == {
            "hourly_rate": 65, "markup_percent": 20, "tax_rate": 8, "hours_per_day": 8,
        }

    @pytest.mark.asyncio
    async def test_defaults_command(self, bridge):
        result = await bridge.get_business_config("vd-1")
        assert result.payload["hourly_rate"] == 70
        assert "Do not ask for the hourly rate" in result.payload["message"]
        assert result.command.defaults == {
            "hourly_rate": 70, "markup_percent": 25, "tax_rate": 7, "hours_per_day": 9,
        }
        assert result.command.updates == {}

    @pytest.mark.asyncio
    async def test_backend_failure_uses_builtin_defaults(self, bridge, client):
        client.get_business_config.return_value = {}
        result = await bridge.get_business_config("vd-1")
        assert result.payload["hourly_rate"] == 65
        assert result.payload["markup_percent"] == 20


class TestHandleToolCall:
    @pytest.mark.asyncio
    async def test_lookup_fills_active_draft(self, manager, bridge):
        draft = manager.create()
        payload = json.loads(await handle_tool_call(manager, bridge, "lookup_customer", {"name": "John Smith"}))
        assert payload["found"] is True
        fetched = manager.get(draft.id)
        assert fetched.customer_name == "John Smith"
        assert fetched.phone == "512-555-1234"

    @pytest.mark.asyncio
    async def test_lookup_not_undone_by_next_turn(self, manager, bridge):
        draft = manager.create()
        manager.ingest_turn("user", "It's for Jon Smith at 12 Main Street")
        await handle_tool_call(manager, bridge, "lookup_customer", {"name": "Jon Smith"})
        manager.ingest_turn("user", "Exterior job")
        fetched = manager.get(draft.id)
        assert fetched.customer_name == "John Smith"
        assert fetched.property_address == "123 Main Street, Austin, TX 78701"
        assert fetched.project_type == "exterior"

    @pytest.mark.asyncio
    async def test_miss_leaves_draft_untouched(self, manager, bridge, client):
        client.search_customers.return_value = []
        draft = manager.create()
        manager.update_fields(draft.id, {"customer_name": "Maria Lopez"})
        before = manager.get(draft.id)
        payload = json.loads(await handle_tool_call(manager, bridge, "lookup_customer", {"name": "Maria Lopez"}))
        assert payload["found"] is False
        after = manager.get(draft.id)
        assert after.customer_name == "Maria Lopez"
        assert after.phone is None
        assert after.updated_at == before.updated_at

    @pytest.mark.asyncio
    async def test_business_config_fills_only_unset_rate(self, manager, bridge):
        draft = manager.create()
        manager.update_fields(draft.id, {"hourly_rate": 80})
        await handle_tool_call(manager, bridge, "get_business_config", {})
        assert manager.get(draft.id).hourly_rate == 80

    @pytest.mark.asyncio
    async def test_business_config_fills_missing_rate(self, manager, bridge):
        draft = manager.create()
        await handle_tool_call(manager, bridge, "get_business_config", None)
        assert manager.get(draft.id).hourly_rate == 70

    @pytest.mark.asyncio
    async def test_no_active_draft_still_answers(self, manager, bridge):
        payload = json.loads(await handle_tool_call(manager, bridge, "get_business_config", {}))
        assert payload["hourly_rate"] == 70
        assert manager.list_drafts() == []

    @pytest.mark.asyncio
    async def test_unknown_tool(self, manager, bridge):
        payload = json.loads(await handle_tool_call(manager, bridge, "book_painter", {}))
        assert payload == {"error": "Unknown tool: book_painter"}
