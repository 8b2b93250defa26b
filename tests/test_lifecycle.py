import pytest

from pinpoint.draft import AddOn, PaintItem
from pinpoint.lifecycle import DraftCommand, DraftNotFoundError, NoActiveDraftError


class TestCreateAndActive:
    def test_create_sets_active(self, manager):
        draft = manager.create()
        assert manager.active().id == draft.id
        assert draft.id.startswith("vd-")

    def test_timestamps_come_from_clock(self, manager, clock):
        draft = manager.create()
        assert draft.created_at == draft.updated_at
        clock.advance(60)
        updated = manager.update_fields(draft.id, {"customer_name": "John Smith"})
        assert updated.updated_at > draft.updated_at
        assert updated.created_at == draft.created_at

    def test_resume_or_create_reuses_active(self, manager):
        draft = manager.create()
        assert manager.resume_or_create().id == draft.id

    def test_resume_or_create_without_active(self, manager):
        assert manager.active() is None
        draft = manager.resume_or_create()
        assert manager.active().id == draft.id

    def test_set_active_unknown(self, manager):
        with pytest.raises(DraftNotFoundError):
            manager.set_active("vd-nope")

    def test_require_active_without_draft(self, manager):
        with pytest.raises(NoActiveDraftError):
            manager.require_active()


class TestUpdateFields:
    def test_recalculates_on_update(self, manager):
        draft = manager.create()
        updated = manager.update_fields(draft.id, {
            "number_of_painters": 2, "estimated_days": 3, "hourly_rate": 65,
        })
        assert updated.labor_cost == 3120
        assert updated.estimate_total == 3120
        assert manager.get(draft.id).labor_cost == 3120

    def test_none_targets_active_draft(self, manager):
        draft = manager.create()
        manager.update_fields(None, {"customer_name": "Maria Lopez"})
        assert manager.get(draft.id).customer_name == "Maria Lopez"

    def test_no_active_draft_raises(self, manager):
        with pytest.raises(NoActiveDraftError):
            manager.update_fields(None, {"customer_name": "Maria Lopez"})

    def test_unknown_draft_raises(self, manager):
        with pytest.raises(DraftNotFoundError):
            manager.update_fields("vd-nope", {"customer_name": "Maria Lopez"})

    def test_derived_and_protected_fields_ignored(self, manager):
        draft = manager.create()
        updated = manager.update_fields(draft.id, {
            "estimate_total": 99999, "id": "vd-hijack", "conversation": [],
        })
        assert updated.estimate_total == 0
        assert updated.id == draft.id

    def test_invalid_numbers_rejected(self, manager):
        draft = manager.create()
        updated = manager.update_fields(draft.id, {
            "number_of_painters": -2, "hourly_rate": "sixty", "estimated_days": float("nan"),
        })
        assert updated.number_of_painters is None
        assert updated.hourly_rate is None
        assert updated.estimated_days is None

    def test_invalid_project_type_rejected(self, manager):
        draft = manager.create()
        assert manager.update_fields(draft.id, {"project_type": "roofing"}).project_type is None

    def test_list_records_coerced_from_dicts(self, manager):
        draft = manager.create()
        updated = manager.update_fields(draft.id, {"paint_items": [
            {"area": "body", "product": "duration", "gallons": 10, "price_per_gallon": 75},
        ]})
        assert isinstance(updated.paint_items[0], PaintItem)
        assert updated.material_subtotal == 750


class TestApplyCommand:
    def test_updates_overwrite(self, manager):
        draft = manager.create()
        manager.update_fields(draft.id, {"customer_name": "jon smith"})
        manager.apply(DraftCommand(draft.id, updates={"customer_name": "Jon Smith"}))
        assert manager.get(draft.id).customer_name == "Jon Smith"

    def test_defaults_only_fill_unset(self, manager):
        draft = manager.create()
        manager.update_fields(draft.id, {"hourly_rate": 80})
        manager.apply(DraftCommand(draft.id, defaults={"hourly_rate": 65, "hours_per_day": 10}))
        fetched = manager.get(draft.id)
        assert fetched.hourly_rate == 80
        assert fetched.hours_per_day == 8

    def test_defaults_fill_missing_rate(self, manager):
        draft = manager.create()
        manager.apply(DraftCommand(draft.id, defaults={"hourly_rate": 65}))
        assert manager.get(draft.id).hourly_rate == 65


class TestConversation:
    def test_append_entry(self, manager, clock):
        draft = manager.create()
        manager.append_entry(draft.id, "agent", "Who's the customer?")
        entry = manager.get(draft.id).conversation[0]
        assert entry.role == "agent"
        assert entry.timestamp == clock.now

    def test_append_rejects_unknown_role(self, manager):
        draft = manager.create()
        with pytest.raises(ValueError):
            manager.append_entry(draft.id, "system", "hello")

    def test_ingest_turn_extracts(self, manager):
        manager.create()
        update = manager.ingest_turn("user", "for John Smith, exterior, 2 guys, 3 days, $65 an hour")
        assert update["customer_name"] == "John Smith"
        draft = manager.active()
        assert draft.labor_cost == 3120
        assert len(draft.conversation) == 1

    def test_ingest_turn_accumulates_across_turns(self, manager):
        manager.create()
        manager.ingest_turn("user", "it's for Maria Lopez")
        manager.ingest_turn("agent", "Interior or exterior?")
        manager.ingest_turn("user", "interior, the kitchen")
        draft = manager.active()
        assert draft.customer_name == "Maria Lopez"
        assert draft.project_type == "interior"
        assert draft.areas == ["kitchen"]

    def test_repeat_turn_changes_nothing(self, manager):
        manager.create()
        manager.ingest_turn("user", "2 guys")
        assert manager.ingest_turn("user", "2 guys") == {}

    def test_ingest_without_active_draft(self, manager):
        with pytest.raises(NoActiveDraftError):
            manager.ingest_turn("user", "hello")


class TestTranscriptEvidence:
    def test_lookup_result_survives_later_turns(self, manager):
        draft = manager.create()
        manager.ingest_turn("user", "It's for Jon Smith at 12 Oak Street")
        manager.apply(DraftCommand(draft.id, updates={
            "customer_name": "Jonathan Smith",
            "property_address": "12 Oak Street, Austin, TX",
        }, source="lookup_customer"))

        assert manager.ingest_turn("user", "Exterior job") == {"project_type": "exterior"}
        fetched = manager.get(draft.id)
        assert fetched.customer_name == "Jonathan Smith"
        assert fetched.property_address == "12 Oak Street, Austin, TX"

    def test_direct_update_survives_final_pass(self, manager):
        draft = manager.create()
        manager.ingest_turn("user", "2 guys")
        manager.update_fields(draft.id, {"number_of_painters": 3})
        assert manager.finish_session(draft.id).number_of_painters == 3

    def test_spoken_correction_still_applies(self, manager):
        draft = manager.create()
        manager.ingest_turn("user", "2 guys")
        manager.update_fields(draft.id, {"number_of_painters": 3})
        manager.ingest_turn("user", "actually 4 guys")
        assert manager.get(draft.id).number_of_painters == 4

    def test_evidence_recorded_on_draft(self, manager):
        draft = manager.create()
        manager.ingest_turn("user", "$65 an hour")
        assert manager.get(draft.id).extracted == {"hourly_rate": 65}

    def test_evidence_not_writable_from_outside(self, manager):
        draft = manager.create()
        manager.update_fields(draft.id, {"extracted": {"hourly_rate": 1}})
        assert manager.get(draft.id).extracted == {}

    def test_add_on_bills_corrected_rate(self, manager):
        draft = manager.create()
        manager.ingest_turn("user", "rate is 60. pressure washing 4 hours")
        manager.ingest_turn("user", "actually make it $70 an hour")
        fetched = manager.get(draft.id)
        assert fetched.hourly_rate == 70
        assert fetched.add_ons == [AddOn(description="Pressure washing", hours=4)]
        assert fetched.estimate_total == 280


class TestFinishSession:
    def test_complete_when_ready(self, manager):
        manager.create()
        manager.append_entry(None, "user", "for John Smith, exterior, 2 guys, 3 days, $65 an hour")
        draft = manager.finish_session()
        assert draft.customer_name == "John Smith"
        assert draft.is_complete

    def test_incomplete_stays_open(self, manager):
        manager.create()
        manager.append_entry(None, "user", "for John Smith")
        assert not manager.finish_session().is_complete

    def test_explicit_finish_completes(self, manager):
        manager.create()
        assert manager.finish_session(explicit=True).is_complete


class TestListingAndDeletion:
    def test_incomplete_drafts(self, manager, clock):
        done = manager.create()
        manager.mark_complete(done.id)
        clock.advance(1)
        linked = manager.create()
        manager.link_to_estimate(linked.id, "est-1")
        clock.advance(1)
        open_draft = manager.create()
        assert [d.id for d in manager.incomplete_drafts()] == [open_draft.id]
        assert len(manager.list_drafts()) == 3

    def test_link_to_estimate(self, manager):
        draft = manager.create()
        assert manager.link_to_estimate(draft.id, "est-42").estimate_id == "est-42"

    def test_delete_active_clears_pointer(self, manager):
        draft = manager.create()
        manager.delete(draft.id)
        assert manager.active() is None
        assert manager.get(draft.id) is None

    def test_delete_other_keeps_pointer(self, manager):
        first = manager.create()
        second = manager.create()
        manager.delete(first.id)
        assert manager.active().id == second.id

    def test_delete_unknown(self, manager):
        with pytest.raises(DraftNotFoundError):
            manager.delete("vd-nope")
