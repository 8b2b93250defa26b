from pinpoint.draft import AddOn, Draft, PaintItem
from pinpoint.pricing import add_on_cost, apply_totals, labor_cost, material_subtotal, recalculate


def _crew_draft(**overrides) -> Draft:
    fields = dict(number_of_painters=2, estimated_days=3, hourly_rate=65)
    fields.update(overrides)
    return Draft(**fields)


class TestLaborCost:
    def test_painters_days_hours_rate(self):
        assert labor_cost(_crew_draft()) == 3120

    def test_custom_hours_per_day(self):
        assert labor_cost(_crew_draft(hours_per_day=10)) == 3900

    def test_unset_factor_leaves_labor_unknown(self):
        assert labor_cost(_crew_draft(hourly_rate=None)) is None
        assert labor_cost(_crew_draft(number_of_painters=None)) is None

    def test_zero_hours_per_day_falls_back_to_default(self):
        assert labor_cost(_crew_draft(hours_per_day=0)) == 3120


class TestMaterials:
    def test_subtotal_sums_items(self):
        draft = Draft(paint_items=[
            PaintItem(area="body", product="duration", gallons=10, price_per_gallon=75),
            PaintItem(area="trim", product="emerald", gallons=2, price_per_gallon=88),
        ])
        assert material_subtotal(draft) == 926


class TestAddOns:
    def test_uses_draft_rate_when_add_on_has_none(self):
        draft = _crew_draft(add_ons=[AddOn(description="Pressure washing", hours=4)])
        assert add_on_cost(draft) == 260

    def test_own_rate_wins(self):
        draft = _crew_draft(add_ons=[AddOn(description="Carpentry", hours=2, hourly_rate=90)])
        assert add_on_cost(draft) == 180

    def test_missing_hours_contribute_nothing(self):
        draft = _crew_draft(add_ons=[AddOn(description="Wallpaper removal")])
        assert add_on_cost(draft) == 0


class TestTotals:
    def test_materials_markup_and_tax(self):
        draft = Draft(paint_items=[
            PaintItem(area="body", product="duration", gallons=10, price_per_gallon=75),
        ])
        totals = recalculate(draft)
        assert totals.labor_cost is None
        assert totals.material_subtotal == 750
        assert totals.markup_amount == 150
        assert totals.tax_amount == 72
        assert totals.estimate_total == 972

    def test_labor_is_not_marked_up_or_taxed(self):
        assert recalculate(_crew_draft()).estimate_total == 3120

    def test_rounded_to_cents(self):
        draft = Draft(paint_items=[
            PaintItem(area="trim", product="x", gallons=1, price_per_gallon=33.33),
        ], tax_rate=7.25)
        assert recalculate(draft).estimate_total == round(recalculate(draft).estimate_total, 2)

    def test_apply_totals_writes_derived_fields(self):
        draft = _crew_draft(paint_items=[
            PaintItem(area="body", product="duration", gallons=10, price_per_gallon=75),
        ])
        apply_totals(draft)
        assert draft.labor_cost == 3120
        assert draft.material_subtotal == 750
        assert draft.estimate_total == 4092

    def test_apply_totals_is_stable(self):
        draft = apply_totals(_crew_draft())
        before = draft.estimate_total
        assert apply_totals(draft).estimate_total == before
