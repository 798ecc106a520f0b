"""
Tests for input parameter extraction.
"""
import pytest

from forecastxl.engine.models import InputParameters
from forecastxl.engine.parameters import (
    PARAMETER_RULES,
    ValueMode,
    WorkbookParameters,
    enrich_input_parameters,
    extract_input_parameters,
)


class TestExtractInputParameters:
    """Tests for the parameter area scan."""

    def test_model_sheet_parameters(self, sheet_factory, model_rows):
        sheet = sheet_factory(model_rows)
        params = extract_input_parameters(sheet, end_row=7, label_column=2)

        assert params.shares_completion == 1000000
        assert params.shares_year_end == 1200000
        assert params.tso_warrants_count == 50000
        assert params.tso_warrants_price == 12.5
        assert params.mip_share_pct == 0.05
        # Second value column preferred
        assert params.acquired_companies_multiple == 7

    def test_norwegian_labels(self, sheet_factory):
        sheet = sheet_factory([
            ["Antall ordinære aksjer ved closing", 900],
            ["Antall ordinære aksjer", 1000],
            ["Eksisterende warranter", 20, 3.5],
            ["MIP-andel", 0.08],
            ["Oppkjøp med aksjer", 0.3],
        ])
        params = extract_input_parameters(sheet, end_row=6, label_column=1)

        assert params.shares_completion == 900
        assert params.shares_year_end == 1000
        assert params.existing_warrants_count == 20
        assert params.existing_warrants_price == 3.5
        assert params.mip_share_pct == 0.08
        assert params.acquired_with_shares_pct == 0.3

    def test_tso_share_rows_excluded(self, sheet_factory):
        sheet = sheet_factory([["TSO warrants share of EqV", 0.1, 0.2]])
        params = extract_input_parameters(sheet, end_row=2, label_column=1)
        assert params.is_empty()

    def test_end_row_is_exclusive(self, sheet_factory):
        sheet = sheet_factory([["MIP share", 0.05], ["Number of ord shares", 10]])
        params = extract_input_parameters(sheet, end_row=2, label_column=1)
        assert params.mip_share_pct == 0.05
        assert params.shares_year_end is None

    def test_missing_values_leave_parameter_unset(self, sheet_factory):
        sheet = sheet_factory([["MIP share", "n/a"]])
        assert extract_input_parameters(sheet, end_row=2, label_column=1).mip_share_pct is None

    def test_rule_table_order(self):
        assert PARAMETER_RULES[0].targets == ("shares_completion",)
        assert PARAMETER_RULES[1].targets == ("shares_year_end",)
        modes = {rule.targets[0]: rule.mode for rule in PARAMETER_RULES}
        assert modes["tso_warrants_count"] == ValueMode.PAIR
        assert modes["acquired_companies_multiple"] == ValueMode.PREFER_SECOND


class TestEnrichInputParameters:
    """Tests for EV multiple and pref rate pick-up from model rows."""

    def test_ev_and_pref_picked_up(self, sheet_factory):
        sheet = sheet_factory([
            ["Revenue", 100],
            ["EV", 8.5],
            ["Pref", 0.08],
        ])
        params = enrich_input_parameters(sheet, 1, 3, label_column=1)

        assert params.ev_multiple == 8.5
        assert params.pref_growth_rate == 0.08

    def test_out_of_range_values_ignored(self, sheet_factory):
        sheet = sheet_factory([["EV", 850], ["Pref", 1.5]])
        params = enrich_input_parameters(sheet, 1, 2, label_column=1)

        assert params.ev_multiple is None
        assert params.pref_growth_rate is None

    def test_first_row_on_sheet_wins(self, sheet_factory):
        sheet = sheet_factory([["EV", 8.5], ["EV", 9.0]])
        params = enrich_input_parameters(sheet, 1, 2, label_column=1)
        assert params == InputParameters(ev_multiple=8.5)


class TestWorkbookParameters:
    """Tests for workbook-wide parameter accumulation."""

    def test_first_extraction_wins(self):
        acc = WorkbookParameters()
        acc.offer("A", InputParameters(mip_share_pct=0.05))
        acc.offer("B", InputParameters(mip_share_pct=0.05, shares_year_end=10))

        assert acc.params == InputParameters(mip_share_pct=0.05)
        assert acc.warnings == []

    def test_conflict_warns_and_keeps_first(self):
        acc = WorkbookParameters()
        acc.offer("A", InputParameters(mip_share_pct=0.05))
        acc.offer("B", InputParameters(mip_share_pct=0.1))

        assert acc.params.mip_share_pct == 0.05
        assert len(acc.warnings) == 1
        assert "mip_share_pct" in acc.warnings[0]
        assert '"A"' in acc.warnings[0]

    def test_empty_offer_ignored(self):
        acc = WorkbookParameters()
        acc.offer("A", InputParameters())
        acc.offer("B", InputParameters(shares_year_end=10))
        assert acc.params.shares_year_end == 10

    def test_enrichment_fills_gaps_only(self):
        acc = WorkbookParameters()
        acc.offer("A", InputParameters(ev_multiple=6.0))
        acc.enrich("A", InputParameters(ev_multiple=6.0, pref_growth_rate=0.08))

        assert acc.params.ev_multiple == 6.0
        assert acc.params.pref_growth_rate == 0.08
        assert acc.warnings == []

    def test_enrichment_before_extraction(self):
        acc = WorkbookParameters()
        acc.enrich("A", InputParameters(ev_multiple=8.0))
        acc.offer("B", InputParameters(mip_share_pct=0.05))

        assert acc.params == InputParameters(mip_share_pct=0.05, ev_multiple=8.0)

    def test_enrichment_conflict_warns_and_keeps_first(self):
        acc = WorkbookParameters()
        acc.enrich("A", InputParameters(ev_multiple=8.0))
        acc.enrich("B", InputParameters(ev_multiple=12.0, pref_growth_rate=0.08))

        assert acc.params == InputParameters(ev_multiple=8.0, pref_growth_rate=0.08)
        assert len(acc.warnings) == 1
        assert "ev_multiple" in acc.warnings[0]
        assert '"B"' in acc.warnings[0]
