"""
Drug Interaction Engine - Result Aggregator & Export Tests
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import csv
import io
from datetime import datetime

import pytest

from interaction_engine.core.aggregator import (
    TABULAR_COLUMNS, ResultAggregator, enriched_item, export_filename, known_item,
    render_export, to_csv, to_frame, to_tsv,
)
from interaction_engine.core.models import (
    CuratedInteraction, ExternalInteraction, InteractionMatch, ResolvedDrug,
)


@pytest.fixture
def items():
    first = CuratedInteraction.from_dict({
        "drugs": ["warfarin", "amiodarone"],
        "severity": "high",
        "mechanism": "Inhibits CYP2C9, CYP3A4",
        "effect": 'Bleeding; "watch INR"',
        "management": "Reduce dose\nMonitor weekly",
        "evidence_level": "A",
        "sources": ["FDA", "Clinical studies"],
    })
    second = CuratedInteraction.from_dict({
        "drugs": ["digoxin", "amiodarone"],
        "severity": "moderate",
        "mechanism": "P-gp\tinhibition",
    })
    return [known_item(first, ["11289", "703"]), known_item(second, [None, "703"])]


class TestCombine:
    """Merge and dedupe"""

    def test_curated_before_external(self):
        record = CuratedInteraction.from_dict({"drugs": ["warfarin", "aspirin"]})
        curated = InteractionMatch(
            record, ResolvedDrug("warfarin", "11289"), ResolvedDrug("aspirin", "1191"), "curated:dataset:0",
        )
        external = ExternalInteraction("1191", "aspirin", "11289", "warfarin", "high", "", "DrugBank")
        combined = ResultAggregator().combine([curated], [external])
        assert combined == [curated, external]

    def test_same_pair_and_source_collapses_across_order(self):
        a = ExternalInteraction("1", "x", "2", "y", "high", "", "DrugBank")
        b = ExternalInteraction("2", "y", "1", "x", "high", "", "DrugBank")
        c = ExternalInteraction("1", "x", "2", "y", "high", "", "ONCHigh")
        assert ResultAggregator().combine([], [a, b, c]) == [a, c]

    def test_missing_identifiers_never_deduped(self):
        a = ExternalInteraction(None, "x", "2", "y", "high", "", "DrugBank")
        b = ExternalInteraction(None, "x", "2", "y", "high", "", "DrugBank")
        assert len(ResultAggregator().combine([], [a, b])) == 2

    def test_curated_duplicates_kept(self):
        record = CuratedInteraction.from_dict({"drugs": ["warfarin", "aspirin"]})
        drugs = (ResolvedDrug("warfarin", "11289"), ResolvedDrug("aspirin", "1191"))
        matches = [
            InteractionMatch(record, *drugs, source="curated:dataset:0"),
            InteractionMatch(record, *drugs, source="curated:overlay:0"),
            InteractionMatch(record, *drugs, source="curated:overlay:1"),
        ]
        assert len(ResultAggregator().combine(matches)) == 3

    def test_check_response(self):
        record = CuratedInteraction.from_dict({"drugs": ["warfarin", "amiodarone"], "severity": "high"})
        drugs = [ResolvedDrug("Warfarin 5mg", None, "Warfarin 5mg"), ResolvedDrug("Amiodarone", "703", "Amiodarone")]
        match = InteractionMatch(record, drugs[0], drugs[1], "curated:dataset:0")
        result = ResultAggregator().check_response(drugs, [match])
        assert result["inputDrugs"] == ["Warfarin 5mg", "Amiodarone"]
        assert result["foundDrugs"] == [{"name": "Amiodarone", "rxcui": "703"}]
        assert result["unresolvedDrugs"] == ["Warfarin 5mg"]
        assert result["interactionCount"] == 1
        assert result["sources"] == ["curated"]
        stored = result["interactions"]["stored"][0]
        assert stored["severity"] == "major"
        assert stored["riskLevel"] == "HIGH"
        assert result["interactions"]["external"] == []


class TestViews:
    """JSON views"""

    def test_known_item(self, items):
        assert items[0]["drug_rxnorm"] == [
            {"name": "warfarin", "rxcui": "11289"},
            {"name": "amiodarone", "rxcui": "703"},
        ]
        assert items[0]["severity"] == "major"

    def test_enriched_item(self, items):
        compact = enriched_item(items[1])
        assert compact["drugA"] == {"name": "digoxin", "rxcui": None}
        assert compact["riskLevel"] == "MODERATE"
        assert "drugs" not in compact


class TestTabularExport:
    """CSV / TSV rendering"""

    def test_frame_columns(self, items):
        frame = to_frame(items)
        assert list(frame.columns) == TABULAR_COLUMNS
        assert frame.iloc[0]["sources"] == "FDA;Clinical studies"
        assert frame.iloc[1]["drugA_rxcui"] == ""

    def test_csv_two_matches(self, items):
        text = to_csv(items)
        lines = text.rstrip("\n").split("\n")
        assert len(lines) == 3
        assert text.endswith("\n")
        for line in lines:
            assert line.startswith('"') and line.endswith('"')
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == TABULAR_COLUMNS
        assert rows[1][6] == "Inhibits CYP2C9, CYP3A4"
        assert rows[1][7] == 'Bleeding; "watch INR"'
        assert rows[1][8] == "Reduce dose Monitor weekly"
        assert rows[1][4] == "major" and rows[1][5] == "HIGH"

    def test_csv_doubles_embedded_quotes(self, items):
        assert '"Bleeding; ""watch INR"""' in to_csv(items)

    def test_csv_header_only(self):
        assert to_csv([]) == ",".join(f'"{c}"' for c in TABULAR_COLUMNS) + "\n"

    def test_tsv(self, items):
        text = to_tsv(items)
        lines = text.rstrip("\n").split("\n")
        assert len(lines) == 3
        assert lines[0].split("\t") == TABULAR_COLUMNS
        first = lines[1].split("\t")
        assert len(first) == len(TABULAR_COLUMNS)
        assert first[8] == "Reduce dose Monitor weekly"
        second = lines[2].split("\t")
        assert second[6] == "P-gp inhibition"
        assert second[1] == ""

    def test_render_export_rejects_unknown_format(self, items):
        with pytest.raises(ValueError):
            render_export(items, "xlsx")


class TestExportFilename:
    """curated-interactions_<filters>_<timestamp>.<ext>"""

    NOW = datetime(2024, 1, 2, 3, 4, 5, 678000)

    def test_no_filters(self):
        name = export_filename({"drug": None, "drugA": None, "drugB": None, "severity": None}, "csv", self.NOW)
        assert name == "curated-interactions_all_2024-01-02T03-04-05.csv"

    def test_filters_in_fixed_order(self):
        filters = {"severity": "major", "drugB": "aspirin", "drugA": "warfarin", "drug": "war"}
        name = export_filename(filters, "tsv", self.NOW)
        assert name == "curated-interactions_drug-war_a-warfarin_b-aspirin_sev-major_2024-01-02T03-04-05.tsv"

    def test_stable_within_a_second(self):
        later = self.NOW.replace(microsecond=999999)
        assert export_filename({}, "csv", self.NOW) == export_filename({}, "csv", later)

    def test_unsafe_characters_replaced(self):
        name = export_filename({"drug": 'a "b"/c'}, "csv", self.NOW)
        assert name == "curated-interactions_drug-a-b-c_2024-01-02T03-04-05.csv"
