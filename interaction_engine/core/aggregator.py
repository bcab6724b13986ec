"""
Drug Interaction Engine - Result Aggregator / Exporter
Merges curated and external matches and renders JSON, CSV and TSV views.
"""
import csv
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from interaction_engine.core.models import CuratedInteraction, ExternalInteraction, InteractionMatch
from interaction_engine.core.severity import normalize_severity, risk_level

logger = logging.getLogger(__name__)

TABULAR_COLUMNS = [
    "drugA", "drugA_rxcui", "drugB", "drugB_rxcui",
    "severity", "riskLevel",
    "mechanism", "effect", "management", "evidence_level", "sources",
]

EXPORT_FORMATS = {
    "csv": "text/csv; charset=utf-8",
    "tsv": "text/tab-separated-values; charset=utf-8",
}

AnyMatch = Union[InteractionMatch, ExternalInteraction]
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_NEWLINES = re.compile(r"[\r\n]+")
_TABS_AND_NEWLINES = re.compile(r"[\t\r\n]+")


def _dedupe_key(match: AnyMatch) -> Optional[Tuple[frozenset, str]]:
    first, second = match.identifiers
    if not first or not second:
        return None
    return frozenset((first, second)), match.source


class ResultAggregator:
    """Combines curated matches with external service results"""

    def combine(
        self,
        curated: Sequence[InteractionMatch],
        external: Sequence[ExternalInteraction] = (),
    ) -> List[AnyMatch]:
        """
        Curated matches first, then external ones.

        Items sharing an unordered identifier pair and a source are collapsed
        to the first occurrence; items missing either identifier are always
        kept. Curated matches carry one source tag per record, so distinct
        curated or overlay records never collapse into each other.
        """
        seen = set()
        combined: List[AnyMatch] = []
        for match in list(curated) + list(external):
            key = _dedupe_key(match)
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)
            combined.append(match)
        return combined

    def check_response(
        self,
        drugs: Sequence[Any],
        curated: Sequence[InteractionMatch],
        external: Sequence[ExternalInteraction] = (),
    ) -> Dict[str, Any]:
        combined = self.combine(curated, external)
        stored = [m.to_dict() for m in combined if isinstance(m, InteractionMatch)]
        remote = [m.to_dict() for m in combined if isinstance(m, ExternalInteraction)]
        sources = []
        if stored:
            sources.append("curated")
        for match in combined:
            if isinstance(match, ExternalInteraction) and match.source not in sources:
                sources.append(match.source)
        return {
            "inputDrugs": [d.input for d in drugs],
            "foundDrugs": [d.to_dict() for d in drugs if d.identifier],
            "unresolvedDrugs": [d.name for d in drugs if not d.identifier],
            "interactionCount": len(combined),
            "sources": sources,
            "interactions": {"stored": stored, "external": remote},
        }


# ---------------------------------------------------------------------- views

def known_item(record: CuratedInteraction, identifiers: Sequence[Optional[str]]) -> Dict[str, Any]:
    """Verbose JSON for a curated record with the RXCUI of each pair member"""
    item = record.to_dict()
    item["drug_rxnorm"] = [
        {"name": name, "rxcui": rxcui}
        for name, rxcui in zip(record.drugs, identifiers)
    ]
    return item


def enriched_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Compact view of a verbose known item"""
    drug_a, drug_b = item["drug_rxnorm"]
    return {
        "drugA": drug_a,
        "drugB": drug_b,
        "severity": normalize_severity(item.get("severity")),
        "riskLevel": risk_level(item.get("severity")),
        "mechanism": item.get("mechanism", ""),
        "effect": item.get("effect", ""),
        "management": item.get("management", ""),
        "evidence_level": item.get("evidence_level", ""),
        "sources": item.get("sources", []),
    }


def _tabular_rows(items: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    rows = []
    for item in items:
        drug_a, drug_b = item["drug_rxnorm"]
        rows.append({
            "drugA": drug_a["name"],
            "drugA_rxcui": drug_a["rxcui"] or "",
            "drugB": drug_b["name"],
            "drugB_rxcui": drug_b["rxcui"] or "",
            "severity": normalize_severity(item.get("severity")),
            "riskLevel": risk_level(item.get("severity")),
            "mechanism": item.get("mechanism") or "",
            "effect": item.get("effect") or "",
            "management": item.get("management") or "",
            "evidence_level": item.get("evidence_level") or "",
            "sources": ";".join(item.get("sources") or []),
        })
    return rows


def to_frame(items: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Tabular rows, one per known item, in the fixed export column order"""
    return pd.DataFrame(_tabular_rows(items), columns=TABULAR_COLUMNS, dtype=object)


def to_csv(items: Iterable[Dict[str, Any]]) -> str:
    """Every field double-quoted; embedded quotes doubled, newlines flattened"""
    rows = [
        {k: _NEWLINES.sub(" ", str(v)) for k, v in row.items()}
        for row in _tabular_rows(items)
    ]
    frame = pd.DataFrame(rows, columns=TABULAR_COLUMNS, dtype=object)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def to_tsv(items: Iterable[Dict[str, Any]]) -> str:
    """Unquoted fields; tabs and newlines become spaces"""
    lines = ["\t".join(TABULAR_COLUMNS)]
    for row in to_frame(items).itertuples(index=False):
        lines.append("\t".join(_TABS_AND_NEWLINES.sub(" ", str(v)).strip() for v in row))
    return "\n".join(lines) + "\n"


def render_export(items: Sequence[Dict[str, Any]], fmt: str) -> str:
    if fmt == "tsv":
        return to_tsv(items)
    if fmt == "csv":
        return to_csv(items)
    raise ValueError(f"Unsupported export format: {fmt}")


def export_filename(filters: Dict[str, Optional[str]], fmt: str, now: Optional[datetime] = None) -> str:
    """curated-interactions_<filters or 'all'>_<YYYY-MM-DDTHH-MM-SS>.<fmt>"""
    parts = []
    for prefix, key in (("drug", "drug"), ("a", "drugA"), ("b", "drugB"), ("sev", "severity")):
        value = filters.get(key)
        if value:
            parts.append(f"{prefix}-{_UNSAFE_FILENAME_CHARS.sub('-', str(value))}")
    filter_part = "_".join(parts) or "all"
    timestamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    return f"curated-interactions_{filter_part}_{timestamp}.{fmt}"
