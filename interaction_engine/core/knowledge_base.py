"""
Drug Interaction Engine - Curated Knowledge Base
Static interaction dataset, runtime overlay and pharmacogenomic guidance.
"""
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from interaction_engine.core.curated_data import (
    KNOWN_INTERACTIONS,
    PHARMACOGENOMIC_GUIDELINES,
    STATIC_IDENTIFIERS,
)
from interaction_engine.core.models import CuratedInteraction, PharmacogenomicGuideline
from interaction_engine.core.severity import SeverityLabel, normalize_severity, severity_label, severity_rank

logger = logging.getLogger(__name__)


def _build_dataset() -> Tuple[CuratedInteraction, ...]:
    records = []
    for rule in KNOWN_INTERACTIONS:
        drug_a, drug_b, severity, mechanism, effect, management, evidence, sources, rxcuis = rule
        records.append(CuratedInteraction.from_dict({
            "drugs": [drug_a, drug_b],
            "severity": severity,
            "mechanism": mechanism,
            "effect": effect,
            "management": management,
            "evidence_level": evidence,
            "sources": list(sources),
            "rxcui": list(rxcuis) if rxcuis else None,
        }))
    return tuple(records)


def _build_guidelines() -> Tuple[PharmacogenomicGuideline, ...]:
    return tuple(
        PharmacogenomicGuideline(
            gene=gene,
            gene_name=gene_name,
            drug=drug,
            phenotype=phenotype,
            recommendation=recommendation,
            search_terms=tuple(search_terms),
            implications=implications,
            dosage_adjustment=dosage,
            evidence_level="A",
            sources=("CPIC", "FDA"),
        )
        for gene, gene_name, drug, search_terms, phenotype, recommendation, implications, dosage
        in PHARMACOGENOMIC_GUIDELINES
    )


CURATED_DATASET: Tuple[CuratedInteraction, ...] = _build_dataset()
GUIDELINES: Tuple[PharmacogenomicGuideline, ...] = _build_guidelines()


class CuratedOverlay:
    """Runtime-added interaction records; empty at start, not persisted"""

    def __init__(self):
        self._records: List[CuratedInteraction] = []

    def append(self, record: Union[CuratedInteraction, Dict[str, Any]]) -> CuratedInteraction:
        # from_dict raises InvalidOverlayRecord before anything is stored
        if not isinstance(record, CuratedInteraction):
            record = CuratedInteraction.from_dict(record)
        self._records.append(record)
        logger.info(f"Overlay record added: {record.drugs[0]} + {record.drugs[1]} ({len(self._records)} total)")
        return record

    def list(self) -> Tuple[CuratedInteraction, ...]:
        return tuple(self._records)

    def clear(self) -> int:
        removed = len(self._records)
        self._records = []
        logger.info(f"Overlay cleared: {removed} records removed")
        return removed

    def __len__(self) -> int:
        return len(self._records)


class KnowledgeBase:
    """
    Read-only view over the curated dataset plus the overlay.

    The dataset is fixed at import time; only the overlay changes at runtime,
    so `dataset_size` is constant for the life of the process.
    """

    def __init__(
        self,
        dataset: Optional[Tuple[CuratedInteraction, ...]] = None,
        overlay: Optional[CuratedOverlay] = None,
        identifiers: Optional[Dict[str, str]] = None,
        guidelines: Optional[Tuple[PharmacogenomicGuideline, ...]] = None,
    ):
        self.dataset = tuple(CURATED_DATASET if dataset is None else dataset)
        self.overlay = overlay if overlay is not None else CuratedOverlay()
        self.identifiers = dict(STATIC_IDENTIFIERS if identifiers is None else identifiers)
        self.guidelines = tuple(GUIDELINES if guidelines is None else guidelines)
        logger.info(
            f"Knowledge base initialized: {len(self.dataset)} curated interactions, "
            f"{len(self.guidelines)} pharmacogenomic guidelines"
        )

    @property
    def dataset_size(self) -> int:
        return len(self.dataset)

    def list_all(self) -> Tuple[CuratedInteraction, ...]:
        """Dataset records followed by overlay records"""
        return self.dataset + self.overlay.list()

    def tagged_records(self) -> Iterator[Tuple[str, CuratedInteraction]]:
        """(source tag, record) pairs in list_all order"""
        for i, record in enumerate(self.dataset):
            yield f"curated:dataset:{i}", record
        for i, record in enumerate(self.overlay.list()):
            yield f"curated:overlay:{i}", record

    def filter(
        self,
        drug: Optional[str] = None,
        drug_a: Optional[str] = None,
        drug_b: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> List[CuratedInteraction]:
        """Records mentioning the given drug(s) and/or with the given severity"""
        results = list(self.list_all())

        if drug:
            results = [r for r in results if r.mentions(drug)]

        if drug_a and drug_b:
            a, b = drug_a.strip().lower(), drug_b.strip().lower()
            results = [
                r for r in results
                if (a in r.drugs[0] and b in r.drugs[1]) or (b in r.drugs[0] and a in r.drugs[1])
            ]
        elif drug_a or drug_b:
            results = [r for r in results if r.mentions(drug_a or drug_b)]

        if severity:
            wanted = severity_label(severity)
            if wanted == SeverityLabel.UNKNOWN and severity.strip().lower() != SeverityLabel.UNKNOWN.value:
                # unrecognized filter token matches nothing
                return []
            results = [r for r in results if severity_label(r.severity) == wanted]

        return results

    def identifier_for(self, name: str) -> Optional[str]:
        return self.identifiers.get((name or "").strip().lower())

    def name_for(self, identifier: str) -> Optional[str]:
        """Generic name the static table holds for an RXCUI"""
        identifier = str(identifier or "").strip()
        for name, rxcui in self.identifiers.items():
            if rxcui == identifier:
                return name
        return None

    def pharmacogenomic_guidance(
        self, gene: Optional[str] = None, drug: Optional[str] = None
    ) -> List[PharmacogenomicGuideline]:
        results = list(self.guidelines)
        if gene:
            results = [g for g in results if g.gene.lower() == gene.strip().lower()]
        if drug:
            results = [g for g in results if g.matches_drug(drug)]
        return results

    def get_statistics(self) -> Dict[str, Any]:
        by_severity: Dict[str, int] = {}
        for record in self.list_all():
            label = normalize_severity(record.severity)
            by_severity[label] = by_severity.get(label, 0) + 1
        return {
            "dataset": self.dataset_size,
            "overlay": len(self.overlay),
            "by_severity": dict(sorted(by_severity.items(), key=lambda item: severity_rank(item[0]), reverse=True)),
            "static_identifiers": len(self.identifiers),
            "pharmacogenomic_guidelines": len(self.guidelines),
        }
