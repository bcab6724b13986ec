"""
Drug Interaction Engine - Data Models
"""
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple
from enum import Enum

from interaction_engine.core.exceptions import InvalidOverlayRecord
from interaction_engine.core.severity import normalize_severity, risk_level


class AliasStatus(Enum):
    MAPPED = "mapped"            # brand maps to one or more generics
    UNMAPPABLE = "unmappable"    # known brand, no safe generic substitute
    UNKNOWN = "unknown"          # not in the alias table


@dataclass(frozen=True)
class AliasLookup:
    """Result of normalizing one raw name through the brand alias table"""
    term: str
    status: AliasStatus
    generic: Optional[str] = None
    candidates: Tuple[str, ...] = ()

    @property
    def is_known(self) -> bool:
        return self.status != AliasStatus.UNKNOWN


@dataclass(frozen=True)
class DrugConcept:
    """One concept returned by the terminology service"""
    identifier: str
    name: str
    concept_type: str = ""  # RxNorm TTY: IN, BN, SCD, SBD, ...

    def to_dict(self) -> Dict[str, Any]:
        return {"rxcui": self.identifier, "name": self.name, "tty": self.concept_type}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_sources(value: Any) -> Tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return (str(value),)


@dataclass(frozen=True)
class CuratedInteraction:
    """
    Curated drug-pair interaction record.

    `drugs` is an unordered pair of lowercase generic-name substrings, not
    canonical identifiers. Severity is kept as authored; it is normalized only
    when emitted.
    """
    drugs: Tuple[str, str]
    severity: str = "moderate"
    mechanism: str = ""
    effect: str = ""
    management: str = ""
    evidence_level: str = ""
    sources: Tuple[str, ...] = ()
    identifiers: Optional[Tuple[str, str]] = None

    def __post_init__(self):
        if len(self.drugs) != 2 or not all(self.drugs):
            raise InvalidOverlayRecord("drugs must be [drugA, drugB]")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CuratedInteraction":
        """Build a record from loosely-typed input, rejecting malformed pairs"""
        if not isinstance(data, dict):
            raise InvalidOverlayRecord("record must be an object")

        drugs = data.get("drugs")
        if not isinstance(drugs, (list, tuple)) or len(drugs) != 2:
            raise InvalidOverlayRecord("drugs must be [drugA, drugB]")
        names = tuple(_as_text(d).strip().lower() for d in drugs)
        if not names[0] or not names[1]:
            raise InvalidOverlayRecord("drugs must be [drugA, drugB]")

        severity = _as_text(data.get("severity")).strip().lower() or "moderate"

        identifiers = data.get("rxcui") or data.get("identifiers")
        if isinstance(identifiers, (list, tuple)) and len(identifiers) == 2:
            identifiers = (str(identifiers[0]), str(identifiers[1]))
        else:
            identifiers = None

        evidence = data.get("evidence_level", data.get("evidenceLevel"))

        return cls(
            drugs=(names[0], names[1]),
            severity=severity,
            mechanism=_as_text(data.get("mechanism")),
            effect=_as_text(data.get("effect")),
            management=_as_text(data.get("management")),
            evidence_level=_as_text(evidence),
            sources=_as_sources(data.get("sources")),
            identifiers=identifiers,
        )

    def mentions(self, term: str) -> bool:
        """True if either drug in the pair contains the term"""
        term = term.strip().lower()
        return any(term in d for d in self.drugs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drugs": list(self.drugs),
            "severity": normalize_severity(self.severity),
            "riskLevel": risk_level(self.severity),
            "mechanism": self.mechanism,
            "effect": self.effect,
            "management": self.management,
            "evidence_level": self.evidence_level,
            "sources": list(self.sources),
        }


@dataclass(frozen=True)
class PharmacogenomicGuideline:
    """Gene/drug dosing guidance (CPIC level A)"""
    gene: str
    gene_name: str
    drug: str
    phenotype: str
    recommendation: str
    search_terms: Tuple[str, ...] = ()
    implications: str = ""
    dosage_adjustment: str = ""
    evidence_level: str = ""
    sources: Tuple[str, ...] = ()

    def matches_drug(self, term: str) -> bool:
        term = term.strip().lower()
        return any(term in t.lower() or t.lower() in term for t in (self.drug,) + self.search_terms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gene": self.gene,
            "gene_name": self.gene_name,
            "drug": self.drug,
            "phenotype": self.phenotype,
            "recommendation": self.recommendation,
            "implications": self.implications,
            "dosage_adjustment": self.dosage_adjustment,
            "evidence_level": self.evidence_level,
            "sources": list(self.sources),
        }


@dataclass
class ResolvedDrug:
    """A drug from a request after alias normalization and resolution"""
    name: str
    identifier: Optional[str] = None
    input: str = ""
    generic_names: List[str] = field(default_factory=list)

    @property
    def match_terms(self) -> List[str]:
        terms = [self.name.lower()]
        for generic in self.generic_names:
            if generic.lower() not in terms:
                terms.append(generic.lower())
        return terms

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "rxcui": self.identifier}


@dataclass
class InteractionMatch:
    """A curated record matched against a pair of request drugs"""
    record: CuratedInteraction
    drug1: ResolvedDrug
    drug2: ResolvedDrug
    source: str = "curated"

    @property
    def severity(self) -> str:
        return normalize_severity(self.record.severity)

    @property
    def risk_level(self) -> str:
        return risk_level(self.record.severity)

    @property
    def identifiers(self) -> Tuple[Optional[str], Optional[str]]:
        return self.drug1.identifier, self.drug2.identifier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug1_rxcui": self.drug1.identifier,
            "drug2_rxcui": self.drug2.identifier,
            "drug1": {"name": self.drug1.name, "generic_names": list(self.drug1.generic_names)},
            "drug2": {"name": self.drug2.name, "generic_names": list(self.drug2.generic_names)},
            "matched_pair": list(self.record.drugs),
            "severity": self.severity,
            "mechanism": self.record.mechanism,
            "effect": self.record.effect,
            "management": self.record.management,
            "evidence_level": self.record.evidence_level,
            "sources": list(self.record.sources),
            "source": self.source,
            "riskLevel": self.risk_level,
        }


@dataclass
class ExternalInteraction:
    """Interaction reported by the external interaction service"""
    drug1_identifier: Optional[str]
    drug1_name: str
    drug2_identifier: Optional[str]
    drug2_name: str
    severity: str = ""
    description: str = ""
    source: str = "external"

    @property
    def identifiers(self) -> Tuple[Optional[str], Optional[str]]:
        return self.drug1_identifier, self.drug2_identifier

    @property
    def risk_level(self) -> str:
        return risk_level(self.severity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug1_rxcui": self.drug1_identifier,
            "drug2_rxcui": self.drug2_identifier,
            "drug1": {"name": self.drug1_name},
            "drug2": {"name": self.drug2_name},
            "severity": normalize_severity(self.severity),
            "description": self.description,
            "source": self.source,
            "riskLevel": self.risk_level,
        }
