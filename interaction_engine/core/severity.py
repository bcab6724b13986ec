"""
Drug Interaction Engine - Severity Normalization
Maps the severity vocabularies of every data source onto one scale.
"""
from enum import Enum
from typing import Any, Dict


class SeverityLabel(Enum):
    MAJOR = "major"
    MODERATE = "moderate"
    MINOR = "minor"
    UNKNOWN = "unknown"


class RiskLevel(Enum):
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


# Source vocabulary -> canonical label
SEVERITY_ALIASES: Dict[str, SeverityLabel] = {
    "high": SeverityLabel.MAJOR,
    "major": SeverityLabel.MAJOR,
    "moderate": SeverityLabel.MODERATE,
    "minor": SeverityLabel.MINOR,
    "low": SeverityLabel.MINOR,
}

RISK_BY_SEVERITY: Dict[SeverityLabel, RiskLevel] = {
    SeverityLabel.MAJOR: RiskLevel.HIGH,
    SeverityLabel.MODERATE: RiskLevel.MODERATE,
    SeverityLabel.MINOR: RiskLevel.LOW,
    SeverityLabel.UNKNOWN: RiskLevel.UNKNOWN,
}

# Sort order for presentation (major first)
SEVERITY_RANK: Dict[SeverityLabel, int] = {
    SeverityLabel.MAJOR: 3,
    SeverityLabel.MODERATE: 2,
    SeverityLabel.MINOR: 1,
    SeverityLabel.UNKNOWN: 0,
}


def severity_label(value: Any) -> SeverityLabel:
    """Canonical label for any raw severity value; unrecognized -> UNKNOWN"""
    if isinstance(value, SeverityLabel):
        return value
    if value is None:
        return SeverityLabel.UNKNOWN
    return SEVERITY_ALIASES.get(str(value).strip().lower(), SeverityLabel.UNKNOWN)


def normalize_severity(value: Any) -> str:
    """
    Normalize a raw severity token to one of major/moderate/minor/unknown.

    Total and idempotent: normalize_severity(normalize_severity(x)) == normalize_severity(x).
    """
    return severity_label(value).value


def risk_level(value: Any) -> str:
    """External risk classification (HIGH/MODERATE/LOW/UNKNOWN) for a raw severity"""
    return RISK_BY_SEVERITY[severity_label(value)].value


def severity_rank(value: Any) -> int:
    return SEVERITY_RANK[severity_label(value)]
