"""
Drug Interaction Engine - Fuzzy Suggestion Ranker
Typeahead scoring for drug names. Pure functions; usable fully offline.
"""
from typing import Any, Callable, Iterable, List, Optional, Tuple, Dict

# Score tiers. Each tier's range sits strictly above the next one so that
# exact > prefix > substring > subsequence holds for every query.
EXACT_SCORE = 1000
PREFIX_BASE = 850          # minus extra suffix length, at most 100
SUBSTRING_BASE = 650       # minus match offset, at most 100
SUBSEQUENCE_CAP = 500
MAX_PENALTY = 100
SUBSEQUENCE_HIT_WEIGHT = 12


def fuzzy_score(candidate: str, query: str) -> int:
    """
    Score a candidate name against a partial query; 0 means no match.

    - exact match: 1000
    - prefix match: 850 minus the extra suffix length (shorter names first)
    - substring match: 650 minus the start offset (earlier matches first)
    - in-order subsequence: 12 per matched char minus unmatched chars
    """
    if not candidate or not query:
        return 0
    a = str(candidate).lower()
    b = str(query).lower()

    if a == b:
        return EXACT_SCORE
    if a.startswith(b):
        return PREFIX_BASE - min(MAX_PENALTY, len(a) - len(b))
    idx = a.find(b)
    if idx >= 0:
        return SUBSTRING_BASE - min(MAX_PENALTY, idx)

    # subsequence (characters in order, not necessarily contiguous)
    hits = 0
    for ch in a:
        if hits < len(b) and ch == b[hits]:
            hits += 1
    if hits < len(b):
        return 0
    score = hits * SUBSEQUENCE_HIT_WEIGHT - (len(a) - hits)
    return max(0, min(SUBSEQUENCE_CAP, score))


def rank(
    candidates: Iterable[Any],
    query: str,
    limit: Optional[int] = None,
    key: Callable[[Any], str] = str,
) -> List[Tuple[Any, int]]:
    """
    Score and order candidates, best first.

    Non-matching candidates are dropped; ties keep their original order.
    """
    scored = []
    for candidate in candidates:
        score = fuzzy_score(key(candidate), query)
        if score > 0:
            scored.append((candidate, score))
    # sorted() is stable, so equal scores preserve input order
    scored = sorted(scored, key=lambda item: item[1], reverse=True)
    if limit is not None:
        scored = scored[:limit]
    return scored


# Static suggestion list used when the terminology service is unreachable
OFFLINE_DRUG_NAMES: List[Dict[str, Optional[str]]] = [
    # Aspirin and related
    {"name": "aspirin", "rxcui": "1191"},
    {"name": "aspirin 81 mg", "rxcui": "243670"},
    {"name": "aspirin 325 mg", "rxcui": "211154"},
    {"name": "aspirin buffered", "rxcui": "1299896"},
    {"name": "aspirin enteric coated", "rxcui": "1299897"},
    {"name": "aspirin/dipyridamole", "rxcui": "214154"},
    {"name": "acetylsalicylic acid", "rxcui": "1191"},

    # Analgesics
    {"name": "acetaminophen", "rxcui": "161"},
    {"name": "acetaminophen 325 mg", "rxcui": "313782"},
    {"name": "acetaminophen/codeine", "rxcui": "993781"},
    {"name": "acetaminophen/hydrocodone", "rxcui": "857005"},
    {"name": "acetaminophen/tramadol", "rxcui": "836654"},

    # NSAIDs
    {"name": "ibuprofen", "rxcui": "5640"},
    {"name": "ibuprofen 200 mg", "rxcui": "310965"},
    {"name": "ibuprofen 400 mg", "rxcui": "310965"},
    {"name": "naproxen", "rxcui": "7258"},
    {"name": "naproxen sodium", "rxcui": "7258"},
    {"name": "diclofenac", "rxcui": "3355"},
    {"name": "celecoxib", "rxcui": "140587"},
    {"name": "meloxicam", "rxcui": "6960"},

    # Opioids
    {"name": "morphine", "rxcui": "7052"},
    {"name": "morphine sulfate", "rxcui": "7052"},
    {"name": "oxycodone", "rxcui": "7804"},
    {"name": "hydrocodone", "rxcui": "5489"},
    {"name": "hydromorphone", "rxcui": "3423"},
    {"name": "codeine", "rxcui": "2670"},
    {"name": "tramadol", "rxcui": "10689"},
    {"name": "tramadol 50 mg", "rxcui": "836654"},
    {"name": "fentanyl", "rxcui": "4337"},
    {"name": "fentanyl patch", "rxcui": "197696"},
    {"name": "methadone", "rxcui": "6813"},

    # Anticonvulsants
    {"name": "gabapentin", "rxcui": "25480"},
    {"name": "gabapentin 300 mg", "rxcui": "352385"},
    {"name": "pregabalin", "rxcui": "187832"},

    # PPIs
    {"name": "omeprazole", "rxcui": "7646"},
    {"name": "pantoprazole", "rxcui": "40790"},
    {"name": "esomeprazole", "rxcui": "298459"},
    {"name": "lansoprazole", "rxcui": "17128"},

    # Anticoagulants / antiplatelets
    {"name": "clopidogrel", "rxcui": "32968"},
    {"name": "clopidogrel 75 mg", "rxcui": "309362"},
    {"name": "warfarin", "rxcui": "11289"},
    {"name": "warfarin sodium", "rxcui": "11289"},
    {"name": "rivaroxaban", "rxcui": "1114195"},
    {"name": "apixaban", "rxcui": "1364430"},
    {"name": "dabigatran", "rxcui": "1037042"},

    # Regional brands (resolved through the alias table when possible)
    {"name": "arkamin", "rxcui": None},
    {"name": "metpure", "rxcui": None},
    {"name": "probowel", "rxcui": None},
    {"name": "dytor", "rxcui": None},
    {"name": "cilacar", "rxcui": None},
    {"name": "kbind", "rxcui": None},
    {"name": "oxra", "rxcui": None},
    {"name": "zolfresh", "rxcui": None},
    {"name": "febutaz", "rxcui": None},
    {"name": "montair fx", "rxcui": None},
]


def offline_suggestions(query: str, limit: int) -> List[Dict[str, Any]]:
    """Rank the static offline list against a query"""
    ranked = rank(OFFLINE_DRUG_NAMES, query, limit=limit, key=lambda d: d["name"])
    return [
        {"id": d["rxcui"] or d["name"], "name": d["name"], "category": "drug", "rxcui": d["rxcui"]}
        for d, _ in ranked
    ]
