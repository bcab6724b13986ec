"""
Drug Interaction Engine - Interaction Matcher
Order-insensitive pair matching of request drugs against curated records,
plus the external interaction lookup for resolved pairs.
"""
import asyncio
import logging
from itertools import combinations
from typing import List, Optional, Sequence

from interaction_engine.core.exceptions import ExternalUnavailable
from interaction_engine.core.knowledge_base import KnowledgeBase
from interaction_engine.core.models import ExternalInteraction, InteractionMatch, ResolvedDrug
from interaction_engine.core.terminology import TerminologyClient

logger = logging.getLogger(__name__)


def _contains(terms: Sequence[str], name: str) -> bool:
    return any(name in term for term in terms)


def pair_matches(x_terms: Sequence[str], y_terms: Sequence[str], a: str, b: str) -> bool:
    """
    Matching policy for one input pair against one record pair (a, b).

    X matches a and Y matches b, or the other way round; "matches" is a
    case-insensitive substring test against any of the input's terms.
    """
    x_terms = [t.lower() for t in x_terms]
    y_terms = [t.lower() for t in y_terms]
    a, b = a.lower(), b.lower()
    return (
        (_contains(x_terms, a) and _contains(y_terms, b))
        or (_contains(x_terms, b) and _contains(y_terms, a))
    )


class InteractionMatcher:
    """
    Curated interaction matcher.

    Every unordered input pair is tested against every record, so cost is
    O(N^2 * K) for N inputs and K records. If K grows large, an index of
    records keyed by name token would cut the candidate set per pair.
    """

    def __init__(self, knowledge_base: KnowledgeBase, policy=pair_matches):
        self.knowledge_base = knowledge_base
        self.policy = policy

    def match(self, drugs: Sequence[ResolvedDrug]) -> List[InteractionMatch]:
        records = list(self.knowledge_base.tagged_records())
        matches = []
        for drug1, drug2 in combinations(drugs, 2):
            x_terms, y_terms = drug1.match_terms, drug2.match_terms
            for source, record in records:
                if self.policy(x_terms, y_terms, record.drugs[0], record.drugs[1]):
                    matches.append(InteractionMatch(record=record, drug1=drug1, drug2=drug2, source=source))
        return matches

    async def external_matches(
        self,
        drugs: Sequence[ResolvedDrug],
        terminology: Optional[TerminologyClient],
    ) -> List[ExternalInteraction]:
        """
        Interactions the external service reports between resolved inputs.

        One request per resolved identifier; results are kept only when the
        partner identifier is another input. Failures degrade to no results.
        """
        if terminology is None:
            return []
        identifiers = []
        for drug in drugs:
            if drug.identifier and drug.identifier not in identifiers:
                identifiers.append(drug.identifier)
        if len(identifiers) < 2:
            return []

        async def fetch(rxcui: str) -> List[ExternalInteraction]:
            try:
                return await terminology.get_interactions(rxcui)
            except ExternalUnavailable as e:
                logger.warning(f"External interaction lookup failed for {rxcui}: {e}")
                return []

        wanted = set(identifiers)
        results = []
        for rxcui, found in zip(identifiers, await asyncio.gather(*(fetch(i) for i in identifiers))):
            for interaction in found:
                partners = {interaction.drug1_identifier, interaction.drug2_identifier}
                if rxcui in partners and (partners - {rxcui}) & wanted:
                    results.append(interaction)
        return results
