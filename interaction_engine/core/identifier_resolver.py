"""
Drug Interaction Engine - Identifier Resolver
Resolves free-text and brand drug names to canonical RXCUIs.
"""
import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from interaction_engine.config import settings
from interaction_engine.core.alias_normalizer import BrandAliasTable, UnknownTermLog
from interaction_engine.core.exceptions import ExternalUnavailable
from interaction_engine.core.knowledge_base import KnowledgeBase
from interaction_engine.core.models import AliasStatus, DrugConcept, ResolvedDrug
from interaction_engine.core.resolution_cache import ResolutionCache
from interaction_engine.core.terminology import TerminologyClient, is_identifier

logger = logging.getLogger(__name__)


def choose_preferred(
    concepts: Sequence[DrugConcept],
    preferred_types: Sequence[str] = settings.PREFERRED_CONCEPT_TYPES,
) -> Optional[DrugConcept]:
    """Pick the concept of the best term type (IN, then BN, then SCD), else the first"""
    if not concepts:
        return None
    for concept_type in preferred_types:
        for concept in concepts:
            if concept.concept_type == concept_type:
                return concept
    return concepts[0]


class IdentifierResolver:
    """
    Name -> RXCUI resolution.

    Lookup order: static table, cache, terminology search for the raw name,
    then each alias candidate. Only the chosen identifier is cached, so a
    second resolution of the same name never reaches the terminology service.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        cache: ResolutionCache,
        alias_table: BrandAliasTable,
        terminology: Optional[TerminologyClient] = None,
        unknown_log: Optional[UnknownTermLog] = None,
        preferred_types: Sequence[str] = settings.PREFERRED_CONCEPT_TYPES,
    ):
        self.knowledge_base = knowledge_base
        self.cache = cache
        self.alias_table = alias_table
        self.terminology = terminology
        self.unknown_log = unknown_log
        self.preferred_types = tuple(preferred_types)
        self.external_lookups = 0

    async def search_concepts(self, name: str) -> Tuple[List[DrugConcept], bool]:
        """Terminology search that never raises; returns (concepts, service reachable)"""
        if self.terminology is None:
            return [], False
        self.external_lookups += 1
        try:
            return await self.terminology.search_drugs(name), True
        except ExternalUnavailable as e:
            logger.warning(f"Terminology lookup failed for '{name}': {e}")
            return [], False

    def _known_identifier(self, term: str) -> Optional[str]:
        return self.knowledge_base.identifier_for(term) or self.cache.get(term)

    async def _lookup_external(self, term: str) -> Optional[str]:
        concepts, _ = await self.search_concepts(term)
        chosen = choose_preferred(concepts, self.preferred_types)
        if chosen is None:
            return None
        return self.cache.put(term, chosen.identifier)

    async def lookup(self, name: str) -> Optional[str]:
        """Static table, cache, then terminology search; no alias fallback or telemetry"""
        term = (name or "").strip().lower()
        if not term:
            return None
        return self._known_identifier(term) or await self._lookup_external(term)

    async def resolve(self, name: str) -> Optional[str]:
        """Canonical identifier for a drug name, or None if it cannot be resolved"""
        term = (name or "").strip().lower()
        if not term:
            return None
        if is_identifier(term):
            return term

        identifier = self._known_identifier(term)
        if identifier:
            return identifier

        identifier = await self._lookup_external(term)
        if identifier:
            return identifier

        lookup = self.alias_table.normalize(term)
        if lookup.status == AliasStatus.UNMAPPABLE:
            logger.info(f"'{term}' is a known brand, unmappable to a generic")
            return None

        for candidate in lookup.candidates:
            identifier = self._known_identifier(candidate)
            if not identifier:
                identifier = await self._lookup_external(candidate)
            if identifier:
                logger.debug(f"Resolved '{term}' via alias candidate '{candidate}' -> {identifier}")
                return self.cache.put(term, identifier)

        if lookup.status == AliasStatus.UNKNOWN and self.unknown_log is not None:
            self.unknown_log.record(term, "resolve")
        return None

    async def name_for(self, identifier: str) -> Optional[str]:
        """Drug name for an RXCUI: static table, then the terminology service"""
        name = self.knowledge_base.name_for(identifier)
        if name or self.terminology is None:
            return name
        self.external_lookups += 1
        try:
            concept = await self.terminology.get_concept(identifier)
        except ExternalUnavailable as e:
            logger.warning(f"Concept lookup failed for {identifier}: {e}")
            return None
        if concept is None or not concept.name:
            return None
        name = concept.name.strip().lower()
        self.cache.put(name, identifier)
        return name

    async def resolve_drug(self, raw: str) -> ResolvedDrug:
        """Resolve one request drug, keeping its alias generics as match terms"""
        name = (raw or "").strip()
        if is_identifier(name):
            identifier = name
            # curated records match on names, not RXCUIs
            name = await self.name_for(identifier) or identifier
            return ResolvedDrug(name=name, identifier=identifier, input=raw)

        lookup = self.alias_table.normalize(name)
        identifier = await self.resolve(name)
        return ResolvedDrug(
            name=name,
            identifier=identifier,
            input=raw,
            generic_names=list(lookup.candidates),
        )

    async def resolve_many(self, names: Sequence[str]) -> List[ResolvedDrug]:
        return list(await asyncio.gather(*(self.resolve_drug(n) for n in names)))
