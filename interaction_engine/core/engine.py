"""
Drug Interaction Engine - Composition Root
Owns the process-wide cache, overlay, alias table and service clients, and
implements the request-level operations the API exposes.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from interaction_engine.config import settings
from interaction_engine.core.aggregator import ResultAggregator, known_item
from interaction_engine.core.alias_normalizer import BrandAliasTable, UnknownTermLog
from interaction_engine.core.fuzzy_ranker import fuzzy_score, offline_suggestions
from interaction_engine.core.identifier_resolver import IdentifierResolver, choose_preferred
from interaction_engine.core.interaction_matcher import InteractionMatcher
from interaction_engine.core.knowledge_base import KnowledgeBase
from interaction_engine.core.models import CuratedInteraction, DrugConcept
from interaction_engine.core.resolution_cache import ResolutionCache
from interaction_engine.core.terminology import TerminologyClient

logger = logging.getLogger(__name__)


def _suggestion(concept: DrugConcept, **extra) -> Dict[str, Any]:
    item = {
        "id": concept.identifier or concept.name,
        "name": concept.name,
        "category": "drug",
        "rxcui": concept.identifier or None,
    }
    item.update(extra)
    return item


class InteractionEngine:
    """Single owner of all shared engine state for one process"""

    def __init__(
        self,
        knowledge_base: Optional[KnowledgeBase] = None,
        alias_table: Optional[BrandAliasTable] = None,
        unknown_log: Optional[UnknownTermLog] = None,
        terminology: Optional[TerminologyClient] = None,
        cache: Optional[ResolutionCache] = None,
        external_interactions: bool = settings.ENABLE_EXTERNAL_INTERACTIONS,
        external_brand_search: bool = settings.ENABLE_EXTERNAL_BRAND_SEARCH,
        brand_search_timeout: float = settings.BRAND_SEARCH_TIMEOUT_SECONDS,
    ):
        self.knowledge_base = knowledge_base if knowledge_base is not None else KnowledgeBase()
        self.alias_table = alias_table if alias_table is not None else BrandAliasTable()
        self.unknown_log = unknown_log
        self.terminology = terminology
        self.cache = cache if cache is not None else ResolutionCache()
        self.resolver = IdentifierResolver(
            self.knowledge_base, self.cache, self.alias_table, terminology, unknown_log,
        )
        self.matcher = InteractionMatcher(self.knowledge_base)
        self.aggregator = ResultAggregator()
        self.external_interactions = external_interactions
        self.external_brand_search = external_brand_search
        self.brand_search_timeout = brand_search_timeout

    async def close(self) -> None:
        if self.terminology is not None:
            await self.terminology.aclose()

    # ------------------------------------------------------------------ interactions

    async def check(self, drug_names: Sequence[str]) -> Dict[str, Any]:
        """Resolve request drugs and report curated plus external interactions"""
        drugs = await self.resolver.resolve_many(drug_names)
        curated = self.matcher.match(drugs)
        external = []
        if self.external_interactions:
            external = await self.matcher.external_matches(drugs, self.terminology)
        logger.info(
            f"Interaction check: {len(drugs)} drugs, {len(curated)} curated, {len(external)} external matches"
        )
        return self.aggregator.check_response(drugs, curated, external)

    async def _pair_identifiers(self, record: CuratedInteraction, resolve: bool) -> List[Optional[str]]:
        identifiers = []
        for i, name in enumerate(record.drugs):
            rxcui = record.identifiers[i] if record.identifiers else None
            rxcui = rxcui or self.knowledge_base.identifier_for(name) or self.cache.get(name)
            if not rxcui and resolve:
                rxcui = await self.resolver.lookup(name)
            identifiers.append(rxcui)
        return identifiers

    async def known_interactions(
        self,
        drug: Optional[str] = None,
        drug_a: Optional[str] = None,
        drug_b: Optional[str] = None,
        severity: Optional[str] = None,
        limit: Optional[int] = None,
        resolve: bool = False,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Filtered curated records with pair RXCUIs; returns (items, total before limit)"""
        records = self.knowledge_base.filter(drug=drug, drug_a=drug_a, drug_b=drug_b, severity=severity)
        identifiers = await asyncio.gather(*(self._pair_identifiers(r, resolve) for r in records))
        items = [known_item(r, ids) for r, ids in zip(records, identifiers)]
        total = len(items)
        if limit is not None and limit > 0:
            items = items[:limit]
        return items, total

    def add_known(self, data: Dict[str, Any]) -> CuratedInteraction:
        return self.knowledge_base.overlay.append(data)

    def clear_overlay(self) -> int:
        return self.knowledge_base.overlay.clear()

    # ------------------------------------------------------------------ suggestions

    async def suggestions(self, query: str, limit: int = settings.SUGGESTION_DEFAULT_LIMIT) -> Dict[str, Any]:
        """
        Typeahead suggestions.

        Raw terminology results first; if none, brand aliases containing the
        query are expanded to their generics and tagged with the brand. With
        nothing from either, the static offline list is ranked instead.
        """
        q = (query or "").strip()
        limit = max(1, min(settings.SUGGESTION_MAX_LIMIT, limit or settings.SUGGESTION_DEFAULT_LIMIT))
        if len(q) < settings.SUGGESTION_MIN_QUERY:
            return {"suggestions": [], "offline": False}

        concepts, _ = await self.resolver.search_concepts(q)
        concepts = sorted(concepts, key=lambda c: fuzzy_score(c.name, q), reverse=True)
        suggestions = [_suggestion(c) for c in concepts if c.name]

        if not suggestions:
            suggestions = await self._alias_suggestions(q)
            if not suggestions and not self.alias_table.is_regional_brand(q) and self.unknown_log is not None:
                self.unknown_log.record(q, "suggestions")

        offline = False
        if not suggestions:
            suggestions = offline_suggestions(q, limit)
            offline = True

        seen = set()
        unique = []
        for item in suggestions:
            key = item["name"].lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return {"suggestions": unique[:limit], "offline": offline}

    async def _alias_suggestions(self, q: str) -> List[Dict[str, Any]]:
        results = []
        for lookup in self.alias_table.expand_partial(q):
            annotation = {"originBrand": lookup.term}
            if self.alias_table.is_regional_brand(lookup.term):
                annotation["originRegion"] = "IN"
            for candidate in lookup.candidates:
                concepts, _ = await self.resolver.search_concepts(candidate)
                if concepts:
                    self.cache.put(candidate, choose_preferred(concepts).identifier)
                else:
                    rxcui = self.knowledge_base.identifier_for(candidate) or self.cache.get(candidate)
                    if rxcui:
                        concepts = [DrugConcept(identifier=rxcui, name=candidate, concept_type="IN")]
                results.extend(_suggestion(c, **annotation) for c in concepts if c.name)
        return results

    # ------------------------------------------------------------------ brand aliases

    async def search_brand_aliases(self, query: str) -> Dict[str, Any]:
        """Local alias matches merged with external brand-label matches"""
        term = (query or "").strip().lower()
        local = self.alias_table.search(term)
        sources = ["Local"]

        external: List[Dict[str, Any]] = []
        if self.external_brand_search and self.terminology is not None:
            found = await asyncio.gather(
                self.terminology.search_brand_names(term, timeout=self.brand_search_timeout),
                self.terminology.search_openfda_brands(term, timeout=self.brand_search_timeout),
                return_exceptions=True,
            )
            for result in found:
                if isinstance(result, Exception):
                    logger.warning(f"External brand search failed for '{term}': {result}")
                    continue
                external.extend(result)
            for item in external:
                if item["source"] not in sources:
                    sources.append(item["source"])

        seen = set()
        unique = []
        for item in local + external:
            key = (item["brand"].lower(), (item["generic"] or "").lower())
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        unique.sort(key=lambda r: (r["relevance"] != "high", r["brand"].lower()))

        if external:
            message = f"Found {len(local)} local and {len(external)} external brand aliases"
        elif local:
            message = f"Found {len(local)} local brand aliases"
        else:
            message = "No brand aliases found. Try searching for the generic drug name instead."

        return {
            "query": query,
            "count": len(unique),
            "sources": sources,
            "results": unique[:settings.BRAND_SEARCH_MAX_RESULTS],
            "message": message,
        }

    # ------------------------------------------------------------------ alias admin

    def promote_alias(self, brand: str, generic: Optional[str]) -> Tuple[str, Optional[str]]:
        key, value = self.alias_table.promote(brand, generic)
        if self.unknown_log is not None:
            self.unknown_log.clear(key)
        return key, value

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "knowledge_base": self.knowledge_base.get_statistics(),
            "aliases": len(self.alias_table),
            "resolution_cache": self.cache.get_statistics(),
            "external_lookups": self.resolver.external_lookups,
        }


def build_engine() -> InteractionEngine:
    """Engine wired from settings; called once at application startup"""
    alias_table = BrandAliasTable(
        path=settings.BRAND_ALIAS_FILE,
        reload_interval=settings.BRAND_ALIAS_RELOAD_SECONDS,
    )
    alias_table.maybe_reload()
    unknown_log = UnknownTermLog(
        settings.UNKNOWN_TERM_LOG,
        window_seconds=settings.UNKNOWN_TERM_WINDOW_SECONDS,
        min_length=settings.UNKNOWN_TERM_MIN_LENGTH,
    )
    engine = InteractionEngine(
        knowledge_base=KnowledgeBase(),
        alias_table=alias_table,
        unknown_log=unknown_log,
        terminology=TerminologyClient(),
    )
    logger.info(f"Interaction engine initialized: {engine.get_statistics()}")
    return engine
