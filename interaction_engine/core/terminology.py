"""
Drug Interaction Engine - External Terminology Client
Async client for RxNav (RxNorm concepts and interactions) and openFDA drug labels.
"""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from interaction_engine.config import settings
from interaction_engine.core.exceptions import ExternalUnavailable
from interaction_engine.core.models import DrugConcept, ExternalInteraction

logger = logging.getLogger(__name__)

RXCUI_PATTERN = re.compile(r"^\d{1,8}$")
# "clonidine hydrochloride 0.1 MG Oral Tablet [Catapres]" -> generic part, brand part
BRANDED_NAME_PATTERN = re.compile(r"^(?P<generic>[^\d\[]+?)\s*(?:\d.*)?\[(?P<brand>[^\]]+)\]\s*$")


def is_identifier(value: Any) -> bool:
    """True if the value looks like an RXCUI"""
    return bool(RXCUI_PATTERN.match(str(value or "").strip()))


class TerminologyClient:
    """
    Thin async wrapper over the external drug terminology services.

    Every transport error, timeout, non-2xx status or undecodable body is
    raised as ExternalUnavailable; callers decide whether to degrade.
    """

    def __init__(
        self,
        rxnav_url: str = settings.RXNAV_BASE_URL,
        openfda_url: str = settings.OPENFDA_BASE_URL,
        timeout: float = settings.EXTERNAL_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.rxnav_url = rxnav_url.rstrip("/")
        self.openfda_url = openfda_url.rstrip("/")
        self.timeout = timeout
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def _get_json(
        self,
        service: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        not_found_ok: bool = False,
    ) -> Dict[str, Any]:
        try:
            response = await self.http_client.get(url, params=params, timeout=timeout or self.timeout)
            if not_found_ok and response.status_code == 404:
                return {}
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise ExternalUnavailable(service, str(e) or e.__class__.__name__) from e
        except ValueError as e:
            raise ExternalUnavailable(service, f"invalid JSON: {e}") from e
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------ RxNorm

    async def search_drugs(self, name: str) -> List[DrugConcept]:
        """Concepts for a drug name, in the order the service returned them"""
        data = await self._get_json("rxnav", f"{self.rxnav_url}/drugs.json", {"name": name})
        concepts = []
        for group in (data.get("drugGroup") or {}).get("conceptGroup") or []:
            tty = group.get("tty", "")
            for prop in group.get("conceptProperties") or []:
                rxcui = prop.get("rxcui")
                if not rxcui:
                    continue
                concepts.append(DrugConcept(
                    identifier=str(rxcui),
                    name=prop.get("name") or prop.get("synonym") or "",
                    concept_type=(prop.get("tty") or tty or "").upper(),
                ))

        if concepts:
            return concepts

        # drugs.json lists products only; an exact ingredient match comes from rxcui.json
        data = await self._get_json("rxnav", f"{self.rxnav_url}/rxcui.json", {"name": name, "search": 2})
        ids = (data.get("idGroup") or {}).get("rxnormId") or []
        return [DrugConcept(identifier=str(rxcui), name=name, concept_type="") for rxcui in ids]

    async def get_concept(self, rxcui: str) -> Optional[DrugConcept]:
        data = await self._get_json("rxnav", f"{self.rxnav_url}/rxcui/{rxcui}/properties.json")
        props = data.get("properties")
        if not props:
            return None
        return DrugConcept(
            identifier=str(props.get("rxcui", rxcui)),
            name=props.get("name", ""),
            concept_type=(props.get("tty") or "").upper(),
        )

    async def get_interactions(self, rxcui: str) -> List[ExternalInteraction]:
        """Interactions the external service reports for one concept"""
        data = await self._get_json(
            "rxnav-interaction",
            f"{self.rxnav_url}/interaction/interaction.json",
            {"rxcui": rxcui},
        )
        interactions = []
        for type_group in data.get("interactionTypeGroup") or []:
            source = type_group.get("sourceName") or "external"
            for interaction_type in type_group.get("interactionType") or []:
                for pair in interaction_type.get("interactionPair") or []:
                    concepts = pair.get("interactionConcept") or []
                    if len(concepts) < 2:
                        continue
                    first = concepts[0].get("minConceptItem") or {}
                    second = concepts[1].get("minConceptItem") or {}
                    interactions.append(ExternalInteraction(
                        drug1_identifier=first.get("rxcui"),
                        drug1_name=first.get("name", ""),
                        drug2_identifier=second.get("rxcui"),
                        drug2_name=second.get("name", ""),
                        severity=pair.get("severity") or "",
                        description=pair.get("description") or "",
                        source=source,
                    ))
        return interactions

    # ------------------------------------------------------------------ brands

    async def search_brand_names(self, query: str, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Brand/generic pairs from RxNorm branded products matching the query"""
        data = await self._get_json("rxnav", f"{self.rxnav_url}/drugs.json", {"name": query}, timeout=timeout)
        term = query.lower()
        results = []
        for group in (data.get("drugGroup") or {}).get("conceptGroup") or []:
            if (group.get("tty") or "").upper() not in ("SBD", "BPCK"):
                continue
            for prop in group.get("conceptProperties") or []:
                match = BRANDED_NAME_PATTERN.match(prop.get("name") or "")
                if not match:
                    continue
                brand = match.group("brand").strip()
                generic = match.group("generic").strip().lower()
                if term not in brand.lower() and term not in generic:
                    continue
                results.append({
                    "brand": brand,
                    "generic": generic,
                    "relevance": "high" if brand.lower().startswith(term) else "medium",
                    "source": "RxNav",
                })
        return results

    async def search_openfda_brands(self, query: str, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Brand/generic pairs from openFDA drug labels"""
        params = {
            "search": f'openfda.brand_name:"{query}" OR openfda.generic_name:"{query}"',
            "limit": 10,
        }
        data = await self._get_json(
            "openfda", f"{self.openfda_url}/drug/label.json", params, timeout=timeout, not_found_ok=True,
        )
        term = query.lower()
        results = []
        for label in data.get("results") or []:
            openfda = label.get("openfda") or {}
            for brand in openfda.get("brand_name") or []:
                if term not in brand.lower():
                    continue
                for generic in openfda.get("generic_name") or []:
                    results.append({
                        "brand": brand,
                        "generic": generic.lower(),
                        "relevance": "high" if brand.lower().startswith(term) else "medium",
                        "source": "OpenFDA",
                    })
        return results
