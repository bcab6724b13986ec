"""
Drug Interaction Engine - REST API Tests
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json
import re

import pytest
from fastapi.testclient import TestClient

from interaction_engine.api.main import app
from interaction_engine.config import settings
from interaction_engine.core.alias_normalizer import BrandAliasTable, UnknownTermLog
from interaction_engine.core.engine import InteractionEngine
from interaction_engine.core.exceptions import ExternalUnavailable
from interaction_engine.core.knowledge_base import KnowledgeBase
from interaction_engine.core.models import DrugConcept

TOKEN = "test-editor-token"
ADMIN = {"X-Admin-Token": TOKEN}


class FakeTerminology:
    """Terminology client stand-in with canned concepts"""

    def __init__(self, concepts=None, fail=False, brands=None, names=None):
        self.concepts = concepts or {}
        self.fail = fail
        self.brands = brands or []
        self.names = names or {}
        self.calls = []

    async def search_drugs(self, name):
        self.calls.append(name)
        if self.fail:
            raise ExternalUnavailable("rxnav", "connection refused")
        return list(self.concepts.get(name.lower(), []))

    async def get_concept(self, rxcui):
        if self.fail:
            raise ExternalUnavailable("rxnav", "connection refused")
        name = self.names.get(rxcui)
        return DrugConcept(rxcui, name, "IN") if name else None

    async def get_interactions(self, rxcui):
        if self.fail:
            raise ExternalUnavailable("rxnav-interaction", "connection refused")
        return []

    async def search_brand_names(self, query, timeout=None):
        if self.fail:
            raise ExternalUnavailable("rxnav", "timeout")
        return [b for b in self.brands if query in b["brand"].lower()]

    async def search_openfda_brands(self, query, timeout=None):
        raise ExternalUnavailable("openfda", "timeout")

    async def aclose(self):
        pass


def make_engine(tmp_path, terminology=None):
    return InteractionEngine(
        knowledge_base=KnowledgeBase(),
        alias_table=BrandAliasTable(path=tmp_path / "brand_aliases.json"),
        unknown_log=UnknownTermLog(tmp_path / "unknown-brands.log"),
        terminology=terminology or FakeTerminology({
            "clonidine": [DrugConcept("2599", "clonidine", "IN")],
        }),
    )


@pytest.fixture
def engine(tmp_path):
    return make_engine(tmp_path)


@pytest.fixture
def client(engine, monkeypatch):
    monkeypatch.setattr(settings, "CURATED_EDITOR_TOKEN", TOKEN)
    app.state.engine = engine
    yield TestClient(app)
    app.state.engine = None


class TestHealth:

    def test_health(self, client, engine):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["curated_interactions"] == engine.knowledge_base.dataset_size
        assert data["overlay_interactions"] == 0


class TestKnownInteractions:
    """GET/POST/DELETE /interactions/known"""

    def test_default_view(self, client):
        data = client.get("/interactions/known", params={"drug": "warfarin"}).json()
        assert data["count"] == data["total"] > 0
        assert data["filters"] == {"drug": "warfarin", "drugA": None, "drugB": None, "severity": None}
        first = data["interactions"][0]
        assert {"drugs", "severity", "riskLevel", "drug_rxnorm"} <= set(first)

    def test_pair_filter_and_identifiers(self, client):
        data = client.get("/interactions/known", params={"drugA": "amiodarone", "drugB": "warfarin"}).json()
        assert data["count"] == 1
        item = data["interactions"][0]
        assert item["severity"] == "major"
        assert item["drug_rxnorm"] == [
            {"name": "warfarin", "rxcui": "11289"},
            {"name": "amiodarone", "rxcui": "703"},
        ]

    def test_limit(self, client):
        data = client.get("/interactions/known", params={"drug": "warfarin", "limit": 2}).json()
        assert data["count"] == 2
        assert data["total"] > 2

    def test_severity_filter_is_normalized(self, client):
        high = client.get("/interactions/known", params={"severity": "high"}).json()
        major = client.get("/interactions/known", params={"severity": "major"}).json()
        assert high["total"] == major["total"] > 0
        assert all(i["severity"] == "major" for i in high["interactions"])

    def test_enriched_view(self, client):
        data = client.get("/interactions/known", params={"drug": "digoxin", "view": "enriched"}).json()
        item = data["interactions"][0]
        assert set(item) == {
            "drugA", "drugB", "severity", "riskLevel", "mechanism", "effect",
            "management", "evidence_level", "sources",
        }

    def test_csv_export(self, client):
        response = client.get("/interactions/known", params={"drugA": "warfarin", "drugB": "amiodarone", "view": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        disposition = response.headers["content-disposition"]
        assert re.search(
            r'filename="curated-interactions_a-warfarin_b-amiodarone_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.csv"',
            disposition,
        )
        lines = response.text.rstrip("\n").split("\n")
        assert len(lines) == 2
        assert lines[1].startswith('"warfarin","11289","amiodarone","703","major","HIGH"')

    def test_tsv_export(self, client):
        response = client.get("/interactions/known", params={"view": "tsv"})
        assert response.headers["content-type"].startswith("text/tab-separated-values")
        assert "curated-interactions_all_" in response.headers["content-disposition"]
        assert response.text.split("\n")[0].startswith("drugA\tdrugA_rxcui")

    def test_add_overlay_record(self, client, engine):
        response = client.post(
            "/interactions/known",
            json={"drugs": ["Drug-X ", "DRUG-Y"], "severity": "HIGH", "sources": "Ward audit"},
            headers=ADMIN,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["added"] == 1
        assert body["item"]["drugs"] == ["drug-x", "drug-y"]
        assert body["item"]["severity"] == "major"
        assert body["item"]["sources"] == ["Ward audit"]

        overlay = client.get("/interactions/known/overlay").json()
        assert overlay["count"] == 1
        known = client.get("/interactions/known", params={"drug": "drug-x"}).json()
        assert known["count"] == 1

    def test_invalid_record_rejected(self, client, engine):
        size = engine.knowledge_base.dataset_size
        response = client.post("/interactions/known", json={"drugs": ["x"]}, headers=ADMIN)
        assert response.status_code == 400
        assert len(engine.knowledge_base.overlay) == 0
        assert engine.knowledge_base.dataset_size == size

    def test_missing_token_rejected(self, client, engine):
        response = client.post("/interactions/known", json={"drugs": ["a", "b"]})
        assert response.status_code == 403
        assert len(engine.knowledge_base.overlay) == 0

    def test_wrong_token_rejected(self, client):
        response = client.post("/interactions/known", json={"drugs": ["a", "b"]}, headers={"X-Admin-Token": "nope"})
        assert response.status_code == 403

    def test_token_in_query(self, client):
        response = client.post("/interactions/known", params={"token": TOKEN}, json={"drugs": ["a", "b"]})
        assert response.status_code == 201

    def test_unconfigured_token_refuses_everything(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CURATED_EDITOR_TOKEN", None)
        response = client.post("/interactions/known", json={"drugs": ["a", "b"]}, headers=ADMIN)
        assert response.status_code == 403

    def test_clear_overlay(self, client, engine):
        engine.add_known({"drugs": ["a", "b"]})
        engine.add_known({"drugs": ["c", "d"]})
        assert client.delete("/interactions/known/overlay").status_code == 403
        response = client.delete("/interactions/known/overlay", headers=ADMIN)
        assert response.json() == {"cleared": True, "removed": 2}
        assert len(engine.knowledge_base.overlay) == 0


class TestInteractionCheck:
    """POST /interactions/check"""

    def test_warfarin_amiodarone(self, client):
        response = client.post("/interactions/check", json={"drugs": ["Warfarin 5mg", "Amiodarone"]})
        assert response.status_code == 200
        data = response.json()
        assert data["inputDrugs"] == ["Warfarin 5mg", "Amiodarone"]
        assert data["foundDrugs"] == [{"name": "Amiodarone", "rxcui": "703"}]
        assert data["unresolvedDrugs"] == ["Warfarin 5mg"]
        stored = data["interactions"]["stored"]
        assert len(stored) == 1
        assert stored[0]["severity"] == "major"
        assert stored[0]["riskLevel"] == "HIGH"
        assert data["interactionCount"] == 1
        assert data["sources"] == ["curated"]

    def test_regional_brands_match_through_aliases(self, client):
        data = client.post("/interactions/check", json={"drugs": ["Arkamin", "Metpure"]}).json()
        assert data["interactionCount"] == 1
        assert data["interactions"]["stored"][0]["matched_pair"] == ["clonidine", "metoprolol"]

    def test_identifier_inputs_match_curated_pairs(self, client):
        data = client.post("/interactions/check", json={"drugs": ["11289", "703"]}).json()
        assert data["inputDrugs"] == ["11289", "703"]
        assert data["foundDrugs"] == [
            {"name": "warfarin", "rxcui": "11289"},
            {"name": "amiodarone", "rxcui": "703"},
        ]
        assert data["unresolvedDrugs"] == []
        assert data["interactionCount"] == 1
        stored = data["interactions"]["stored"][0]
        assert stored["matched_pair"] == ["warfarin", "amiodarone"]
        assert stored["riskLevel"] == "HIGH"

    def test_identifier_named_by_terminology_service(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "CURATED_EDITOR_TOKEN", TOKEN)
        app.state.engine = make_engine(tmp_path, FakeTerminology(names={"38413": "torsemide"}))
        try:
            data = TestClient(app).post("/interactions/check", json={"drugs": ["38413", "Lithium"]}).json()
        finally:
            app.state.engine = None
        assert data["foundDrugs"][0] == {"name": "torsemide", "rxcui": "38413"}
        assert data["interactions"]["stored"][0]["matched_pair"] == ["torsemide", "lithium"]

    def test_requires_two_drugs(self, client):
        assert client.post("/interactions/check", json={"drugs": ["warfarin"]}).status_code == 422

    def test_blank_names_rejected(self, client):
        assert client.post("/interactions/check", json={"drugs": ["warfarin", "  "]}).status_code == 400


class TestSuggestions:
    """GET /drugs/suggestions"""

    def test_short_query(self, client):
        assert client.get("/drugs/suggestions", params={"q": "a"}).json() == {"suggestions": [], "offline": False}

    def test_brand_fragment_reaches_generic(self, client):
        data = client.get("/drugs/suggestions", params={"q": "arka"}).json()
        assert data["offline"] is False
        first = data["suggestions"][0]
        assert first["name"] == "clonidine"
        assert first["rxcui"] == "2599"
        assert first["originBrand"] == "arkamin"
        assert first["originRegion"] == "IN"

    def test_offline_fallback(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "CURATED_EDITOR_TOKEN", TOKEN)
        app.state.engine = make_engine(tmp_path, FakeTerminology(fail=True))
        try:
            data = TestClient(app).get("/drugs/suggestions", params={"q": "asp", "limit": 100}).json()
        finally:
            app.state.engine = None
        assert data["offline"] is True
        assert data["suggestions"][0]["name"] == "aspirin"
        assert len(data["suggestions"]) <= settings.SUGGESTION_MAX_LIMIT

    def test_limit_clamped_low(self, client):
        data = client.get("/drugs/suggestions", params={"q": "mor", "limit": 0}).json()
        assert 1 <= len(data["suggestions"]) <= settings.SUGGESTION_DEFAULT_LIMIT

    def test_unknown_query_logged(self, client, engine):
        client.get("/drugs/suggestions", params={"q": "zzqx"})
        assert engine.unknown_log.summarize() == [{"term": "zzqx", "count": 1}]


class TestBrandAliasSearch:
    """GET /drugs/brand-aliases/search"""

    def test_short_query_rejected(self, client):
        assert client.get("/drugs/brand-aliases/search", params={"q": "a"}).status_code == 400
        assert client.get("/drugs/brand-aliases/search").status_code == 400

    def test_local_results(self, client):
        data = client.get("/drugs/brand-aliases/search", params={"q": "arka"}).json()
        assert data["query"] == "arka"
        assert data["count"] == 1
        assert data["results"][0] == {"brand": "arkamin", "generic": "clonidine", "relevance": "high", "source": "Local"}
        assert data["sources"] == ["Local"]
        assert data["message"] == "Found 1 local brand aliases"

    def test_external_results_merged(self, tmp_path, monkeypatch):
        brands = [
            {"brand": "Catapres", "generic": "clonidine hydrochloride", "relevance": "medium", "source": "RxNav"},
            {"brand": "Ciloxan", "generic": "ciprofloxacin", "relevance": "high", "source": "RxNav"},
        ]
        app.state.engine = make_engine(tmp_path, FakeTerminology(brands=brands))
        try:
            data = TestClient(app).get("/drugs/brand-aliases/search", params={"q": "ci"}).json()
        finally:
            app.state.engine = None
        assert data["sources"] == ["Local", "RxNav"]
        assert [r["brand"] for r in data["results"]] == ["cilacar", "cilicar", "Ciloxan"]
        assert data["message"] == "Found 2 local and 1 external brand aliases"


class TestAliasAdmin:
    """Admin alias routes"""

    def test_requires_token(self, client):
        assert client.get("/drugs/admin/aliases").status_code == 403

    def test_promote_and_list(self, client, engine, tmp_path):
        client.get("/drugs/suggestions", params={"q": "telmaz"})
        assert client.get("/drugs/admin/aliases/unknown", headers=ADMIN).json()["count"] == 1

        response = client.post(
            "/drugs/admin/aliases/promote", json={"brand": "Telmaz", "generic": "Telmisartan"}, headers=ADMIN,
        )
        assert response.json() == {"ok": True, "brand": "telmaz", "generic": "telmisartan"}

        aliases = client.get("/drugs/admin/aliases", headers=ADMIN).json()
        assert aliases["aliases"]["telmaz"] == "telmisartan"
        stored = json.loads((tmp_path / "brand_aliases.json").read_text(encoding="utf-8"))
        assert stored["telmaz"] == "telmisartan"
        assert client.get("/drugs/admin/aliases/unknown", headers=ADMIN).json() == {"count": 0, "items": []}

    def test_promote_over_corrupt_alias_file(self, client, tmp_path):
        (tmp_path / "brand_aliases.json").write_text("{broken", encoding="utf-8")
        response = client.post(
            "/drugs/admin/aliases/promote", json={"brand": "Dolo", "generic": "acetaminophen"}, headers=ADMIN,
        )
        assert response.status_code == 200
        stored = json.loads((tmp_path / "brand_aliases.json").read_text(encoding="utf-8"))
        assert stored["dolo"] == "acetaminophen"
        assert stored["arkamin"] == "clonidine"

    def test_promote_requires_brand(self, client):
        response = client.post("/drugs/admin/aliases/promote", json={"generic": "x"}, headers=ADMIN)
        assert response.status_code == 400

    def test_clear_unknown(self, client, engine):
        engine.unknown_log.record("alpha")
        engine.unknown_log.record("beta")
        response = client.delete("/drugs/admin/aliases/unknown", params={"brand": "alpha"}, headers=ADMIN)
        assert response.json() == {"ok": True, "removed": 1}
        response = client.delete("/drugs/admin/aliases/unknown", params={"all": "true"}, headers=ADMIN)
        assert response.json() == {"ok": True, "removed": 1}


class TestPharmacogenomics:

    def test_guidance_by_gene(self, client):
        data = client.get("/pharmacogenomics/guidance", params={"gene": "CYP2C19"}).json()
        assert data["count"] == 1
        assert data["guidelines"][0]["drug"] == "clopidogrel"

    def test_guidance_by_drug(self, client):
        data = client.get("/pharmacogenomics/guidance", params={"drug": "5-FU"}).json()
        assert [g["gene"] for g in data["guidelines"]] == ["DPYD"]
