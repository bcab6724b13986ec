"""
Drug Interaction Engine - FastAPI REST API
Drug identity resolution, curated interaction lookup and export
"""
from datetime import datetime
from typing import Any, List, Optional
import logging

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from interaction_engine.api.auth import require_admin_token
from interaction_engine.config import settings
from interaction_engine.core.aggregator import (
    EXPORT_FORMATS,
    enriched_item,
    export_filename,
    render_export,
)
from interaction_engine.core.engine import InteractionEngine, build_engine
from interaction_engine.core.exceptions import InvalidOverlayRecord

logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


# Pydantic models for API
class KnownInteractionRequest(BaseModel):
    drugs: Optional[List[Any]] = None
    severity: Optional[str] = None
    mechanism: Optional[str] = None
    effect: Optional[str] = None
    management: Optional[str] = None
    evidence_level: Optional[str] = None
    sources: Optional[Any] = None
    rxcui: Optional[List[Any]] = None


class InteractionCheckRequest(BaseModel):
    drugs: List[str] = Field(..., min_length=2, max_length=settings.CHECK_MAX_DRUGS)


class AliasPromoteRequest(BaseModel):
    brand: Optional[str] = None
    generic: Optional[str] = None


class HealthCheckResponse(BaseModel):
    status: str
    version: str
    curated_interactions: int
    overlay_interactions: int
    brand_aliases: int
    timestamp: str


# Create FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    description="Resolves free-text and regional brand drug names to RxNorm identifiers and reports curated and external drug-drug interactions.",
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_engine(request: Request) -> InteractionEngine:
    """The process-wide engine, built on first use if startup did not run"""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        engine = build_engine()
        request.app.state.engine = engine
    return engine


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    logger.info("Starting Drug Interaction Engine...")
    if getattr(app.state, "engine", None) is None:
        app.state.engine = build_engine()


@app.on_event("shutdown")
async def shutdown_event():
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.close()
        logger.info("Drug Interaction Engine stopped")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint"""
    return {
        "name": settings.API_TITLE,
        "version": settings.API_VERSION,
        "status": "operational",
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthCheckResponse, tags=["Health"])
async def health_check(engine: InteractionEngine = Depends(get_engine)):
    """Health check endpoint"""
    return HealthCheckResponse(
        status="healthy",
        version=settings.API_VERSION,
        curated_interactions=engine.knowledge_base.dataset_size,
        overlay_interactions=len(engine.knowledge_base.overlay),
        brand_aliases=len(engine.alias_table),
        timestamp=datetime.now().isoformat()
    )


# ---------------------------------------------------------------------- interactions

@app.get("/interactions/known", tags=["Interactions"])
async def known_interactions(
    drug: Optional[str] = Query(None, description="Either drug in the pair contains this term"),
    drug_a: Optional[str] = Query(None, alias="drugA"),
    drug_b: Optional[str] = Query(None, alias="drugB"),
    severity: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    resolve_rx: bool = Query(False, alias="resolveRx"),
    view: Optional[str] = Query(None, description="enriched, csv or tsv"),
    engine: InteractionEngine = Depends(get_engine),
):
    """
    Curated interactions (dataset + overlay), filtered.

    `view=csv|tsv` returns a file download; `view=enriched` a compact JSON
    list; anything else the verbose JSON list.
    """
    items, total = await engine.known_interactions(
        drug=drug, drug_a=drug_a, drug_b=drug_b, severity=severity,
        limit=limit, resolve=resolve_rx,
    )
    filters = {"drug": drug, "drugA": drug_a, "drugB": drug_b, "severity": severity}

    if view in EXPORT_FORMATS:
        filename = export_filename(filters, view)
        return Response(
            content=render_export(items, view),
            media_type=EXPORT_FORMATS[view],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    if view == "enriched":
        items = [enriched_item(item) for item in items]

    return {
        "count": len(items),
        "total": total,
        "filters": filters,
        "interactions": items,
    }


@app.post("/interactions/known", status_code=201, tags=["Admin"],
          dependencies=[Depends(require_admin_token)])
async def add_known_interaction(
    request: KnownInteractionRequest,
    engine: InteractionEngine = Depends(get_engine),
):
    """Add a curated interaction to the in-memory overlay (not persisted)"""
    try:
        record = engine.add_known(request.model_dump(exclude_none=True))
    except InvalidOverlayRecord as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"added": 1, "item": record.to_dict()}


@app.get("/interactions/known/overlay", tags=["Interactions"])
async def list_overlay(engine: InteractionEngine = Depends(get_engine)):
    records = engine.knowledge_base.overlay.list()
    return {"count": len(records), "interactions": [r.to_dict() for r in records]}


@app.delete("/interactions/known/overlay", tags=["Admin"],
            dependencies=[Depends(require_admin_token)])
async def clear_overlay(engine: InteractionEngine = Depends(get_engine)):
    removed = engine.clear_overlay()
    return {"cleared": True, "removed": removed}


@app.post("/interactions/check", tags=["Interactions"])
async def check_interactions(
    request: InteractionCheckRequest,
    engine: InteractionEngine = Depends(get_engine),
):
    """
    Check a list of drug names or RXCUIs for interactions.

    Curated matches are always reported; external service matches are added
    for resolved drugs when the service is reachable.
    """
    drugs = [d for d in (name.strip() for name in request.drugs) if d]
    if len(drugs) < 2:
        raise HTTPException(status_code=400, detail="At least 2 drugs required")
    return await engine.check(drugs)


# ---------------------------------------------------------------------- drugs

@app.get("/drugs/suggestions", tags=["Drugs"])
async def drug_suggestions(
    q: str = Query("", description="Partial drug name"),
    limit: Optional[int] = Query(None),
    engine: InteractionEngine = Depends(get_engine),
):
    """Typeahead suggestions with brand alias expansion and offline fallback"""
    return await engine.suggestions(q, limit or settings.SUGGESTION_DEFAULT_LIMIT)


@app.get("/drugs/brand-aliases/search", tags=["Drugs"])
async def search_brand_aliases(
    q: Optional[str] = Query(None),
    engine: InteractionEngine = Depends(get_engine),
):
    """Search local and external brand -> generic aliases"""
    if not q or len(q.strip()) < 2:
        raise HTTPException(status_code=400, detail="Search query must be at least 2 characters long")
    return await engine.search_brand_aliases(q)


@app.get("/drugs/admin/aliases", tags=["Admin"], dependencies=[Depends(require_admin_token)])
async def list_aliases(engine: InteractionEngine = Depends(get_engine)):
    aliases = engine.alias_table.aliases()
    return {"count": len(aliases), "aliases": aliases}


@app.get("/drugs/admin/aliases/unknown", tags=["Admin"], dependencies=[Depends(require_admin_token)])
async def list_unknown_terms(engine: InteractionEngine = Depends(get_engine)):
    items = engine.unknown_log.summarize() if engine.unknown_log is not None else []
    return {"count": len(items), "items": items}


@app.post("/drugs/admin/aliases/promote", tags=["Admin"], dependencies=[Depends(require_admin_token)])
async def promote_alias(
    request: AliasPromoteRequest,
    engine: InteractionEngine = Depends(get_engine),
):
    """Map a brand to a generic (or to null: known, unmappable) and persist it"""
    if not request.brand or not request.brand.strip():
        raise HTTPException(status_code=400, detail="brand required")
    try:
        brand, generic = engine.promote_alias(request.brand, request.generic)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Failed to write aliases: {e}")
        raise HTTPException(status_code=500, detail="Failed to write aliases")
    return {"ok": True, "brand": brand, "generic": generic}


@app.delete("/drugs/admin/aliases/unknown", tags=["Admin"], dependencies=[Depends(require_admin_token)])
async def clear_unknown_terms(
    brand: Optional[str] = Query(None),
    clear_all: bool = Query(False, alias="all"),
    engine: InteractionEngine = Depends(get_engine),
):
    """Clear the whole unknown-term log, or only one brand's entries"""
    removed = 0
    if engine.unknown_log is not None:
        try:
            removed = engine.unknown_log.clear(None if clear_all else brand)
        except OSError as e:
            logger.error(f"Failed to clear unknown entries: {e}")
            raise HTTPException(status_code=500, detail="Failed to clear unknown entries")
    return {"ok": True, "removed": removed}


# ---------------------------------------------------------------------- pharmacogenomics

@app.get("/pharmacogenomics/guidance", tags=["Pharmacogenomics"])
async def pharmacogenomic_guidance(
    gene: Optional[str] = Query(None),
    drug: Optional[str] = Query(None),
    engine: InteractionEngine = Depends(get_engine),
):
    """CPIC gene/drug dosing guidance, optionally filtered by gene and drug"""
    guidelines = engine.knowledge_base.pharmacogenomic_guidance(gene=gene, drug=drug)
    return {"count": len(guidelines), "guidelines": [g.to_dict() for g in guidelines]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
