"""
JSON API routes for address normalisation, ingestion, comparables and facts.

Thin envelopes over the shuma core: request bodies are validated by pydantic,
per-row data problems are reported inside results rather than as HTTP errors.
"""

import logging
import time
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from shuma.address import fuzzy_address_score, normalize_israeli_address
from shuma.comp_engine import (
    ComparableCandidate,
    SubjectPropertyFeatures,
    calculate_valuation_range,
    rank_comparables,
)
from shuma.factual import build_factual_data_layer
from shuma.ingestion import IngestionRun, run_ingestion_pipeline


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["api"])


# =============================================================================
# Request Models
# =============================================================================


class NormalizeAddressRequest(BaseModel):
    """Request body for address normalisation."""
    address: str


class CompareAddressesRequest(BaseModel):
    """Request body for fuzzy address comparison."""
    a: str
    b: str


class IngestionRunRequest(BaseModel):
    """Raw rows are kept as mappings; validation happens per row in the pipeline."""
    rows: List[Dict[str, Any]]
    created_by: str = "api"
    reference_date: Optional[date] = None
    use_fingerprint_store: bool = False


class SubjectInput(BaseModel):
    """Subject property feature vector."""
    area_sqm: Optional[float] = None
    floor_num: Optional[float] = None
    rooms: Optional[float] = None
    building_age_years: Optional[float] = None


class ComparableInput(BaseModel):
    """Candidate comparable with its recorded price."""
    id: str
    distance_meters: Optional[float] = None
    area_sqm: Optional[float] = None
    floor_num: Optional[float] = None
    rooms: Optional[float] = None
    building_age_years: Optional[float] = None
    price: Optional[float] = None


class ComparableSearchRequest(BaseModel):
    """Request body for comparable ranking and valuation."""
    subject: SubjectInput
    pool: List[ComparableInput] = Field(default_factory=list)
    top_k: Optional[int] = None


class FactualDataRequest(BaseModel):
    """Facts are passed through as mappings to the engine's own parsers."""
    property: Optional[Dict[str, Any]] = None
    transactions: Optional[List[Dict[str, Any]]] = None
    planning: Optional[List[Dict[str, Any]]] = None
    as_of: Optional[datetime] = None


# =============================================================================
# Helpers
# =============================================================================


def _rank(request: Request, body: ComparableSearchRequest):
    top_k = body.top_k if body.top_k is not None else request.app.state.config.default_top_k
    subject = SubjectPropertyFeatures.from_dict(body.subject.model_dump())
    pool = [ComparableCandidate.from_dict(c.model_dump()) for c in body.pool]
    if not pool:
        return []
    return rank_comparables(subject, pool, top_k)


# =============================================================================
# Address
# =============================================================================


@router.post("/address/normalize")
async def normalize_address(body: NormalizeAddressRequest):
    """Normalise a Hebrew free-text address."""
    return normalize_israeli_address(body.address).to_dict()


@router.post("/address/compare")
async def compare_addresses(body: CompareAddressesRequest):
    """Fuzzy similarity of two free-text addresses (0-1)."""
    return {"a": body.a, "b": body.b, "score": fuzzy_address_score(body.a, body.b)}


# =============================================================================
# Ingestion
# =============================================================================


@router.post("/ingestion/run")
async def run_ingestion(request: Request, body: IngestionRunRequest):
    """
    Run a batch through the ingestion pipeline and store the run.

    Returns:
        Stored run with its result partitions and stats
    """
    store = request.app.state.fingerprint_store if body.use_fingerprint_store else None

    started = time.perf_counter()
    result = run_ingestion_pipeline(
        body.rows,
        reference_date=body.reference_date,
        fingerprint_store=store,
    )
    elapsed_ms = (time.perf_counter() - started) * 1000

    run = IngestionRun.create(result, created_by=body.created_by, elapsed_ms=elapsed_ms)
    request.app.state.ingestion_runs.save(run)
    logger.info("Stored ingestion run %s (%d rows)", run.run_id, result.total)
    return run.to_dict()


@router.get("/ingestion/runs")
async def list_ingestion_runs(request: Request, limit: int = Query(20, ge=1, le=100)):
    """Most recent ingestion runs, newest first (summaries only)."""
    runs = request.app.state.ingestion_runs.list_runs(limit=limit)
    return {"runs": [r.to_summary_dict() for r in runs], "count": len(runs)}


@router.get("/ingestion/{run_id}")
async def get_ingestion_run(request: Request, run_id: str):
    """Full stored ingestion run."""
    run = request.app.state.ingestion_runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Ingestion run not found")
    return run.to_dict()


# =============================================================================
# Comparables and valuation
# =============================================================================


@router.post("/comparables/search")
async def search_comparables(request: Request, body: ComparableSearchRequest):
    """Rank the supplied pool against the subject."""
    ranked = _rank(request, body)
    return {"comparables": [c.to_dict() for c in ranked], "count": len(ranked)}


@router.post("/valuations/estimate")
async def estimate_valuation(request: Request, body: ComparableSearchRequest):
    """
    Rank the pool and derive a low / mid / high range.

    The range is an advisory starting point for the appraiser.
    """
    ranked = _rank(request, body)
    summary = calculate_valuation_range(ranked)
    return {
        "valuation": summary.to_dict(),
        "comparables": [c.to_dict() for c in ranked],
    }


# =============================================================================
# Factual data
# =============================================================================


@router.post("/factual-data")
async def factual_data(body: FactualDataRequest):
    """Reliability-annotated facts. Never contains a price opinion."""
    data = body.model_dump(exclude={"as_of"})
    return build_factual_data_layer(data, as_of=body.as_of).to_dict()
