"""
Washroom Quote - FastAPI Backend API

This API serves the quote wizard: pricing snapshots, estimate calculation,
PDF estimates and the submissions (leads) the admin team follows up on.
"""

import logging
import os
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Optional, List, Dict, Union
from enum import Enum

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from calculator import (
    ConfigurationError,
    CostEstimator,
    CustomerDetails,
    Dimensions,
    EstimateBreakdown,
    EstimateError,
    PlumbingRequirement,
    PricingContext,
    ProjectType,
    SelectionSet,
    SubmissionStatus,
    Timeline,
    build_submission,
    compare_timelines,
    summarize_submissions,
)
from api import supabase_store as store
from api.logging_config import setup_logging
from api.pdf_generator import EstimatePDFGenerator

API_VERSION = "1.0.0"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
MAX_CACHED_SESSIONS = int(os.getenv("MAX_CACHED_SESSIONS", "1000"))

setup_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Washroom Quote API",
    description="Washroom renovation quote calculator and lead tracking",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
pdf_generator = EstimatePDFGenerator()


# ============================================================================
# Session pricing cache
# ============================================================================

class SessionPricingCache:
    """One pricing snapshot per wizard session so rates cannot change mid-flow."""

    def __init__(self, max_sessions: int = MAX_CACHED_SESSIONS):
        self.max_sessions = max_sessions
        self._contexts: "OrderedDict[str, PricingContext]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: Optional[str]) -> PricingContext:
        if not session_id:
            return store.pricing_store.load_pricing_context()

        with self._lock:
            context = self._contexts.get(session_id)
            if context is not None:
                self._contexts.move_to_end(session_id)
                return context

        context = store.pricing_store.load_pricing_context()
        with self._lock:
            # A concurrent request for the same session may have won the race
            context = self._contexts.setdefault(session_id, context)
            self._contexts.move_to_end(session_id)
            while len(self._contexts) > self.max_sessions:
                self._contexts.popitem(last=False)
        return context

    def end(self, session_id: str) -> bool:
        with self._lock:
            return self._contexts.pop(session_id, None) is not None

    def clear(self):
        with self._lock:
            self._contexts.clear()


pricing_cache = SessionPricingCache()


# ============================================================================
# Pydantic Models
# ============================================================================

class ProjectTypeEnum(str, Enum):
    new = "new"
    renovation = "renovation"


class PlumbingRequirementEnum(str, Enum):
    complete = "complete"
    fixture_only = "fixtureOnly"


class TimelineEnum(str, Enum):
    standard = "standard"
    flexible = "flexible"


class SubmissionStatusEnum(str, Enum):
    new = "new"
    contacted = "contacted"
    qualified = "qualified"
    not_interested = "not-interested"


class DimensionsInput(BaseModel):
    length: float
    width: float
    height: Optional[float] = None  # Wall height from the rate settings when omitted


class CustomerInput(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""


class SelectionRequest(BaseModel):
    project_type: Optional[ProjectTypeEnum] = None
    dimensions: DimensionsInput
    electrical_fixtures: List[str] = []
    plumbing_requirement: Optional[PlumbingRequirementEnum] = None
    additional_fixtures: List[str] = []
    timeline: Optional[TimelineEnum] = None
    brand_id: Optional[str] = None
    customer: CustomerInput = CustomerInput()

    def to_selection_set(self, default_height: float) -> SelectionSet:
        dims = self.dimensions
        return SelectionSet(
            project_type=ProjectType(self.project_type.value) if self.project_type else None,
            dimensions=Dimensions(
                length=dims.length,
                width=dims.width,
                height=dims.height if dims.height is not None else default_height,
            ),
            electrical_fixture_ids=frozenset(self.electrical_fixtures),
            plumbing_requirement=(
                PlumbingRequirement(self.plumbing_requirement.value) if self.plumbing_requirement else None
            ),
            additional_fixture_ids=frozenset(self.additional_fixtures),
            timeline=Timeline(self.timeline.value) if self.timeline else None,
            brand_id=self.brand_id or None,
            customer=CustomerDetails(
                name=self.customer.name,
                email=self.customer.email,
                phone=self.customer.phone,
                location=self.customer.location,
            ),
        )


class EstimateResponse(BaseModel):
    breakdown: Dict[str, Union[int, float]]
    using_defaults: bool
    unknown_selections: Dict[str, List[str]] = {}


class SubmissionResponse(BaseModel):
    id: Optional[str] = None
    customer_details: Dict[str, str]
    estimate_amount: float
    form_data: dict
    breakdown: Dict[str, Union[int, float]]
    status: str
    submitted_at: str


class StatusUpdateRequest(BaseModel):
    status: SubmissionStatusEnum


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str


# ============================================================================
# Helpers
# ============================================================================

def _selections_and_context(request: SelectionRequest, session_id: Optional[str]):
    context = pricing_cache.get(session_id)
    return request.to_selection_set(context.rates.wall_height), context


def _run_estimate(context: PricingContext, selections: SelectionSet) -> EstimateBreakdown:
    """Run the estimator, turning its errors into HTTP errors."""
    try:
        return CostEstimator(context).estimate(selections)
    except ConfigurationError as e:
        logger.error("Pricing configuration error: %s", e)
        raise HTTPException(status_code=500, detail=f"Pricing configuration error: {e}")
    except EstimateError as e:
        logger.info("Rejected estimate: %s", e)
        raise HTTPException(status_code=422, detail=str(e))


def _submission_response(record) -> SubmissionResponse:
    row = record.to_row()
    return SubmissionResponse(id=record.id, **row)


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/", response_model=HealthResponse)
async def root():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        version=API_VERSION
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        version=API_VERSION
    )


@app.get("/api/v1/pricing")
def get_pricing(session_id: Optional[str] = Query(None)):
    """
    Get the pricing snapshot for a wizard session.

    Returns: Rates, fixture catalogs and brands, plus whether built-in
    defaults are being used because the store could not be reached
    """
    return pricing_cache.get(session_id).to_dict()


@app.delete("/api/v1/pricing/{session_id}")
def end_pricing_session(session_id: str):
    """Forget a session's pricing snapshot (e.g. when the wizard is reset)."""
    return {"session_id": session_id, "ended": pricing_cache.end(session_id)}


@app.post("/api/v1/estimate", response_model=EstimateResponse)
def estimate(request: SelectionRequest, session_id: Optional[str] = Query(None)):
    """
    Calculate a washroom estimate from the wizard's selections.

    Returns: Full cost breakdown
    """
    selections, context = _selections_and_context(request, session_id)
    breakdown = _run_estimate(context, selections)
    return EstimateResponse(
        breakdown=breakdown.to_dict(),
        using_defaults=context.using_defaults,
        unknown_selections=CostEstimator(context).unknown_selections(selections),
    )


@app.post("/api/v1/compare-timelines", response_model=Dict[str, float])
def compare_timeline_options(request: SelectionRequest, session_id: Optional[str] = Query(None)):
    """Estimate totals for the standard and the flexible timeline."""
    selections, context = _selections_and_context(request, session_id)
    _run_estimate(context, selections)
    return compare_timelines(context, selections)


@app.post("/api/v1/submissions", response_model=SubmissionResponse, status_code=201)
def create_submission(request: SelectionRequest, session_id: Optional[str] = Query(None)):
    """
    Calculate the estimate and save it as a new lead.

    Returns: The saved submission
    """
    selections, context = _selections_and_context(request, session_id)
    breakdown = _run_estimate(context, selections)
    record = build_submission(selections, breakdown)

    try:
        record = record.with_id(store.submission_store.save(record))
    except store.StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return _submission_response(record)


@app.get("/api/v1/submissions", response_model=List[SubmissionResponse])
def list_submissions(status: Optional[SubmissionStatusEnum] = Query(None)):
    """List submissions, newest first."""
    try:
        records = store.submission_store.list_submissions(
            SubmissionStatus(status.value) if status else None
        )
    except store.StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [_submission_response(record) for record in records]


@app.patch("/api/v1/submissions/{submission_id}/status")
def update_submission_status(submission_id: str, request: StatusUpdateRequest):
    """Change a lead's follow-up status."""
    try:
        row = store.submission_store.update_status(submission_id, SubmissionStatus(request.status.value))
    except store.SubmissionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except store.StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"id": str(row.get("id", submission_id)), "status": row.get("status", request.status.value)}


@app.get("/api/v1/dashboard")
def dashboard():
    """Submission counts per status and estimate totals."""
    try:
        records = store.submission_store.list_submissions()
    except store.StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return summarize_submissions(records)


@app.post("/api/v1/generate-pdf")
def generate_pdf_report(request: SelectionRequest, session_id: Optional[str] = Query(None)):
    """
    Generate a PDF estimate.

    Returns: PDF file as a downloadable stream
    """
    selections, context = _selections_and_context(request, session_id)
    breakdown = _run_estimate(context, selections)

    brand = context.brands.get(selections.brand_id)
    pdf_buffer = pdf_generator.generate_report(
        selections=selections,
        breakdown=breakdown,
        brand_name=brand.name if brand else None,
        timeline_totals=compare_timelines(context, selections),
        using_defaults=context.using_defaults,
    )

    safe_name = "".join(c for c in selections.customer.name if c.isalnum() or c in (' ', '-', '_')).strip()
    download_filename = f"{safe_name or 'washroom'}_estimate.pdf"

    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{download_filename}"'
        }
    )


# ============================================================================
# Run server
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
