# =============================================================================
# Query API — Natural-Language Questions over a Tenant's Finances
# =============================================================================
#
#   POST /api/query           → run the pipeline for one tenant
#   GET  /api/tenants         → list selectable tenants (users collection)
#   GET  /api/query/examples  → sample questions grouped by data domain
#
# This module is thin: timing, error mapping and response shaping. All
# behaviour lives in the orchestrator.
#
# ERROR MAPPING:
#   ValidationError → 400 with the validation message (user-correctable)
#   anything else   → 500 with a generic message; details only in the log
# Every error body carries processing_time_ms.
# =============================================================================

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from finquery.agents.orchestrator import QueryOrchestrator
from finquery.api.deps import get_orchestrator
from finquery.errors import ValidationError
from finquery.models.requests import QueryRequest
from finquery.models.responses import (
    ErrorResponse,
    ExampleCategory,
    ExamplesResponse,
    QueryResponse,
    TenantListResponse,
    error_body,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Query"])

GENERIC_FAILURE = "An error occurred while processing your query"

EXAMPLES = [
    ExampleCategory(
        category="Bank Transactions",
        queries=[
            "How much did I spend on food?",
            "What are my travel expenses?",
            "Show my shopping transactions",
            "What did I spend at Amazon?",
            "Total spending in December 2024",
        ],
    ),
    ExampleCategory(
        category="Mutual Fund Holdings",
        queries=[
            "Show my mutual fund holdings",
            "What is my total MF investment value?",
            "Which mutual fund has the highest returns?",
            "How much profit have I made on mutual funds?",
        ],
    ),
    ExampleCategory(
        category="Equity Holdings",
        queries=[
            "What stocks do I own?",
            "What is the value of my Reliance shares?",
            "How many TCS shares do I have?",
            "What is my total equity value?",
        ],
    ),
]


@router.post(
    "/query",
    response_model=QueryResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Ask a question about a tenant's financial data",
)
async def query_endpoint(
    request: QueryRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    start_time = time.monotonic()

    try:
        result = await orchestrator.process_query(
            request.question, request.tenant_id, request.tenant_name,
        )
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content=error_body("Bad Request", str(e), _elapsed_ms(start_time)),
        )
    except Exception as e:
        logger.exception(
            "Query processing failed (tenant=%s): %s", request.tenant_id, e,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(
                "Query Processing Failed",
                GENERIC_FAILURE,
                _elapsed_ms(start_time),
            ),
        )

    return QueryResponse(
        **result.model_dump(),
        processing_time_ms=_elapsed_ms(start_time),
    )


@router.get(
    "/tenants",
    response_model=TenantListResponse,
    summary="List tenants available for selection",
)
async def list_tenants(
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> TenantListResponse:
    try:
        tenants = await orchestrator.list_tenants()
    except Exception as e:
        logger.exception("Failed to fetch tenants: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch tenants") from e
    return TenantListResponse(tenants=tenants)


@router.get(
    "/query/examples",
    response_model=ExamplesResponse,
    summary="Example questions the service can answer",
)
async def query_examples() -> ExamplesResponse:
    return ExamplesResponse(examples=EXAMPLES)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
