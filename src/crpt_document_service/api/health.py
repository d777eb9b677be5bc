import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from crpt_document_service.services.crpt_gateway import limiter_status

logger = logging.getLogger(__name__)
router = APIRouter(tags=["service"])


class HealthResponse(BaseModel):
    status: str = Field(
        ...,
        json_schema_extra={"example": "ok"},
    )


class HealthLimiterResponse(BaseModel):
    status: str = Field(..., json_schema_extra={"example": "ok"})
    limit: int = Field(
        ...,
        description="Max CRPT calls per window.",
        json_schema_extra={"example": 10},
    )
    period_s: float = Field(
        ...,
        description="Sliding window length in seconds.",
        json_schema_extra={"example": 1.0},
    )
    available: int = Field(
        ...,
        description="Slots free right now in the current window.",
        json_schema_extra={"example": 7},
    )


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/health/limiter",
    response_model=HealthLimiterResponse,
    summary="CRPT rate limiter state",
    responses={
        500: {"description": "Service misconfiguration (e.g. CRPT_RL_LIMIT <= 0 or unparsable)."},
    },
)
async def health_limiter() -> HealthLimiterResponse:
    try:
        limit, period_s, available = limiter_status()
    except ValueError as exc:
        logger.exception("Rate limiter misconfiguration")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return HealthLimiterResponse(
        status="ok",
        limit=limit,
        period_s=period_s,
        available=available,
    )
