from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from crpt_document_service.services.crpt_gateway import CrptRateLimitExceeded, submit_introduce_goods_document
from crpt_document_service.services.documents import CreateGoodsDocumentRequest, DocumentSerializationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["documents"])


class SubmissionResponse(BaseModel):
    status: str = Field(..., json_schema_extra={"example": "submitted"})
    upstream_status: int = Field(
        ...,
        description="HTTP status returned by the CRPT document-creation endpoint.",
        json_schema_extra={"example": 200},
    )
    upstream_body: Any = Field(
        default=None,
        description="CRPT response body: parsed JSON when available, raw text otherwise.",
    )


@router.post(
    "/documents/introduce-goods",
    response_model=SubmissionResponse,
    summary="Introduce goods produced in RF into circulation",
    description=(
            "Serializes the document and submits it to CRPT. "
            "Calls are rate limited per process; requests over the limit wait "
            "for a free slot up to CRPT_RL_MAX_WAIT_S."
    ),
    responses={
        429: {"description": "No rate limit slot freed within CRPT_RL_MAX_WAIT_S."},
        500: {"description": "Service misconfiguration (e.g. invalid rate limit settings)."},
        502: {"description": "Upstream CRPT/network error."},
    },
)
async def introduce_goods(document: CreateGoodsDocumentRequest) -> SubmissionResponse:
    logger.info(
        "Request /v1/documents/introduce-goods doc_id=%s products=%s",
        document.doc_id,
        len(document.products),
    )

    try:
        resp = await submit_introduce_goods_document(document)

    except CrptRateLimitExceeded as exc:
        logger.warning("Rate limit exceeded in /v1/documents/introduce-goods")
        raise HTTPException(status_code=429, detail="Too many requests") from exc

    except (httpx.HTTPError, DocumentSerializationError) as exc:
        logger.exception("CRPT upstream failure in /v1/documents/introduce-goods doc_id=%s", document.doc_id)
        raise HTTPException(status_code=502, detail="CRPT upstream error") from exc

    except (RuntimeError, ValueError) as exc:
        # InvalidConfiguration and unparsable settings both land here
        logger.exception("Service misconfiguration in /v1/documents/introduce-goods")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    except Exception:
        logger.exception("Unexpected error in /v1/documents/introduce-goods")
        raise

    return SubmissionResponse(
        status="submitted",
        upstream_status=resp.status_code,
        upstream_body=resp.data if resp.data is not None else resp.text,
    )
