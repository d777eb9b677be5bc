from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from crpt_document_service.core.config import get_settings

logger = logging.getLogger(__name__)

CREATE_DOCUMENT_PATH = "/lk/documents/create"


@dataclass(frozen=True)
class CrptResponse:
    status_code: int
    data: dict[str, Any] | list[Any] | None
    text: str


class CrptClient:
    def __init__(self) -> None:
        settings = get_settings()

        if not settings.crpt_base_url:
            raise RuntimeError("CRPT_BASE_URL is not set.")

        self._url = f"{settings.crpt_base_url}{CREATE_DOCUMENT_PATH}"
        self._timeout = httpx.Timeout(
            settings.read_timeout_s,
            connect=settings.connect_timeout_s,
        )
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if settings.crpt_token:
            self._headers["Authorization"] = f"Bearer {settings.crpt_token}"

    def create_document(self, payload: str) -> CrptResponse:
        """
        POST an already serialized document to the CRPT document-creation endpoint.

        Raises httpx.HTTPStatusError for non-2xx answers and other
        httpx.HTTPError subclasses for transport failures or an undecodable body.
        """
        logger.info("CRPT request: POST %s bytes=%s", self._url, len(payload))

        with httpx.Client(headers=self._headers, timeout=self._timeout) as client:
            resp = client.post(self._url, content=payload.encode("utf-8"))

        return self._handle_response(resp)

    async def acreate_document(self, payload: str) -> CrptResponse:
        logger.info("CRPT request: POST %s bytes=%s", self._url, len(payload))

        async with httpx.AsyncClient(headers=self._headers, timeout=self._timeout) as client:
            resp = await client.post(self._url, content=payload.encode("utf-8"))

        return self._handle_response(resp)

    @staticmethod
    def _handle_response(resp: httpx.Response) -> CrptResponse:
        logger.info("CRPT response: status=%s body=%s", resp.status_code, resp.text)

        resp.raise_for_status()

        data = None
        if "json" in resp.headers.get("Content-Type", "") and resp.content:
            try:
                data = resp.json()
            except ValueError as exc:
                raise httpx.DecodingError(f"Invalid JSON from CRPT: {exc}", request=resp.request) from exc

        return CrptResponse(
            status_code=resp.status_code,
            data=data,
            text=resp.text,
        )
