"""
CIA REST API client — async httpx.

Alternate backend path: the same entities served by the hosted CIA API
instead of the local document store. Bearer token is injected per request;
every response body goes through the envelope decoder before it is
returned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from cia_api.config import settings
from cia_api.schemas.reports import GenericReport, ReportModel
from cia_api.services.upstream.envelope import (
    decode_envelope,
    decode_list_envelope,
    decode_report,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0  # seconds

# Report kind -> endpoint (reports addressed by id are built per call).
REPORT_PATHS: Dict[str, str] = {
    "demographic": "/reports/demographic",
    "question_insights": "/reports/survey",
    "system_clients": "/reports/system/clients",
    "system_customers": "/reports/system/customers",
    "system_campaigns": "/reports/system/campaigns",
    "system_surveys": "/reports/system/surveys",
    "system_submissions": "/reports/system/submissions",
    "full_system": "/reports",
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class APIError(Exception):
    """Custom exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


# ---------------------------------------------------------------------------
# CiaApiClient
# ---------------------------------------------------------------------------

class CiaApiClient:
    """Async client for the CIA REST API (caller closes via ``aclose()``)."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=self._default_headers(),
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> "CiaApiClient":
        return cls(
            settings.cia_api_base_url,
            token=settings.cia_api_token,
            timeout=settings.cia_api_timeout,
        )

    # -- helpers --

    def _default_headers(self) -> Dict[str, str]:
        """Non-auth headers only; auth is added per request."""
        return {"Accept": "application/json", "Content-Type": "application/json"}

    def _prepare_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        merged: Dict[str, str] = dict(headers or {})
        if "Authorization" not in merged and self.token:
            merged["Authorization"] = f"Bearer {self.token}"
        return merged

    # -- core request methods --

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        try:
            resp = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._prepare_headers(headers),
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status != 404:
                logger.error(f"{method} {path} -> HTTP {status}")
            raise APIError(
                f"HTTP {status}: {exc.response.text[:500]}",
                status_code=status,
                response=exc.response.text,
            ) from exc
        except httpx.RequestError as exc:
            logger.error(f"{method} {path} failed: {exc}")
            raise APIError(f"Request failed: {exc}") from exc

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return {"text": resp.text}

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._send("GET", path, params=params)

    async def _post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return await self._send("POST", path, json=json)

    async def _put(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return await self._send("PUT", path, json=json)

    async def _delete(self, path: str) -> None:
        await self._send("DELETE", path)

    async def _get_or_none(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET that maps 404 to ``None``."""
        try:
            return await self._get(path, params=params)
        except APIError as exc:
            if exc.status_code == 404:
                logger.warning(f"GET {path} -> 404")
                return None
            raise

    # -- generic resource operations --

    async def _list(
        self, path: str, entity_key: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        return decode_list_envelope(await self._get(path, params=params), entity_key)

    async def _fetch(
        self, resource: str, entity_id: str, entity_key: str, required: Iterable[str]
    ) -> Optional[Dict[str, Any]]:
        payload = await self._get_or_none(f"/{resource}/{entity_id}")
        if payload is None:
            return None
        return decode_envelope(payload, entity_key, required)

    async def _create(
        self, resource: str, data: Dict[str, Any], entity_key: str, required: Iterable[str]
    ) -> Dict[str, Any]:
        return decode_envelope(await self._post(f"/{resource}/create", data), entity_key, required)

    async def _update(
        self,
        resource: str,
        entity_id: str,
        data: Dict[str, Any],
        entity_key: str,
        required: Iterable[str],
    ) -> Dict[str, Any]:
        return decode_envelope(
            await self._put(f"/{resource}/{entity_id}", data), entity_key, required
        )

    # -- clients --

    async def list_clients(self) -> List[Dict[str, Any]]:
        return await self._list("/clients/list", "clients")

    async def get_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetch("clients", client_id, "client", ("id", "name"))

    async def create_client(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._create("clients", data, "client", ("id", "email"))

    async def update_client(self, client_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._update("clients", client_id, data, "client", ("id", "email"))

    async def delete_client(self, client_id: str) -> None:
        await self._delete(f"/clients/{client_id}")

    # -- brands --

    async def list_brands(self, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if client_id:
            return await self._list("/brands", "brands", {"clientId": client_id})
        return await self._list("/brands/list", "brands")

    async def get_brand(self, brand_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetch("brands", brand_id, "brand", ("id", "name"))

    async def create_brand(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._create("brands", data, "brand", ("id", "name"))

    async def update_brand(self, brand_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._update("brands", brand_id, data, "brand", ("id", "name"))

    async def delete_brand(self, brand_id: str) -> None:
        await self._delete(f"/brands/{brand_id}")

    # -- campaigns --

    async def list_campaigns(self, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if client_id:
            return await self._list("/campaigns", "campaigns", {"clientId": client_id})
        return await self._list("/campaigns/list", "campaigns")

    async def get_campaign(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetch("campaigns", campaign_id, "campaign", ("id", "name"))

    async def create_campaign(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._create("campaigns", data, "campaign", ("id", "name"))

    async def update_campaign(self, campaign_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._update("campaigns", campaign_id, data, "campaign", ("id", "name"))

    async def delete_campaign(self, campaign_id: str) -> None:
        await self._delete(f"/campaigns/{campaign_id}")

    # -- surveys --

    async def list_surveys(
        self, campaign_id: Optional[str] = None, brand_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        if campaign_id:
            return await self._list("/surveys", "surveys", {"campaignId": campaign_id})
        if brand_id:
            return await self._list("/surveys", "surveys", {"brandId": brand_id})
        return await self._list("/surveys/list", "surveys")

    async def get_survey(self, survey_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetch("surveys", survey_id, "survey", ("id", "name"))

    async def create_survey(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._create("surveys", data, "survey", ("id", "name"))

    async def update_survey(self, survey_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._update("surveys", survey_id, data, "survey", ("id", "name"))

    async def delete_survey(self, survey_id: str) -> None:
        await self._delete(f"/surveys/{survey_id}")

    async def add_question_to_survey(
        self, survey_id: str, question: Dict[str, Any]
    ) -> Dict[str, Any]:
        payload = await self._post(f"/surveys/{survey_id}/questions", question)
        return decode_envelope(payload, "question", ("id", "text"))

    async def update_question_in_survey(
        self, survey_id: str, question_id: str, question: Dict[str, Any]
    ) -> Dict[str, Any]:
        payload = await self._put(f"/surveys/{survey_id}/questions/{question_id}", question)
        return decode_envelope(payload, "question", ("id", "text"))

    async def remove_question_from_survey(self, survey_id: str, question_id: str) -> None:
        await self._delete(f"/surveys/{survey_id}/questions/{question_id}")

    # -- reports --

    async def get_report(
        self, kind: str, params: Optional[Dict[str, Any]] = None
    ) -> Optional[Union[ReportModel, GenericReport]]:
        """Fetch a report by kind; ``None`` when the upstream has none (404)."""
        try:
            path = REPORT_PATHS[kind]
        except KeyError:
            raise ValueError(f"Unknown report kind: {kind}") from None
        return await self._report(kind, path, params)

    async def get_survey_analysis_report(
        self, survey_id: str
    ) -> Optional[Union[ReportModel, GenericReport]]:
        return await self._report("survey_analysis", f"/reports/survey/analysis/{survey_id}")

    async def get_brand_insights_report(
        self, brand_id: str
    ) -> Optional[Union[ReportModel, GenericReport]]:
        return await self._report("brand_insights", f"/reports/brand/{brand_id}")

    async def _report(
        self, kind: str, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Optional[Union[ReportModel, GenericReport]]:
        payload = await self._get_or_none(path, params=params)
        if payload is None:
            return None
        return decode_report(kind, payload)

    async def aclose(self) -> None:
        await self._http.aclose()

    # context-manager support
    async def __aenter__(self) -> "CiaApiClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
