"""Looker API 4.0 client over httpx.

Implements every collaborator interface the assistant consumes: schema
discovery, query creation/execution, dashboards, scheduled plans and user
attributes. Authentication uses the API3 client-credentials login; the access
token is refreshed shortly before it expires.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ...capabilities.looker_api import (
    Dashboard,
    DashboardElement,
    ExploreParams,
    LookerBackend,
    QueryHandle,
    ScheduledPlan,
)
from ...capabilities.semantic import (
    ExploreDescription,
    ExploreRef,
    LookmlExplore,
    LookmlModel,
)
from ...config import LookerSettings
from ...core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/4.0"
_TOKEN_REFRESH_MARGIN_S = 60


class LookerApiError(UpstreamServiceError):
    """Non-success response from the Looker API."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message, status=status, service="looker")


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or ""
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase or ""


class LookerClient(LookerBackend):
    """Async Looker client.

    Args:
        settings: Base URL and API credentials.
        http_client: Optional preconfigured ``httpx.AsyncClient`` (tests pass
            one built on ``httpx.MockTransport``).
    """

    def __init__(
        self,
        settings: LookerSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout,
            verify=settings.verify_ssl,
        )
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._login_lock = asyncio.Lock()
        self._me: Optional[Dict[str, Any]] = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _login(self) -> str:
        try:
            response = await self._client.post(
                f"{self.settings.base_url}{API_PREFIX}/login",
                data={
                    "client_id": self.settings.client_id,
                    "client_secret": self.settings.client_secret,
                },
            )
        except httpx.HTTPError as e:
            raise LookerApiError(f"Looker login failed: {e}") from e
        if not response.is_success:
            raise LookerApiError(
                f"Looker login failed: {_error_reason(response)}",
                status=response.status_code,
            )
        payload = response.json()
        self._access_token = payload["access_token"]
        self._token_expires_at = time.monotonic() + float(
            payload.get("expires_in", 3600)
        )
        return self._access_token

    def _token_is_fresh(self) -> bool:
        return (
            self._access_token is not None
            and time.monotonic() < self._token_expires_at - _TOKEN_REFRESH_MARGIN_S
        )

    async def _token(self) -> str:
        if self._token_is_fresh():
            return self._access_token
        # concurrent callers share a single login
        async with self._login_lock:
            if self._token_is_fresh():
                return self._access_token
            return await self._login()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        expect_json: bool = True,
    ) -> Any:
        token = await self._token()
        url = f"{self.settings.base_url}{API_PREFIX}{path}"
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"token {token}"},
            )
        except httpx.HTTPError as e:
            raise LookerApiError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            raise LookerApiError(
                f"{method} {path} failed: {_error_reason(response)}",
                status=response.status_code,
            )
        if not expect_json:
            return response.text
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # SchemaSource
    # ------------------------------------------------------------------

    async def list_models(self) -> List[LookmlModel]:
        payload = await self._request(
            "GET", "/lookml_models", params={"fields": "name,explores"}
        )
        return [
            LookmlModel(
                name=item.get("name") or "",
                explores=[
                    LookmlExplore.model_validate(explore)
                    for explore in item.get("explores") or []
                ],
            )
            for item in payload or []
        ]

    async def describe_explore(
        self, model_name: str, explore_id: str
    ) -> ExploreDescription:
        payload = await self._request(
            "GET",
            f"/lookml_models/{model_name}/explores/{explore_id}",
            params={"fields": "fields"},
        )
        fields = (payload or {}).get("fields") or {}
        return ExploreDescription(
            dimensions=list(fields.get("dimensions") or []),
            measures=list(fields.get("measures") or []),
        )

    # ------------------------------------------------------------------
    # QueryService
    # ------------------------------------------------------------------

    async def create_query(
        self, explore: ExploreRef, params: ExploreParams
    ) -> QueryHandle:
        body = {
            "model": explore.model_name,
            "view": explore.explore_id,
            "fields": params.fields,
            "filters": params.filters,
            "sorts": params.sorts,
            "limit": params.limit,
            "pivots": params.pivots,
            "fill_fields": params.fill_fields,
            "vis_config": params.vis_config,
        }
        payload = await self._request("POST", "/queries", json=body)
        return QueryHandle(id=payload["id"], client_id=payload.get("client_id"))

    async def run_query(self, query_id: str, result_format: str = "md") -> str:
        return await self._request(
            "GET", f"/queries/{query_id}/run/{result_format}", expect_json=False
        )

    # ------------------------------------------------------------------
    # DashboardService
    # ------------------------------------------------------------------

    async def list_dashboards(self) -> List[Dashboard]:
        payload = await self._request(
            "GET", "/dashboards", params={"fields": "id,title"}
        )
        return [
            Dashboard(id=item["id"], title=item.get("title") or "")
            for item in payload or []
            if item.get("id") is not None
        ]

    async def create_dashboard(self, title: str, description: str = "") -> Dashboard:
        me = await self._current_user()
        body: Dict[str, Any] = {"title": title, "description": description}
        if me.get("personal_folder_id") is not None:
            body["folder_id"] = str(me["personal_folder_id"])
        payload = await self._request("POST", "/dashboards", json=body)
        logger.info("Created dashboard %s (%s)", payload.get("id"), title)
        return Dashboard(id=payload["id"], title=payload.get("title") or title)

    async def add_tile(
        self, dashboard_id: str, query_id: str, title: str
    ) -> DashboardElement:
        payload = await self._request(
            "POST",
            "/dashboard_elements",
            json={
                "dashboard_id": dashboard_id,
                "query_id": query_id,
                "title": title,
                "type": "vis",
            },
        )
        return DashboardElement(
            id=payload.get("id"),
            dashboard_id=dashboard_id,
            query_id=query_id,
            title=payload.get("title") or title,
            type=payload.get("type") or "vis",
        )

    # ------------------------------------------------------------------
    # SchedulingService
    # ------------------------------------------------------------------

    async def create_scheduled_plan(
        self,
        query_id: str,
        title: str,
        email_address: str,
        result_format: str,
        crontab: str,
    ) -> ScheduledPlan:
        destinations = [
            {"format": result_format, "type": "email", "address": email_address}
        ]
        payload = await self._request(
            "POST",
            "/scheduled_plans",
            json={
                "name": title,
                "query_id": query_id,
                "scheduled_plan_destination": destinations,
                "crontab": crontab,
                "run_once": False,
            },
        )
        return ScheduledPlan(
            id=payload.get("id"),
            name=payload.get("name") or title,
            query_id=query_id,
            crontab=payload.get("crontab") or crontab,
            destinations=destinations,
        )

    # ------------------------------------------------------------------
    # UserAttributeSource
    # ------------------------------------------------------------------

    async def get_user_attribute(self, name: str) -> Optional[str]:
        me = await self._current_user()
        values = await self._request(
            "GET",
            f"/users/{me['id']}/attribute_values",
            params={"fields": "name,value"},
        )
        for item in values or []:
            if item.get("name") == name:
                return item.get("value") or None
        return None

    async def _current_user(self) -> Dict[str, Any]:
        if self._me is None:
            self._me = await self._request(
                "GET", "/user", params={"fields": "id,personal_folder_id"}
            )
        return self._me
