"""OpenProject API v3 client.

Thin async wrapper over httpx: HTTP Basic auth with the ``apikey`` user,
JSON bodies, and pydantic models for the responses. Any non-2xx status
raises OpenProjectError; there are no retries and no pagination handling.

Usage:
    client = OpenProjectClient("https://op.example.com", api_key="...")
    projects = await client.list_projects()
    for project in projects.elements:
        print(project.name, client.project_url(project.id))
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel

from config.logging import get_logger

from .filters import encode_filters
from .models import Collection, Priority, Project, Status, User, WorkPackage, WorkPackageType

if TYPE_CHECKING:
    from arki_core.config import ArkiSettings

logger = get_logger("tools.openproject")

M = TypeVar("M", bound=BaseModel)


class OpenProjectError(Exception):
    """Non-2xx response from the OpenProject API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"OpenProject API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class OpenProjectClient:
    """HTTP client for one OpenProject instance."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: "ArkiSettings") -> "OpenProjectClient":
        op = settings.openproject
        return cls(op.base_url, op.api_key, timeout=op.timeout)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/api/v3",
                auth=httpx.BasicAuth("apikey", self.api_key),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OpenProjectClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request and return the decoded JSON body (None when empty)."""
        client = await self._get_client()
        logger.debug(f"{method} {path} {params or ''}")
        response = await client.request(
            method,
            path,
            params=params,
            content=json.dumps(json_body) if json_body is not None else None,
        )
        if response.status_code >= 400:
            raise OpenProjectError(response.status_code, response.text)
        if not response.content:
            return None
        return response.json()

    async def _get_model(self, model: type[M], path: str, params: dict[str, str] | None = None) -> M:
        return model.model_validate(await self._request("GET", path, params=params))

    # Projects

    async def list_projects(self) -> Collection[Project]:
        return await self._get_model(Collection[Project], "/projects")

    async def get_project(self, project_id: int) -> Project:
        return await self._get_model(Project, f"/projects/{project_id}")

    # Users

    async def list_users(self) -> Collection[User]:
        return await self._get_model(Collection[User], "/users")

    async def get_user(self, user_id: int) -> User:
        return await self._get_model(User, f"/users/{user_id}")

    async def search_users(self, name: str) -> Collection[User]:
        """Users whose name contains ``name`` (server-side ``~`` operator)."""
        filters = json.dumps([{"name": {"operator": "~", "values": [name]}}])
        return await self._get_model(Collection[User], "/users", params={"filters": filters})

    # Work packages

    async def list_work_packages(self, filters: dict[str, Any] | None = None) -> Collection[WorkPackage]:
        encoded = encode_filters(filters)
        if encoded:
            logger.debug(f"Work package filters: {encoded}")
        params = {"filters": encoded} if encoded else None
        return await self._get_model(Collection[WorkPackage], "/work_packages", params=params)

    async def get_work_package(self, work_package_id: int) -> WorkPackage:
        return await self._get_model(WorkPackage, f"/work_packages/{work_package_id}")

    async def create_work_package(self, payload: dict[str, Any]) -> WorkPackage:
        data = await self._request("POST", "/work_packages", json_body=payload)
        return WorkPackage.model_validate(data)

    async def update_work_package(self, work_package_id: int, payload: dict[str, Any]) -> WorkPackage:
        data = await self._request("PATCH", f"/work_packages/{work_package_id}", json_body=payload)
        return WorkPackage.model_validate(data)

    async def delete_work_package(self, work_package_id: int) -> None:
        await self._request("DELETE", f"/work_packages/{work_package_id}")

    async def get_work_package_form(self, project_id: int | None = None) -> dict[str, Any]:
        """Form resource listing the options available for a new work package."""
        path = f"/projects/{project_id}/work_packages/form" if project_id else "/work_packages/form"
        return await self._request("POST", path, json_body={}) or {}

    # Metadata

    async def list_types(self) -> Collection[WorkPackageType]:
        return await self._get_model(Collection[WorkPackageType], "/types")

    async def list_statuses(self) -> Collection[Status]:
        return await self._get_model(Collection[Status], "/statuses")

    async def list_priorities(self) -> Collection[Priority]:
        return await self._get_model(Collection[Priority], "/priorities")

    # Link builders

    def href(self, kind: str, resource_id: int) -> str:
        """API href for a resource, e.g. href("users", 5)."""
        return f"{self.base_url}/api/v3/{kind}/{resource_id}"

    def work_package_url(self, work_package_id: int) -> str:
        return f"{self.base_url}/work_packages/{work_package_id}"

    def project_url(self, project_id: int) -> str:
        return f"{self.base_url}/projects/{project_id}"

    def user_url(self, user_id: int) -> str:
        return f"{self.base_url}/users/{user_id}"
