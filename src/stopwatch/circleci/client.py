"""CircleCI REST client.

Covers the handful of endpoints the fetch layer needs:
- v2 pipelines of a project (paginated)
- v2 workflows of a pipeline and jobs of a workflow
- v1.1 job detail, which carries steps, actions and ``output_url``
"""

from __future__ import annotations

from typing import Any

import httpx

from stopwatch.core.exceptions import CircleCIAPIError, RateLimitedError
from stopwatch.logging import get_logger
from stopwatch.retry import retry_with_backoff

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://circleci.com/api/v2"
DEFAULT_V1_BASE_URL = "https://circleci.com/api/v1.1"


def parse_retry_after(response: httpx.Response) -> float | None:
    """Seconds from a ``Retry-After`` header; HTTP-date values are ignored."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class CircleCIClient:
    """Async client for the CircleCI API.

    Usage:
        async with CircleCIClient(token, "gh/my-org", "my-project") as client:
            page = await client.get_pipelines_page()
            detail = await client.get_job_detail(1234)
    """

    def __init__(
        self,
        token: str,
        org_slug: str,
        project_name: str,
        base_url: str = DEFAULT_BASE_URL,
        v1_base_url: str = DEFAULT_V1_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            token: CircleCI personal API token.
            org_slug: VCS type and organization, e.g. ``gh/my-org``.
            project_name: Project (repository) name.
            base_url: v2 API root.
            v1_base_url: v1.1 API root (job details).
            timeout: Per-request timeout in seconds.
            max_retries: Retries on 429 and transport errors.
            base_delay: Initial backoff delay in seconds.
            max_delay: Backoff ceiling in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        if not token:
            raise ValueError("CircleCI token is required")
        self.org_slug = org_slug.strip("/")
        self.project_name = project_name
        self.base_url = base_url.rstrip("/")
        self.v1_base_url = v1_base_url.rstrip("/")
        self._headers = {"Circle-Token": token, "Accept": "application/json"}
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)
        self._get_with_retry = retry_with_backoff(
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
        )(self._get_once)

    @property
    def project_slug(self) -> str:
        return f"{self.org_slug}/{self.project_name}"

    async def __aenter__(self) -> CircleCIClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_once(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        response = await self._http.get(
            url,
            params=params,
            headers=self._headers if authenticated else None,
        )

        if response.status_code == 429:
            raise RateLimitedError(retry_after=parse_retry_after(response))
        if response.status_code == 401:
            raise CircleCIAPIError("Unauthorized - check your token", status_code=401)
        if response.status_code == 404:
            raise CircleCIAPIError(f"Not found: {url}", status_code=404)
        if response.status_code >= 400:
            raise CircleCIAPIError(
                f"Request failed: {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise CircleCIAPIError(f"Invalid JSON from {url}: {e}") from e

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """GET ``url`` and decode JSON, retrying rate limits and transport errors.

        Raises:
            RateLimitedError: If still rate limited after all retries.
            CircleCIAPIError: On any other API or transport failure.
        """
        try:
            return await self._get_with_retry(url, params=params, authenticated=authenticated)
        except httpx.TransportError as e:
            raise CircleCIAPIError(f"Request failed: {e}") from e

    async def _get_items(self, url: str) -> list[dict[str, Any]]:
        """Collect ``items`` across all pages of a v2 list endpoint."""
        items: list[dict[str, Any]] = []
        page_token: str | None = None
        while True:
            params = {"page-token": page_token} if page_token else None
            data = await self.get_json(url, params=params)
            items.extend(data.get("items", []))
            page_token = data.get("next_page_token")
            if not page_token:
                return items

    async def get_pipelines_page(self, page_token: str | None = None) -> dict[str, Any]:
        """One page of project pipelines, newest first."""
        params = {"page-token": page_token} if page_token else None
        return await self.get_json(
            f"{self.base_url}/project/{self.project_slug}/pipeline",
            params=params,
        )

    async def get_pipeline_workflows(self, pipeline_id: str) -> list[dict[str, Any]]:
        return await self._get_items(f"{self.base_url}/pipeline/{pipeline_id}/workflow")

    async def get_workflow_jobs(self, workflow_id: str) -> list[dict[str, Any]]:
        return await self._get_items(f"{self.base_url}/workflow/{workflow_id}/job")

    async def get_job_detail(self, job_number: int | str) -> dict[str, Any]:
        """v1.1 job ("build") detail with steps and actions."""
        return await self.get_json(f"{self.v1_base_url}/project/{self.project_slug}/{job_number}")

    async def get_action_output(self, output_url: str) -> list[dict[str, Any]]:
        """Console output entries of one action.

        ``output_url`` is pre-signed, so the token is not sent along.
        """
        data = await self.get_json(output_url, authenticated=False)
        return data if isinstance(data, list) else []
