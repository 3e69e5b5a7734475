"""
HTTP Generation Service - REST client for a remote generation backend.

Endpoints (relative to the configured base URL):
- POST /jobs                 submit a job
- GET  /jobs/{id}            poll a job
- POST /jobs/{id}/cancel     cancel a job
- GET  /models               model discovery

Responses may be wrapped in a `{"success", "data", "error"}` envelope;
both wrapped and bare payloads are accepted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import aiohttp

from creative_canvas.core.data_types import NodeCategory
from creative_canvas.providers.base import (
    AuthenticationError,
    GenerationService,
    JobStatusResponse,
    ModelCard,
    ModelKind,
    ProviderConfig,
    RateLimitError,
    ServiceError,
    ServiceUnavailableError,
    SubmitResponse,
)

logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "http://localhost:8000/api"

# Keys of a grouped /models payload and the kind of model they list
_MODEL_GROUPS = {
    "imageModels": ModelKind.IMAGE,
    "videoModels": ModelKind.VIDEO,
    "llmModels": ModelKind.LLM,
    "threeDModels": ModelKind.THREE_D,
}


class HttpGenerationService(GenerationService):
    """
    Generation service reached over HTTP with aiohttp.

    One ClientSession is created lazily and reused for every request;
    call close() (or use `async with`) when done.
    """

    id = "http"
    name = "Remote Generation Service"

    def __init__(
        self,
        config: ProviderConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__(config)
        self.base_url = (self.config.base_url or DEFAULT_BASE_URL).rstrip("/")
        self._session = session
        self._owns_session = session is None

    @property
    def supports_cancel(self) -> bool:
        return True

    async def submit(
        self,
        node_type: str,
        category: NodeCategory,
        parameters: Mapping[str, Any],
    ) -> SubmitResponse:
        body = {
            "nodeType": node_type,
            "category": category.value,
            "parameters": dict(parameters),
        }
        data = await self._request("POST", "/jobs", json=body)
        response = SubmitResponse.from_dict(data)
        logger.debug("Submitted %s job %s", node_type, response.job_id)
        return response

    async def get_status(self, job_id: str) -> JobStatusResponse:
        data = await self._request("GET", f"/jobs/{job_id}")
        return JobStatusResponse.from_dict(data)

    async def cancel(self, job_id: str) -> bool:
        await self._request("POST", f"/jobs/{job_id}/cancel")
        return True

    async def list_models(self) -> list[ModelCard]:
        data = await self._request("GET", "/models")
        return parse_models(data)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        json: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the unwrapped payload."""
        url = f"{self.base_url}{path}"
        session = self._get_session()

        try:
            async with session.request(
                method,
                url,
                json=json,
                headers=self.get_headers(),
            ) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
                self._check_error(resp.status, data, resp.headers.get("Retry-After"))
        except aiohttp.ClientError as e:
            raise ServiceUnavailableError(f"Request to {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ServiceUnavailableError(f"Request to {url} timed out") from e

        return unwrap_envelope(data)

    def _check_error(
        self,
        status: int,
        data: Any,
        retry_after: str | None = None,
    ) -> None:
        """Map HTTP error statuses to ServiceError subclasses."""
        if status < 400:
            return

        message = _error_message(data) or f"HTTP {status}"
        if status == 401:
            raise AuthenticationError(f"Invalid API key: {message}", status)
        elif status == 429:
            raise RateLimitError(
                f"Rate limit exceeded: {message}",
                status,
                retry_after=_parse_retry_after(retry_after),
            )
        elif status >= 500:
            raise ServiceUnavailableError(f"Service error: {message}", status)
        else:
            raise ServiceError(f"Request rejected: {message}", status)


def unwrap_envelope(data: Any) -> Any:
    """
    Strip the `{"success", "data", "error"}` envelope if present.

    Raises:
        ServiceError: If the envelope reports failure.
    """
    if not isinstance(data, Mapping) or "success" not in data:
        return data
    if not data.get("success"):
        raise ServiceError(_error_message(data) or "Request failed")
    return data.get("data")


def parse_models(data: Any) -> list[ModelCard]:
    """
    Parse a /models payload.

    Accepts a flat list of models, a dict of `imageModels`/`videoModels`/...
    groups, or a list of providers each carrying a `models` list.
    Malformed entries are skipped.
    """
    entries: list[tuple[Mapping[str, Any], ModelKind | None, str]] = []

    if isinstance(data, Mapping):
        for key, kind in _MODEL_GROUPS.items():
            for entry in data.get(key) or []:
                entries.append((entry, kind, ""))
        for entry in data.get("models") or []:
            entries.append((entry, None, ""))
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, Mapping) and "models" in item:
                provider = item.get("name", "")
                for entry in item.get("models") or []:
                    entries.append((entry, None, provider))
            else:
                entries.append((item, None, ""))

    models: list[ModelCard] = []
    for entry, kind, provider in entries:
        if not isinstance(entry, Mapping):
            continue
        try:
            card = ModelCard.from_dict(entry, kind)
        except ValueError:
            logger.debug("Skipping malformed model entry: %r", entry)
            continue
        if provider and not card.provider:
            card.provider = provider
        models.append(card)
    return models


def _error_message(data: Any) -> str:
    if not isinstance(data, Mapping):
        return ""
    error = data.get("error")
    if isinstance(error, Mapping):
        return str(error.get("message") or error.get("code") or "")
    if error:
        return str(error)
    return str(data.get("message") or "")


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
