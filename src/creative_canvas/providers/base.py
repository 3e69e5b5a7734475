"""
Provider Base - Generation service contract and shared data structures.

This module provides the foundation for talking to a generation backend:
- GenerationService: Abstract base class for service implementations
- SubmitResponse/JobStatusResponse: Wire shapes of submit and status calls
- ModelCard: A model the service can run, as reported by discovery
- ServiceError hierarchy: Failures raised by service implementations

The execution engine only depends on GenerationService; which backend
actually runs the models is opaque to it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from creative_canvas.core.data_types import NodeCategory
from creative_canvas.core.graph import NodeOutput


class ServiceJobStatus(Enum):
    """Job status as reported by the generation service."""
    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ServiceJobStatus.COMPLETED,
            ServiceJobStatus.FAILED,
            ServiceJobStatus.CANCELLED,
        )

    @classmethod
    def parse(cls, value: str | None) -> ServiceJobStatus:
        """Parse a wire status; unknown or missing values count as pending."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.PENDING


class ModelKind(Enum):
    """What a discovered model produces."""
    IMAGE = "image"
    VIDEO = "video"
    LLM = "llm"
    THREE_D = "threeD"


@dataclass
class ModelCard:
    """
    A model offered by the generation service.

    Attributes:
        id: Model identifier sent in the "model" parameter
        name: Human-readable display name
        kind: What the model produces
        provider: Upstream provider name, if reported
        description: Brief description of the model
        tier: Quality/speed tier ("flagship", "production", "creative", "fast")
        cost: Display price, e.g. "$0.040/image"
        capabilities: Capability names, e.g. ["ImageToImage", "Inpainting"]
        has_audio: Video models that generate a soundtrack
    """
    id: str
    name: str
    kind: ModelKind = ModelKind.IMAGE
    provider: str = ""
    description: str = ""
    tier: str | None = None
    cost: str | None = None
    capabilities: list[str] = field(default_factory=list)
    has_audio: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
        }
        if self.provider:
            data["provider"] = self.provider
        if self.description:
            data["description"] = self.description
        if self.tier:
            data["tier"] = self.tier
        if self.cost:
            data["cost"] = self.cost
        if self.capabilities:
            data["capabilities"] = list(self.capabilities)
        if self.has_audio:
            data["hasAudio"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], kind: ModelKind | None = None) -> ModelCard:
        """
        Create a card from a discovery payload.

        Capabilities may arrive as a list of names or as a dict of
        `supportsX: bool` flags; both are normalized to a name list.
        """
        capabilities = data.get("capabilities") or []
        if isinstance(capabilities, Mapping):
            capabilities = [
                key.replace("supports", "", 1)
                for key, enabled in capabilities.items()
                if enabled is True
            ]

        model_id = data.get("id") or data.get("modelId")
        if not model_id:
            raise ValueError("Model entry has no id")

        raw_kind = data.get("kind") or data.get("type")
        if kind is None:
            try:
                kind = ModelKind(raw_kind) if raw_kind else ModelKind.IMAGE
            except ValueError:
                kind = ModelKind.IMAGE

        return cls(
            id=model_id,
            name=data.get("name") or data.get("displayName") or model_id,
            kind=kind,
            provider=data.get("provider", ""),
            description=data.get("description", ""),
            tier=data.get("tier"),
            cost=data.get("cost"),
            capabilities=[str(c) for c in capabilities],
            has_audio=bool(data.get("hasAudio", False)),
        )


@dataclass
class SubmitResponse:
    """Result of submitting a job."""
    job_id: str
    status: ServiceJobStatus = ServiceJobStatus.QUEUED

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SubmitResponse:
        job_id = data.get("jobId") or data.get("job_id") or data.get("id")
        if not job_id:
            raise ServiceError("No job ID in submit response")
        return cls(
            job_id=str(job_id),
            status=ServiceJobStatus.parse(data.get("status", "queued")),
        )


@dataclass
class ServiceJobError:
    """Failure details reported by the service for a job."""
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass
class JobStatusResponse:
    """
    Result of polling a job.

    Attributes:
        status: Current job status
        progress: Progress percentage 0..100
        result: Output, once completed
        error: Failure details, once failed
    """
    status: ServiceJobStatus
    progress: float = 0.0
    result: NodeOutput | None = None
    error: ServiceJobError | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> JobStatusResponse:
        result = data.get("result")
        error = data.get("error")
        if isinstance(error, str):
            error = {"message": error}

        progress = data.get("progress") or 0
        try:
            progress = min(max(float(progress), 0.0), 100.0)
        except (TypeError, ValueError):
            progress = 0.0

        return cls(
            status=ServiceJobStatus.parse(data.get("status")),
            progress=progress,
            result=NodeOutput.from_dict(result) if isinstance(result, Mapping) else None,
            error=ServiceJobError(
                code=str(error.get("code") or "JOB_FAILED"),
                message=str(error.get("message") or "Generation failed"),
            ) if isinstance(error, Mapping) else None,
        )


@dataclass
class ProviderConfig:
    """Configuration for a generation service."""
    api_key: str = ""
    base_url: str | None = None
    request_timeout: float = 30.0
    extra: dict[str, Any] = field(default_factory=dict)


class ServiceError(Exception):
    """Base exception for generation service errors."""

    # Transient errors may succeed when retried
    transient: bool = False

    def __init__(self, message: str = "", status: int | None = None):
        super().__init__(message)
        self.status = status


class AuthenticationError(ServiceError):
    """API key invalid or missing."""
    pass


class RateLimitError(ServiceError):
    """Rate limit exceeded."""

    transient = True

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status: int | None = 429,
        retry_after: float | None = None,
    ):
        super().__init__(message, status)
        self.retry_after = retry_after


class ServiceUnavailableError(ServiceError):
    """Network failure, request timeout or 5xx response."""

    transient = True


class GenerationService(ABC):
    """
    Abstract base class for generation backends.

    Jobs are asynchronous on the service side: submit() returns a job id
    and get_status() is polled until the job reaches a terminal status.
    """

    id: str = ""
    name: str = ""

    def __init__(self, config: ProviderConfig | None = None):
        self.config = config or ProviderConfig()

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def supports_cancel(self) -> bool:
        """Whether cancel() asks the service to stop the job."""
        return False

    @abstractmethod
    async def submit(
        self,
        node_type: str,
        category: NodeCategory,
        parameters: Mapping[str, Any],
    ) -> SubmitResponse:
        """
        Submit a job for one node.

        Raises:
            AuthenticationError: Invalid API key
            RateLimitError: Rate limit exceeded
            ServiceUnavailableError: The service could not be reached
            ServiceError: The service rejected the request
        """
        ...

    @abstractmethod
    async def get_status(self, job_id: str) -> JobStatusResponse:
        """Get the current status of a job."""
        ...

    async def cancel(self, job_id: str) -> bool:
        """
        Ask the service to cancel a job.

        Returns True if the service accepted the request. The default
        implementation does nothing.
        """
        return False

    async def list_models(self) -> list[ModelCard]:
        """List models the service offers. Override for discovery."""
        return []

    async def close(self) -> None:
        """Release network resources."""
        return None

    async def __aenter__(self) -> GenerationService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def get_headers(self) -> dict[str, str]:
        """Get default headers for API requests."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers
