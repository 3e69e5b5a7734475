"""
Simulated Generation Service - In-process backend for dry runs and tests.

Jobs complete after a fixed number of polls and produce placeholder
outputs shaped like real ones. Individual node types can be scripted to
fail, hang, or be rejected at submission.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Iterable, Mapping

from creative_canvas.core.data_types import NodeCategory
from creative_canvas.core.graph import NodeOutput, OutputMetadata
from creative_canvas.providers.base import (
    GenerationService,
    JobStatusResponse,
    ModelCard,
    ServiceError,
    ServiceJobError,
    ServiceJobStatus,
    ServiceUnavailableError,
    SubmitResponse,
)

logger = logging.getLogger(__name__)


_IMAGE_CATEGORIES = {
    NodeCategory.IMAGE_GEN,
    NodeCategory.CHARACTER,
    NodeCategory.STYLE,
    NodeCategory.COMPOSITE,
    NodeCategory.ENHANCEMENT,
    NodeCategory.FASHION,
    NodeCategory.INTERIOR,
    NodeCategory.MOODBOARD,
    NodeCategory.SOCIAL,
}

_TEXT_CATEGORIES = {NodeCategory.NARRATIVE, NodeCategory.LOGIC}


@dataclass
class SimulatedJob:
    job_id: str
    node_type: str
    category: NodeCategory
    parameters: dict[str, Any]
    polls: int = 0
    cancelled: bool = False


@dataclass
class Submission:
    """A recorded submit() call."""
    node_type: str
    category: NodeCategory
    parameters: dict[str, Any] = field(default_factory=dict)


class SimulatedGenerationService(GenerationService):
    """
    Generation service that runs entirely in memory.

    Args:
        polls_to_complete: Polls a job reports `processing` before completing
        fail_types: Node type -> error message for jobs that fail remotely
        hang_types: Node types whose jobs never finish
        reject_types: Node types whose submission is rejected
        transient_poll_failures: Polls (counted across all jobs) that raise
            ServiceUnavailableError before polling starts succeeding
        models: Models returned by list_models()
    """

    id = "simulated"
    name = "Simulated Service"

    def __init__(
        self,
        polls_to_complete: int = 1,
        fail_types: Mapping[str, str] | None = None,
        hang_types: Iterable[str] = (),
        reject_types: Iterable[str] = (),
        transient_poll_failures: int = 0,
        models: Iterable[ModelCard] = (),
    ):
        super().__init__()
        self.polls_to_complete = max(polls_to_complete, 0)
        self.fail_types = dict(fail_types or {})
        self.hang_types = set(hang_types)
        self.reject_types = set(reject_types)
        self.transient_poll_failures = transient_poll_failures
        self.models = list(models)

        self.jobs: dict[str, SimulatedJob] = {}
        self.submissions: list[Submission] = []
        self.cancel_requests: list[str] = []
        self.poll_count = 0
        self._ids = count(1)

    @property
    def supports_cancel(self) -> bool:
        return True

    async def submit(
        self,
        node_type: str,
        category: NodeCategory,
        parameters: Mapping[str, Any],
    ) -> SubmitResponse:
        self.submissions.append(Submission(node_type, category, dict(parameters)))
        if node_type in self.reject_types:
            raise ServiceError(f"Node type '{node_type}' is not supported", 400)

        job_id = f"sim-{next(self._ids)}"
        self.jobs[job_id] = SimulatedJob(job_id, node_type, category, dict(parameters))
        logger.debug("Simulated job %s created for %s", job_id, node_type)
        return SubmitResponse(job_id=job_id, status=ServiceJobStatus.QUEUED)

    async def get_status(self, job_id: str) -> JobStatusResponse:
        self.poll_count += 1
        if self.transient_poll_failures > 0:
            self.transient_poll_failures -= 1
            raise ServiceUnavailableError("Simulated network failure", 503)

        job = self.jobs.get(job_id)
        if job is None:
            raise ServiceError(f"Unknown job: {job_id}", 404)
        if job.cancelled:
            return JobStatusResponse(status=ServiceJobStatus.CANCELLED)

        job.polls += 1
        if job.node_type in self.hang_types or job.polls <= self.polls_to_complete:
            progress = 0.0
            if job.node_type not in self.hang_types and self.polls_to_complete:
                progress = 100.0 * job.polls / (self.polls_to_complete + 1)
            return JobStatusResponse(status=ServiceJobStatus.PROCESSING, progress=progress)

        if job.node_type in self.fail_types:
            return JobStatusResponse(
                status=ServiceJobStatus.FAILED,
                error=ServiceJobError("JOB_FAILED", self.fail_types[job.node_type]),
            )

        return JobStatusResponse(
            status=ServiceJobStatus.COMPLETED,
            progress=100.0,
            result=self._make_output(job),
        )

    async def cancel(self, job_id: str) -> bool:
        self.cancel_requests.append(job_id)
        job = self.jobs.get(job_id)
        if job is None:
            return False
        job.cancelled = True
        return True

    async def list_models(self) -> list[ModelCard]:
        return list(self.models)

    def submitted_types(self) -> list[str]:
        return [s.node_type for s in self.submissions]

    def _make_output(self, job: SimulatedJob) -> NodeOutput:
        params = job.parameters
        base = f"https://simulated.invalid/{job.job_id}"

        if job.category is NodeCategory.INPUT:
            files = params.get("files")
            if isinstance(files, list) and files:
                return NodeOutput(type="image", urls=[str(f) for f in files])
            if params.get("file"):
                return NodeOutput(type="image", url=str(params["file"]))
            return NodeOutput(type="text", text=str(params.get("text", "")))

        if job.category is NodeCategory.OUTPUT:
            return NodeOutput(type="data", data={"inputs": params.get("inputs", {})})

        if job.category in _TEXT_CATEGORIES:
            prompt = params.get("prompt") or params.get("premise") or job.node_type
            return NodeOutput(type="text", text=f"{prompt} (enhanced)")

        if job.category is NodeCategory.VIDEO_GEN:
            return NodeOutput(
                type="video",
                url=f"{base}.mp4",
                metadata=OutputMetadata(width=1280, height=720, duration=5.0, format="mp4"),
            )

        if job.category is NodeCategory.THREE_D:
            return NodeOutput(type="mesh3d", url=f"{base}.glb")

        if job.category is NodeCategory.AUDIO:
            return NodeOutput(type="audio", url=f"{base}.mp3")

        if job.category not in _IMAGE_CATEGORIES:
            logger.debug("No output shape for %s, returning image", job.category.value)
        return NodeOutput(
            type="image",
            url=f"{base}.png",
            metadata=OutputMetadata(width=1024, height=1024, format="png"),
        )
