"""
Execution Engine - Async job tracking and wave-by-wave graph runs.

This module provides:
- JobTracker: Per-node state machine that submits a job to the generation
  service and polls it to a terminal state (with timeout, bounded retry
  and cooperative cancellation)
- ExecutionCoordinator: Runs an ExecutionPlan wave by wave, applying the
  failure policy and aggregating a RunResult

Everything runs on a single asyncio event loop; there is one task per
in-flight job.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
from uuid import uuid4

from creative_canvas.core.graph import Node, NodeGraph, NodeId, NodeOutput, NodeStatus
from creative_canvas.core.node_types import NodeRegistry
from creative_canvas.core.planner import CycleDetectedError, ExecutionPlan, ExecutionPlanner
from creative_canvas.core.settings import ExecutionSettings
from creative_canvas.providers.base import (
    GenerationService,
    JobStatusResponse,
    RateLimitError,
    ServiceError,
    ServiceJobStatus,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class JobError(Exception):
    """Base class for job failures. Carries a machine-readable code."""

    code: str = "JOB_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class JobSubmissionError(JobError):
    """The service rejected the work request."""
    code = "SUBMISSION_FAILED"


class JobExecutionError(JobError):
    """The service reported that the job failed."""
    code = "JOB_FAILED"


class JobPollError(JobExecutionError):
    """Polling kept failing after all retries, or failed permanently."""
    code = "POLL_FAILED"


class JobTimeoutError(JobExecutionError):
    """The job exceeded its wall-clock limit."""
    code = "TIMEOUT"


class StaleGraphError(RuntimeError):
    """The graph changed while a run was in progress."""

    code = "STALE_GRAPH"

    def __init__(self, expected_version: int | None, actual_version: int):
        super().__init__(
            f"Graph changed during execution (planned at version "
            f"{expected_version}, now {actual_version})"
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


# ============================================================================
# Job state
# ============================================================================

class CancellationToken:
    """
    Cooperative cancellation signal.

    Pollers wait on the token instead of sleeping, so cancelling wakes
    them immediately. Cancelling a token also cancels every token made
    with child(); cancelling a child leaves its parent untouched.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._children: list[CancellationToken] = []
        self.reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def child(self) -> CancellationToken:
        """Create a token that is cancelled together with this one."""
        token = CancellationToken()
        if self.is_cancelled:
            token.cancel(self.reason or "cancelled")
        else:
            self._children.append(token)
        return token

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        children, self._children = self._children, []
        for child in children:
            child.cancel(reason)

    async def wait(self, timeout: float | None = None) -> bool:
        """
        Wait until cancelled or until `timeout` seconds pass.

        Returns True if the token was cancelled.
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


@dataclass
class Job:
    """Runtime record of one node's remote job."""
    node_id: NodeId | None = None
    job_id: str | None = None
    status: NodeStatus = NodeStatus.IDLE
    progress: float = 0.0
    started_at: float | None = None
    completed_at: float | None = None
    error: JobError | None = None
    output: NodeOutput | None = None

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "nodeId": self.node_id,
            "jobId": self.job_id,
            "status": self.status.value,
            "progress": self.progress,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.output is not None:
            data["output"] = self.output.to_dict()
        return data


@dataclass(frozen=True)
class StatusChange:
    """Notification of a job transition or progress update."""
    node_id: NodeId
    old_status: NodeStatus
    new_status: NodeStatus
    progress: float = 0.0
    error: str | None = None
    output: NodeOutput | None = None


StatusListener = Callable[[StatusChange], None]


def backoff_delay(attempt: int, base: float, maximum: float) -> float:
    """Exponential backoff for retry `attempt` (1-based), capped at `maximum`."""
    return min(base * 2 ** (attempt - 1), maximum)


# ============================================================================
# JobTracker
# ============================================================================

class JobTracker:
    """
    Drives one node's job through idle -> queued -> running -> terminal.

    Terminal states are completed, error and cancelled. A tracker is used
    for a single submission; create a new one to re-run a node.

    Args:
        service: Generation service to submit to and poll
        settings: Poll interval, retry and timeout configuration
        on_status_change: Called on every transition and progress update
        token: Cancellation token; a private one is created if omitted.
            Cancelling the tracker cancels this token, so pass a child()
            of a shared token to keep a cancel local to one job.
    """

    def __init__(
        self,
        service: GenerationService,
        settings: ExecutionSettings | None = None,
        on_status_change: StatusListener | None = None,
        token: CancellationToken | None = None,
    ):
        self.service = service
        self.settings = settings or ExecutionSettings()
        self.on_status_change = on_status_change
        self.token = token or CancellationToken()
        self.job = Job()
        self._task: asyncio.Task | None = None
        self._deadline: float = 0.0
        self._submitting = False
        self._submit_done = asyncio.Event()

    @property
    def status(self) -> NodeStatus:
        return self.job.status

    @property
    def is_submitting(self) -> bool:
        """True while the submit request is in flight."""
        return self._submitting

    @property
    def exception(self) -> JobError | None:
        """The error that ended the job, if it failed."""
        return self.job.error

    async def submit(self, node: Node, parameters: dict[str, Any] | None = None) -> bool:
        """
        Submit the node's job and start polling it.

        Only valid while idle. Any other call is ignored and logged. The
        submit request counts against job_timeout and is abandoned when
        the token is cancelled.

        Returns:
            True if the service accepted the job and polling started.
        """
        if self.job.status is not NodeStatus.IDLE or self.job.node_id is not None:
            logger.warning(
                "Ignoring submit for node %s: job is already %s",
                node.id, self.job.status.value,
            )
            return False
        if self.token.is_cancelled:
            logger.info("Not submitting node %s: cancelled before start", node.id)
            return False

        self.job.node_id = node.id
        self.job.started_at = time.time()
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + self.settings.job_timeout
        self._submitting = True
        try:
            return await self._submit(node, parameters)
        finally:
            self._submitting = False
            self._submit_done.set()

    async def _submit(self, node: Node, parameters: dict[str, Any] | None) -> bool:
        submit_task = asyncio.create_task(
            self.service.submit(node.node_type, node.category, dict(parameters or {}))
        )
        cancel_task = asyncio.create_task(self.token.wait())
        try:
            await asyncio.wait(
                {submit_task, cancel_task},
                timeout=self._deadline - asyncio.get_running_loop().time(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_task.cancel()
            if not submit_task.done():
                submit_task.cancel()
        # Let an abandoned request unwind before reporting
        await asyncio.gather(submit_task, cancel_task, return_exceptions=True)

        if self.token.is_cancelled:
            if not submit_task.cancelled() and submit_task.exception() is None:
                self.job.job_id = submit_task.result().job_id
            logger.info("Submission of node %s cancelled", node.id)
            self._finish(NodeStatus.CANCELLED)
            await self._cancel_remote()
            return False
        if submit_task.cancelled():
            self._finish(
                NodeStatus.ERROR,
                error=JobTimeoutError(
                    f"Submitting node {node.id} exceeded {self.settings.job_timeout:g}s"
                ),
            )
            return False

        try:
            response = submit_task.result()
        except ServiceError as e:
            self._finish(NodeStatus.ERROR, error=JobSubmissionError(f"Submission failed: {e}"))
            return False
        except Exception as e:
            logger.exception("Unexpected error submitting node %s", node.id)
            self._finish(NodeStatus.ERROR, error=JobSubmissionError(f"Submission failed: {e}"))
            return False

        self.job.job_id = response.job_id
        logger.info("Node %s submitted as job %s", node.id, response.job_id)
        self._transition(NodeStatus.QUEUED)
        if response.status is ServiceJobStatus.PROCESSING:
            self._transition(NodeStatus.RUNNING)

        if self.token.is_cancelled:
            await self._cancel_active()
            return False

        self._task = asyncio.create_task(self._poll_loop())
        return True

    async def wait(self) -> Job:
        """Wait until the job is terminal (or was never started) and return it."""
        if self._task is not None:
            await self._task
        return self.job

    async def run(self, node: Node, parameters: dict[str, Any] | None = None) -> Job:
        """Submit and wait for the job."""
        await self.submit(node, parameters)
        return await self.wait()

    async def cancel(self) -> bool:
        """
        Cancel the job if it is being submitted, queued or running.

        Stops polling, marks the job cancelled and asks the service to
        cancel it (best effort). Cancels the tracker's token too.

        Returns:
            True if the job was cancelled.
        """
        if self._submitting:
            self.token.cancel()
            await self._submit_done.wait()
            return self.job.status is NodeStatus.CANCELLED
        if not self.job.status.is_active:
            return False
        self.token.cancel()
        await self._cancel_active()
        return True

    # --- Polling ---

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        delay = self.settings.poll_interval
        failures = 0

        while self.job.status.is_active:
            remaining = self._deadline - loop.time()
            if remaining <= 0:
                await self._time_out()
                return

            if await self.token.wait(min(delay, remaining)):
                await self._cancel_active()
                return
            if not self.job.status.is_active:
                return

            remaining = self._deadline - loop.time()
            if remaining <= 0:
                await self._time_out()
                return

            try:
                response = await asyncio.wait_for(
                    self.service.get_status(self.job.job_id), remaining
                )
            except asyncio.TimeoutError:
                await self._time_out()
                return
            except ServiceError as e:
                failures += 1
                if not e.transient or failures > self.settings.max_poll_retries:
                    self._finish(
                        NodeStatus.ERROR,
                        error=JobPollError(
                            f"Polling job {self.job.job_id} failed after "
                            f"{failures} attempt(s): {e}"
                        ),
                    )
                    return
                delay = backoff_delay(
                    failures, self.settings.backoff_base, self.settings.backoff_max
                )
                if isinstance(e, RateLimitError) and e.retry_after:
                    delay = max(delay, e.retry_after)
                logger.warning(
                    "Poll of job %s failed (%s), retry %d/%d in %.1fs",
                    self.job.job_id, e, failures, self.settings.max_poll_retries, delay,
                )
                continue
            except Exception as e:
                logger.exception("Unexpected error polling job %s", self.job.job_id)
                self._finish(NodeStatus.ERROR, error=JobPollError(f"Polling failed: {e}"))
                return

            failures = 0
            delay = self.settings.poll_interval

            # A cancel that arrived during the request wins over its result
            if self.token.is_cancelled:
                await self._cancel_active()
                return
            if not self.job.status.is_active:
                return

            logger.debug(
                "Job %s: %s %.0f%%", self.job.job_id, response.status.value, response.progress
            )
            self._apply(response)

    def _apply(self, response: JobStatusResponse) -> None:
        status = response.status

        if status is ServiceJobStatus.COMPLETED:
            if self.job.status is NodeStatus.QUEUED:
                self._transition(NodeStatus.RUNNING)
            self.job.progress = 100.0
            self._finish(NodeStatus.COMPLETED, output=response.result)
        elif status is ServiceJobStatus.FAILED:
            error = response.error
            self._finish(
                NodeStatus.ERROR,
                error=JobExecutionError(
                    error.message if error else "Generation failed",
                    error.code if error else None,
                ),
            )
        elif status is ServiceJobStatus.CANCELLED:
            logger.info("Job %s was cancelled by the service", self.job.job_id)
            self._finish(NodeStatus.CANCELLED)
        elif status is ServiceJobStatus.PROCESSING and self.job.status is NodeStatus.QUEUED:
            self.job.progress = response.progress
            self._transition(NodeStatus.RUNNING)
        elif response.progress != self.job.progress:
            self.job.progress = response.progress
            self._notify(self.job.status, self.job.status)

    async def _time_out(self) -> None:
        if not self.job.status.is_active:
            return
        self._finish(
            NodeStatus.ERROR,
            error=JobTimeoutError(
                f"Job {self.job.job_id} exceeded {self.settings.job_timeout:g}s"
            ),
        )
        await self._cancel_remote()

    async def _cancel_active(self) -> None:
        if not self.job.status.is_active:
            return
        self._finish(NodeStatus.CANCELLED)
        await self._cancel_remote()

    async def _cancel_remote(self) -> None:
        if not self.job.job_id or not self.service.supports_cancel:
            return
        try:
            await self.service.cancel(self.job.job_id)
        except Exception as e:
            logger.warning("Could not cancel remote job %s: %s", self.job.job_id, e)

    # --- Transitions ---

    def _transition(self, new_status: NodeStatus) -> None:
        old_status = self.job.status
        self.job.status = new_status
        self._notify(old_status, new_status)

    def _finish(
        self,
        status: NodeStatus,
        error: JobError | None = None,
        output: NodeOutput | None = None,
    ) -> None:
        self.job.completed_at = time.time()
        self.job.error = error
        self.job.output = output
        if error is not None:
            logger.warning("Node %s failed [%s]: %s", self.job.node_id, error.code, error)
        else:
            logger.info("Node %s %s", self.job.node_id, status.value)
        self._transition(status)

    def _notify(self, old_status: NodeStatus, new_status: NodeStatus) -> None:
        if self.on_status_change is None or self.job.node_id is None:
            return
        change = StatusChange(
            node_id=self.job.node_id,
            old_status=old_status,
            new_status=new_status,
            progress=self.job.progress,
            error=self.job.error.message if self.job.error else None,
            output=self.job.output,
        )
        try:
            self.on_status_change(change)
        except Exception:
            logger.exception("Status listener failed for node %s", self.job.node_id)


# ============================================================================
# ExecutionCoordinator
# ============================================================================

class FailurePolicy(Enum):
    """What happens to the rest of a run when a node fails."""
    SKIP_DEPENDENTS = "skip-dependents"
    ABORT = "abort"


class RunStatus(Enum):
    COMPLETED = "completed"     # Every node completed
    PARTIAL = "partial"         # Some nodes completed, some failed or were blocked
    FAILED = "failed"           # No node completed, or aborted on failure
    CANCELLED = "cancelled"     # Cancelled by the caller
    ABORTED = "aborted"         # Graph changed during execution


@dataclass
class NodeRunError:
    """An error recorded during a run. node_id is None for run-level errors."""
    node_id: NodeId | None
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"nodeId": self.node_id, "code": self.code, "message": self.message}


@dataclass
class RunResult:
    """Aggregate outcome of a graph run."""
    run_id: str
    status: RunStatus
    node_statuses: dict[NodeId, NodeStatus] = field(default_factory=dict)
    outputs: dict[NodeId, NodeOutput] = field(default_factory=dict)
    errors: list[NodeRunError] = field(default_factory=list)
    started_at: float = 0.0
    completed_at: float = 0.0

    @property
    def duration(self) -> float:
        return self.completed_at - self.started_at

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED

    def nodes_with_status(self, status: NodeStatus) -> list[NodeId]:
        return [node_id for node_id, s in self.node_statuses.items() if s is status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "status": self.status.value,
            "nodeStatuses": {nid: s.value for nid, s in self.node_statuses.items()},
            "outputs": {nid: out.to_dict() for nid, out in self.outputs.items()},
            "errors": [error.to_dict() for error in self.errors],
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "duration": self.duration,
        }


class ExecutionCoordinator:
    """
    Runs a graph against a generation service, one wave at a time.

    All nodes of a wave run concurrently; the next wave starts once every
    node of the current one is terminal. Status changes are written back
    to the graph's nodes and forwarded to `on_status_change`.

    Args:
        service: Generation service used by every JobTracker
        settings: Polling, timeout, concurrency and failure policy settings
        policy: Overrides settings.failure_policy
        on_status_change: Listener for node status changes
        node_registry: Definitions used for parameter defaults
        planner: Planner used when run() is not given a plan
    """

    def __init__(
        self,
        service: GenerationService,
        settings: ExecutionSettings | None = None,
        policy: FailurePolicy | None = None,
        on_status_change: StatusListener | None = None,
        node_registry: NodeRegistry | None = None,
        planner: ExecutionPlanner | None = None,
    ):
        self.service = service
        self.settings = settings or ExecutionSettings()
        self.policy = policy or FailurePolicy(self.settings.failure_policy)
        self.on_status_change = on_status_change
        self.node_registry = node_registry or NodeRegistry.instance()
        self.planner = planner or ExecutionPlanner()

        self._token: CancellationToken | None = None
        self._trackers: dict[NodeId, JobTracker] = {}
        self._aborted = False

    @property
    def is_running(self) -> bool:
        return self._token is not None

    async def run(
        self,
        graph: NodeGraph,
        plan: ExecutionPlan | None = None,
        targets: list[str] | None = None,
    ) -> RunResult:
        """
        Execute a graph.

        Args:
            graph: The graph to run
            plan: Precomputed plan; planned from `graph` if omitted
            targets: When planning here, only run these nodes and their
                upstream closure

        Raises:
            CycleDetectedError: If the plan reports a cycle.
            RuntimeError: If this coordinator is already running.
        """
        if self.is_running:
            raise RuntimeError("A run is already in progress")
        if plan is None:
            plan = self.planner.plan(graph, targets)
        if plan.has_cycles:
            raise CycleDetectedError("Cannot run a graph that contains a cycle")

        expected_version = graph.version if plan.graph_version is None else plan.graph_version
        run_id = uuid4().hex[:12]
        result = RunResult(run_id=run_id, status=RunStatus.COMPLETED, started_at=time.time())
        self._token = CancellationToken()
        self._trackers = {}
        self._aborted = False
        stale = False

        logger.info(
            "Run %s: %d node(s) in %d wave(s), policy %s",
            run_id, len(plan.order), len(plan.parallel_groups), self.policy.value,
        )

        try:
            for index, group in enumerate(plan.parallel_groups):
                if self._token.is_cancelled:
                    break
                if graph.version != expected_version:
                    error = StaleGraphError(expected_version, graph.version)
                    logger.warning("Run %s aborted: %s", run_id, error)
                    result.errors.append(NodeRunError(None, error.code, str(error)))
                    stale = True
                    break

                runnable = self._select_runnable(graph, group, result)
                logger.info(
                    "Run %s: wave %d/%d, %d node(s)",
                    run_id, index + 1, len(plan.parallel_groups), len(runnable),
                )
                await self._run_wave(graph, runnable, result)
        finally:
            cancelled = self._token.is_cancelled and not self._aborted
            self._token = None
            self._trackers = {}

        # Nodes the run never reached
        for node_id in plan.order:
            if node_id not in result.node_statuses:
                result.node_statuses[node_id] = NodeStatus.CANCELLED
                self._mark(graph, node_id, NodeStatus.CANCELLED)

        result.status = self._final_status(result, stale, cancelled)
        result.completed_at = time.time()
        logger.info(
            "Run %s finished: %s in %.1fs (%d error(s))",
            run_id, result.status.value, result.duration, len(result.errors),
        )
        return result

    async def cancel(self) -> bool:
        """
        Cancel the current run.

        In-flight jobs are cancelled and no further wave is started.
        Nodes that already completed keep their output.

        Returns:
            True if a run was in progress.
        """
        if self._token is None:
            return False
        logger.info("Cancelling run")
        self._token.cancel("Run cancelled")
        await self._cancel_trackers()
        return True

    def build_parameters(self, graph: NodeGraph, node: Node) -> dict[str, Any]:
        """
        Assemble the parameters sent to the service for a node.

        Definition defaults are overridden by the node's own parameters.
        Upstream outputs are attached under "inputs", keyed by input port
        (a list for multi ports).
        """
        definition = self.node_registry.get(node.node_type)
        parameters = definition.get_default_parameters() if definition else {}
        parameters.update(node.parameters)

        inputs: dict[str, Any] = {}
        for port in node.inputs:
            values = []
            for edge in graph.incoming_edges(node.id, port.id):
                source = graph.get_node(edge.source_node_id)
                if source is not None and source.cached_output is not None:
                    values.append(source.cached_output.to_dict())
            if values:
                inputs[port.id] = values if port.multi else values[0]
        if inputs:
            parameters["inputs"] = inputs
        return parameters

    # --- Internals ---

    def _select_runnable(
        self,
        graph: NodeGraph,
        group: list[NodeId],
        result: RunResult,
    ) -> list[Node]:
        runnable = []
        for node_id in group:
            node = graph.get_node(node_id)
            if node is None:
                continue

            blockers = [
                pred for pred in graph.predecessors(node_id)
                if result.node_statuses.get(pred, self._status_of(graph, pred))
                is not NodeStatus.COMPLETED
            ]
            if blockers:
                names = ", ".join(self._name(graph, b) for b in blockers)
                result.node_statuses[node_id] = NodeStatus.BLOCKED
                self._mark(graph, node_id, NodeStatus.BLOCKED, error=f"Blocked by {names}")
                logger.info("Node %s blocked by %s", node_id, names)
                continue
            runnable.append(node)
        return runnable

    async def _run_wave(self, graph: NodeGraph, nodes: list[Node], result: RunResult) -> None:
        limit = self.settings.max_concurrent_jobs
        semaphore = asyncio.Semaphore(limit) if limit > 0 else None

        async def run_node(node: Node) -> None:
            async with semaphore if semaphore is not None else contextlib.nullcontext():
                if self._token.is_cancelled:
                    return
                tracker = JobTracker(
                    self.service,
                    self.settings,
                    on_status_change=lambda change: self._forward(graph, change),
                    token=self._token.child(),
                )
                self._trackers[node.id] = tracker
                await tracker.submit(node, self.build_parameters(graph, node))
                job = await tracker.wait()

            if job.status is NodeStatus.ERROR and self.policy is FailurePolicy.ABORT:
                if not self._token.is_cancelled:
                    logger.warning("Aborting run after failure of node %s", node.id)
                    self._aborted = True
                    self._token.cancel("Aborted after node failure")
                    await self._cancel_trackers()

        await asyncio.gather(*(run_node(node) for node in nodes))

        for node in nodes:
            tracker = self._trackers.get(node.id)
            if tracker is None or not tracker.job.status.is_terminal:
                continue
            job = tracker.job
            result.node_statuses[node.id] = job.status
            if job.status is NodeStatus.COMPLETED and job.output is not None:
                result.outputs[node.id] = job.output
            elif job.status is NodeStatus.ERROR and job.error is not None:
                result.errors.append(NodeRunError(node.id, job.error.code, job.error.message))

    async def _cancel_trackers(self) -> None:
        active = [
            t for t in self._trackers.values() if t.is_submitting or t.job.status.is_active
        ]
        await asyncio.gather(*(t.cancel() for t in active))

    def _forward(self, graph: NodeGraph, change: StatusChange) -> None:
        try:
            graph.set_node_status(
                change.node_id,
                change.new_status,
                progress=change.progress,
                output=change.output,
                error=change.error,
            )
        except KeyError:
            logger.warning("Node %s left the graph during execution", change.node_id)
        self._emit(change)

    def _mark(
        self,
        graph: NodeGraph,
        node_id: NodeId,
        status: NodeStatus,
        error: str | None = None,
    ) -> None:
        node = graph.get_node(node_id)
        if node is None:
            return
        old_status = node.status
        graph.set_node_status(node_id, status, error=error)
        self._emit(StatusChange(node_id, old_status, status, node.progress, error))

    def _emit(self, change: StatusChange) -> None:
        if self.on_status_change is None:
            return
        try:
            self.on_status_change(change)
        except Exception:
            logger.exception("Status listener failed for node %s", change.node_id)

    def _final_status(self, result: RunResult, stale: bool, cancelled: bool) -> RunStatus:
        if stale:
            return RunStatus.ABORTED
        if cancelled:
            return RunStatus.CANCELLED
        if self._aborted:
            return RunStatus.FAILED

        statuses = list(result.node_statuses.values())
        if all(s is NodeStatus.COMPLETED for s in statuses):
            return RunStatus.COMPLETED
        if any(s is NodeStatus.COMPLETED for s in statuses):
            return RunStatus.PARTIAL
        return RunStatus.FAILED

    @staticmethod
    def _status_of(graph: NodeGraph, node_id: NodeId) -> NodeStatus:
        node = graph.get_node(node_id)
        return node.status if node else NodeStatus.IDLE

    @staticmethod
    def _name(graph: NodeGraph, node_id: NodeId) -> str:
        node = graph.get_node(node_id)
        return node.display_name if node else node_id
