import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from style_analysis_client.errors import (
    MalformedResponseError,
    WorkflowFailedError,
    WorkflowTimeoutError,
)
from style_analysis_client.models import JobStatus, StatusPollingConfig, StatusResponse
from style_analysis_client.transport import Transport, run_cancellable


def status_path(endpoint: str, workflow_id: str) -> str:
    """Join a resource endpoint and a workflow id with exactly one slash"""
    return f"{endpoint.rstrip('/')}/{workflow_id}"


def failure_detail(body: dict) -> Optional[str]:
    candidates = [body.get("error_message")]
    result = body.get("result")
    if isinstance(result, dict):
        candidates.append(result.get("error_message"))
    candidates.extend([body.get("detail"), body.get("message")])
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


class WorkflowPoller:
    def __init__(
        self,
        transport: Transport,
        config: Optional[StatusPollingConfig] = None,
        on_status_change: Optional[Callable[[StatusResponse], Awaitable[Any]]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.config = config or StatusPollingConfig()
        self.on_status_change = on_status_change
        self.sleep = sleep
        self.clock = clock
        self.logger = logger

    async def fetch_status(
        self,
        workflow_id: str,
        endpoint: str,
        cancel: Optional[asyncio.Event] = None,
        started_at: Optional[float] = None,
        attempt: int = 1,
    ) -> StatusResponse:
        """Fetches the current status of a workflow once"""
        start_time = self.clock() if started_at is None else started_at
        envelope = self.transport.envelope("GET", status_path(endpoint, workflow_id))
        data = await self.transport.send(envelope, cancel)

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Unexpected status response for workflow {workflow_id}: expected a JSON object"
            )

        status = JobStatus.parse(data.get("status"))
        if status is None and "status" in data:
            self.logger.warning(
                f"Unrecognised status {data['status']!r} for workflow {workflow_id}, treating as pending"
            )

        return StatusResponse(
            workflow_id=workflow_id,
            status=status,
            raw_response=data,
            elapsed_time=self.clock() - start_time,
            attempts=attempt,
        )

    def _calculate_delay(self, attempt: int) -> float:
        """Delay before the next attempt; fixed unless a backoff factor above 1 is configured"""
        delay = self.config.poll_interval * (self.config.backoff_factor ** (attempt - 1))
        if self.config.max_delay is not None:
            delay = min(delay, self.config.max_delay)

        # Add random jitter between 0-20% of the delay
        if self.config.jitter:
            delay *= 1 + 0.2 * random.random()
        return delay

    async def _handle_status_change(
        self, status_response: StatusResponse, last_status: Optional[JobStatus]
    ) -> None:
        """Invoke the status change callback if the status has changed"""
        if last_status != status_response.status and self.on_status_change is not None:
            self.logger.debug(
                f"Workflow {status_response.workflow_id} status changed to {status_response.status}"
            )
            await self.on_status_change(status_response)

    async def _wait_before_retry(
        self, delay: float, cancel: Optional[asyncio.Event]
    ) -> None:
        self.logger.debug(f"Workflow still pending, waiting {delay:.2f}s before next attempt")
        await run_cancellable(self.sleep(delay), cancel, "Polling")

    async def poll(
        self,
        workflow_id: str,
        endpoint: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> StatusResponse:
        """Poll the status endpoint until the workflow completes or fails.

        Only a pending status is retried. Transport errors propagate as they
        are, ``failed`` raises WorkflowFailedError, and running out of attempts
        (or past the optional wall-clock timeout) raises WorkflowTimeoutError.
        """
        max_attempts = self.config.max_attempts
        started_at = self.clock()
        deadline = None
        if self.config.timeout is not None:
            deadline = started_at + self.config.timeout
        last_status = None

        for attempt in range(1, max_attempts + 1):
            status_response = await self.fetch_status(
                workflow_id, endpoint, cancel, started_at=started_at, attempt=attempt
            )

            await self._handle_status_change(status_response, last_status)
            last_status = status_response.status

            if status_response.status is JobStatus.completed:
                self.logger.info(
                    f"Workflow {workflow_id} completed after {attempt} attempts "
                    f"({status_response.elapsed_time:.2f}s)"
                )
                return status_response

            if status_response.status is JobStatus.failed:
                detail = failure_detail(status_response.raw_response)
                self.logger.error(f"Workflow {workflow_id} failed: {detail or 'no detail'}")
                raise WorkflowFailedError(
                    workflow_id, detail, raw=status_response.raw_response
                )

            if attempt == max_attempts:
                break

            delay = self._calculate_delay(attempt)
            if deadline is not None:
                remaining = deadline - self.clock()
                if remaining <= 0:
                    self.logger.error(f"Workflow {workflow_id} exceeded {self.config.timeout}s")
                    raise WorkflowTimeoutError(
                        workflow_id, attempt, timeout=self.config.timeout
                    )
                delay = min(delay, remaining)

            await self._wait_before_retry(delay, cancel)

        self.logger.error(f"Workflow {workflow_id} timed out after {max_attempts} attempts")
        raise WorkflowTimeoutError(workflow_id, max_attempts)
