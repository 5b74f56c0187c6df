import asyncio

import pytest
from conftest import FakeTransport
from style_analysis_client.errors import (
    CancelledError,
    HttpError,
    MalformedResponseError,
    NetworkError,
    WorkflowFailedError,
    WorkflowTimeoutError,
)
from style_analysis_client.models import JobStatus, StatusPollingConfig
from style_analysis_client.poller import WorkflowPoller, status_path

ENDPOINT = "/v1/rewrites/"
COMPLETED = {"status": "completed", "result": {"merged_text": "done"}}


def make_poller(responses, sleep, **config):
    transport = FakeTransport(responses)
    poller = WorkflowPoller(transport, StatusPollingConfig(**config), sleep=sleep)
    return transport, poller


@pytest.mark.parametrize("pending", [0, 1, 4])
@pytest.mark.asyncio
async def test_pending_then_completed(sleep, pending):
    """N running reads followed by completed issue exactly N+1 requests."""
    responses = [{"status": "running"}] * pending + [COMPLETED]
    transport, poller = make_poller(responses, sleep, max_attempts=10, poll_interval=2.0)

    result = await poller.poll("wf-1", ENDPOINT)

    assert result.status == JobStatus.completed
    assert result.raw_response == COMPLETED
    assert result.attempts == pending + 1
    assert len(transport.sent) == pending + 1
    assert sleep.delays == [2.0] * pending


@pytest.mark.asyncio
async def test_endless_running_times_out_after_max_attempts(sleep):
    transport, poller = make_poller([{"status": "running"}], sleep, max_attempts=3)

    with pytest.raises(WorkflowTimeoutError, match="Workflow timed out after 3 attempts"):
        await poller.poll("wf-1", ENDPOINT)

    assert len(transport.sent) == 3
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_failed_stops_immediately(sleep):
    transport, poller = make_poller(
        [{"status": "failed", "error_message": "boom"}, COMPLETED], sleep, max_attempts=30
    )

    with pytest.raises(WorkflowFailedError, match="^Workflow failed: boom$") as excinfo:
        await poller.poll("wf-1", ENDPOINT)

    assert excinfo.value.workflow_id == "wf-1"
    assert len(transport.sent) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_failed_without_detail(sleep):
    _, poller = make_poller([{"status": "FAILED"}], sleep)

    with pytest.raises(WorkflowFailedError, match="^Workflow failed with status: failed$"):
        await poller.poll("wf-1", ENDPOINT)


@pytest.mark.asyncio
async def test_missing_status_counts_as_pending(sleep):
    transport, poller = make_poller([{"workflow_id": "wf-1"}], sleep, max_attempts=2)

    with pytest.raises(WorkflowTimeoutError):
        await poller.poll("wf-1", ENDPOINT)

    assert len(transport.sent) == 2


@pytest.mark.asyncio
async def test_status_aliases_are_pending(sleep):
    responses = [{"status": "processing"}, {"status": "Queued"}, {"status": "pending"}, COMPLETED]
    transport, poller = make_poller(responses, sleep, max_attempts=5)

    await poller.poll("wf-1", ENDPOINT)

    assert len(transport.sent) == 4


@pytest.mark.parametrize(
    "error", [HttpError(500, "server down"), NetworkError("Failed to fetch")]
)
@pytest.mark.asyncio
async def test_transport_errors_propagate_unchanged(sleep, error):
    transport, poller = make_poller([{"status": "running"}, error, COMPLETED], sleep)

    with pytest.raises(type(error)) as excinfo:
        await poller.poll("wf-1", ENDPOINT)

    assert excinfo.value is error
    assert len(transport.sent) == 2


@pytest.mark.asyncio
async def test_non_object_status_body_is_malformed(sleep):
    _, poller = make_poller([["not", "an", "object"]], sleep)

    with pytest.raises(MalformedResponseError):
        await poller.poll("wf-1", ENDPOINT)


@pytest.mark.asyncio
async def test_status_request_path(sleep):
    transport, poller = make_poller([COMPLETED], sleep)

    await poller.poll("wf-7", "/v1/style/checks")

    assert transport.sent[0].method == "GET"
    assert transport.sent[0].path == "/v1/style/checks/wf-7"
    assert status_path("/v1/rewrites/", "wf-7") == "/v1/rewrites/wf-7"


@pytest.mark.asyncio
async def test_backoff_is_capped(sleep):
    _, poller = make_poller(
        [{"status": "running"}],
        sleep,
        max_attempts=5,
        poll_interval=1.0,
        backoff_factor=2.0,
        max_delay=3.0,
    )

    with pytest.raises(WorkflowTimeoutError):
        await poller.poll("wf-1", ENDPOINT)

    assert sleep.delays == [1.0, 2.0, 3.0, 3.0]


@pytest.mark.asyncio
async def test_wall_clock_deadline(sleep):
    now = [0.0]

    async def advancing_sleep(delay):
        sleep.delays.append(delay)
        now[0] += delay

    transport = FakeTransport([{"status": "running"}])
    poller = WorkflowPoller(
        transport,
        StatusPollingConfig(max_attempts=100, poll_interval=2.0, timeout=5.0),
        sleep=advancing_sleep,
        clock=lambda: now[0],
    )

    with pytest.raises(WorkflowTimeoutError, match="after 5 seconds") as excinfo:
        await poller.poll("wf-1", ENDPOINT)

    assert sleep.delays == [2.0, 2.0, 1.0]
    assert excinfo.value.attempts == 4
    assert len(transport.sent) == 4


@pytest.mark.asyncio
async def test_status_change_callback(sleep):
    seen = []

    async def on_change(status_response):
        seen.append(status_response.status)

    transport = FakeTransport([{"status": "queued"}, {"status": "running"}, {"status": "running"}, COMPLETED])
    poller = WorkflowPoller(transport, StatusPollingConfig(), on_status_change=on_change, sleep=sleep)

    await poller.poll("wf-1", ENDPOINT)

    assert seen == [JobStatus.queued, JobStatus.running, JobStatus.completed]


@pytest.mark.asyncio
async def test_cancel_during_delay_stops_polling():
    cancel = asyncio.Event()
    transport = FakeTransport([{"status": "running"}])
    poller = WorkflowPoller(transport, StatusPollingConfig(poll_interval=30.0))

    async def trigger():
        await asyncio.sleep(0.05)
        cancel.set()

    trigger_task = asyncio.create_task(trigger())
    with pytest.raises(CancelledError):
        await asyncio.wait_for(poller.poll("wf-1", ENDPOINT, cancel), timeout=5)
    await trigger_task

    assert len(transport.sent) == 1

