import asyncio
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Union

import aiohttp
from loguru import logger
from style_analysis_client import resources
from style_analysis_client.internal import InternalApi
from style_analysis_client.models import (
    AnalysisRequest,
    CheckResult,
    ClientConfig,
    Constants,
    FeedbackRequest,
    StatusResponse,
    StyleCheckResult,
    StyleGuide,
    StyleGuideUpdate,
    StyleGuideUpload,
    StyleRewriteResult,
    StyleSuggestionResult,
    SubmissionResponse,
)
from style_analysis_client.orchestrator import WorkflowOrchestrator, WorkflowResource
from style_analysis_client.poller import WorkflowPoller
from style_analysis_client.style_guides import StyleGuidesApi
from style_analysis_client.transport import Transport


class StyleAnalysisClient:
    """Client for the style analysis service.

    Each workflow method submits the content, polls until the workflow reaches
    a terminal state and returns the unwrapped result. ``submit_*`` methods
    only submit, ``get_*`` methods read the current status once.

    Use as an async context manager, or call ``close()`` when done, to release
    the HTTP session the client created.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[aiohttp.ClientSession] = None,
        on_status_change: Optional[Callable[[StatusResponse], Awaitable[Any]]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.logger = logger
        self.transport = Transport(config, session=session)
        self.poller = WorkflowPoller(
            self.transport,
            config.polling,
            on_status_change=on_status_change,
            sleep=sleep,
            clock=clock,
        )
        self.orchestrator = WorkflowOrchestrator(self.transport, self.poller)
        self.style_guides = StyleGuidesApi(self.transport)
        self.internal = InternalApi(self.transport)

    async def __aenter__(self) -> "StyleAnalysisClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    async def submit_and_wait(
        self,
        resource: WorkflowResource,
        request: Union[AnalysisRequest, dict],
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        return await self.orchestrator.submit_and_wait(resource, request, cancel)

    async def poll_workflow_for_result(
        self,
        workflow_id: str,
        endpoint: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> StatusResponse:
        return await self.poller.poll(workflow_id, endpoint, cancel)

    # Rewrites

    async def rewrite(
        self,
        request: Union[AnalysisRequest, dict],
        cancel: Optional[asyncio.Event] = None,
    ) -> str:
        """Rewrite the content and return the merged text"""
        return await self.orchestrator.submit_and_wait(resources.REWRITE, request, cancel)

    async def submit_rewrite(
        self, request: Union[AnalysisRequest, dict]
    ) -> SubmissionResponse:
        return await self.orchestrator.submit(resources.REWRITE, request)

    async def get_rewrite(self, workflow_id: str) -> StatusResponse:
        return await self.poller.fetch_status(workflow_id, resources.REWRITES_ENDPOINT)

    # Checks

    async def check(
        self,
        request: Union[AnalysisRequest, dict],
        cancel: Optional[asyncio.Event] = None,
    ) -> CheckResult:
        return await self.orchestrator.submit_and_wait(resources.CHECK, request, cancel)

    async def submit_check(
        self, request: Union[AnalysisRequest, dict]
    ) -> SubmissionResponse:
        return await self.orchestrator.submit(resources.CHECK, request)

    async def get_check(self, workflow_id: str) -> StatusResponse:
        return await self.poller.fetch_status(workflow_id, resources.CHECKS_ENDPOINT)

    # Style analysis

    async def style_check(
        self,
        request: Union[AnalysisRequest, dict],
        cancel: Optional[asyncio.Event] = None,
    ) -> StyleCheckResult:
        return await self.orchestrator.submit_and_wait(
            resources.STYLE_CHECK, request, cancel
        )

    async def style_suggestions(
        self,
        request: Union[AnalysisRequest, dict],
        cancel: Optional[asyncio.Event] = None,
    ) -> StyleSuggestionResult:
        return await self.orchestrator.submit_and_wait(
            resources.STYLE_SUGGESTION, request, cancel
        )

    async def style_rewrite(
        self,
        request: Union[AnalysisRequest, dict],
        cancel: Optional[asyncio.Event] = None,
    ) -> StyleRewriteResult:
        return await self.orchestrator.submit_and_wait(
            resources.STYLE_REWRITE, request, cancel
        )

    async def submit_style_check(
        self, request: Union[AnalysisRequest, dict]
    ) -> SubmissionResponse:
        return await self.orchestrator.submit(resources.STYLE_CHECK, request)

    async def submit_style_suggestion(
        self, request: Union[AnalysisRequest, dict]
    ) -> SubmissionResponse:
        return await self.orchestrator.submit(resources.STYLE_SUGGESTION, request)

    async def submit_style_rewrite(
        self, request: Union[AnalysisRequest, dict]
    ) -> SubmissionResponse:
        return await self.orchestrator.submit(resources.STYLE_REWRITE, request)

    async def get_style_check(self, workflow_id: str) -> StatusResponse:
        return await self.poller.fetch_status(
            workflow_id, resources.STYLE_CHECKS_ENDPOINT
        )

    async def get_style_suggestion(self, workflow_id: str) -> StatusResponse:
        return await self.poller.fetch_status(
            workflow_id, resources.STYLE_SUGGESTIONS_ENDPOINT
        )

    async def get_style_rewrite(self, workflow_id: str) -> StatusResponse:
        return await self.poller.fetch_status(
            workflow_id, resources.STYLE_REWRITES_ENDPOINT
        )

    # Style guides

    async def list_style_guides(self) -> List[StyleGuide]:
        return await self.style_guides.list()

    async def get_style_guide(self, style_guide_id: str) -> StyleGuide:
        return await self.style_guides.get(style_guide_id)

    async def create_style_guide(
        self,
        upload: Union[StyleGuideUpload, str, Path],
        name: Optional[str] = None,
    ) -> StyleGuide:
        return await self.style_guides.create(upload, name)

    async def update_style_guide(
        self, style_guide_id: str, updates: StyleGuideUpdate
    ) -> StyleGuide:
        return await self.style_guides.update(style_guide_id, updates)

    async def delete_style_guide(self, style_guide_id: str) -> None:
        await self.style_guides.delete(style_guide_id)

    async def validate_token(self) -> bool:
        return await self.style_guides.validate_token()

    # Internal

    async def get_admin_constants(self) -> Constants:
        return await self.internal.get_admin_constants()

    async def submit_feedback(self, feedback: FeedbackRequest) -> None:
        await self.internal.submit_feedback(feedback)
