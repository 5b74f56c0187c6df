import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar

import pydantic
from loguru import logger
from style_analysis_client.errors import (
    MalformedResponseError,
    MissingWorkflowIdError,
    ValidationError,
)
from style_analysis_client.models import FormPayload, SubmissionResponse
from style_analysis_client.poller import WorkflowPoller
from style_analysis_client.transport import Transport

ResultT = TypeVar("ResultT")
RequestT = TypeVar("RequestT", bound=pydantic.BaseModel)


@dataclass(frozen=True)
class WorkflowResource(Generic[ResultT]):
    """One kind of asynchronous job: where it is submitted and what it returns"""

    name: str
    endpoint: str
    request_model: Type[pydantic.BaseModel]
    build_form: Callable[[Any], FormPayload]
    unwrap: Callable[[Dict[str, Any]], ResultT]


class WorkflowOrchestrator:
    """Submits a job and waits for its workflow to reach a terminal state"""

    def __init__(self, transport: Transport, poller: WorkflowPoller):
        self.transport = transport
        self.poller = poller
        self.logger = logger

    @staticmethod
    def validate(model: Type[RequestT], request: Any, subject: str) -> RequestT:
        if isinstance(request, model):
            return request
        try:
            return model.model_validate(request)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e, subject) from e

    async def submit(
        self,
        resource: WorkflowResource,
        request: Any,
        cancel: Optional[asyncio.Event] = None,
    ) -> SubmissionResponse:
        validated = self.validate(
            resource.request_model, request, f"{resource.name} request"
        )
        envelope = self.transport.envelope(
            "POST", resource.endpoint, form=resource.build_form(validated)
        )
        response = await self.transport.send(envelope, cancel)

        workflow_id = response.get("workflow_id") if isinstance(response, dict) else None
        if not isinstance(workflow_id, str) or not workflow_id:
            self.logger.error(f"No workflow_id in {resource.name} submission response: {response!r}")
            raise MissingWorkflowIdError(resource.name, response)

        self.logger.debug(f"Submitted {resource.name} request as workflow {workflow_id}")
        try:
            return SubmissionResponse.model_validate(response)
        except pydantic.ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected {resource.name} submission response: {e}"
            ) from e

    async def submit_and_wait(
        self,
        resource: WorkflowResource[ResultT],
        request: Any,
        cancel: Optional[asyncio.Event] = None,
    ) -> ResultT:
        submission = await self.submit(resource, request, cancel)
        status_response = await self.poller.poll(
            submission.workflow_id, resource.endpoint, cancel
        )
        return self.unwrap(resource, status_response.raw_response)

    @staticmethod
    def unwrap(resource: WorkflowResource[ResultT], body: Dict[str, Any]) -> ResultT:
        try:
            return resource.unwrap(body)
        except (KeyError, TypeError, pydantic.ValidationError) as e:
            raise MalformedResponseError(
                f"Unexpected {resource.name} result shape: {e}"
            ) from e
