import pydantic
from loguru import logger
from style_analysis_client.errors import MalformedResponseError
from style_analysis_client.models import Constants, FeedbackRequest
from style_analysis_client.transport import Transport

CONSTANTS_ENDPOINT = "/internal/v1/constants"
FEEDBACK_ENDPOINT = "/internal/v1/demo-feedback"


class InternalApi:
    def __init__(self, transport: Transport):
        self.transport = transport
        self.logger = logger

    async def get_admin_constants(self) -> Constants:
        data = await self.transport.send(
            self.transport.envelope("GET", CONSTANTS_ENDPOINT)
        )
        try:
            return Constants.model_validate(data)
        except pydantic.ValidationError as e:
            raise MalformedResponseError(f"Unexpected constants payload: {e}") from e

    async def submit_feedback(self, feedback: FeedbackRequest) -> None:
        await self.transport.send(
            self.transport.envelope(
                "POST",
                FEEDBACK_ENDPOINT,
                json_body=feedback.model_dump(exclude_none=True),
            )
        )
        self.logger.debug(f"Submitted feedback for workflow {feedback.workflow_id}")
