from pathlib import Path
from typing import Any, List, Optional, Union

import pydantic
from loguru import logger
from style_analysis_client.errors import (
    MalformedResponseError,
    StyleClientError,
    ValidationError,
)
from style_analysis_client.models import (
    FormField,
    FormPayload,
    StyleGuide,
    StyleGuideUpdate,
    StyleGuideUpload,
)
from style_analysis_client.transport import Transport

STYLE_GUIDES_ENDPOINT = "/v1/style-guides"


def _parse_guide(data: Any) -> StyleGuide:
    try:
        return StyleGuide.model_validate(data)
    except pydantic.ValidationError as e:
        raise MalformedResponseError(f"Unexpected style guide payload: {e}") from e


class StyleGuidesApi:
    def __init__(self, transport: Transport):
        self.transport = transport
        self.logger = logger

    async def list(self) -> List[StyleGuide]:
        data = await self.transport.send(
            self.transport.envelope("GET", STYLE_GUIDES_ENDPOINT)
        )
        if not isinstance(data, list):
            raise MalformedResponseError("Expected a list of style guides")
        return [_parse_guide(item) for item in data]

    async def get(self, style_guide_id: str) -> StyleGuide:
        data = await self.transport.send(
            self.transport.envelope("GET", f"{STYLE_GUIDES_ENDPOINT}/{style_guide_id}")
        )
        return _parse_guide(data)

    async def create(
        self,
        upload: Union[StyleGuideUpload, str, Path],
        name: Optional[str] = None,
    ) -> StyleGuide:
        """Upload a PDF style guide, given as an upload, a local file path or a file:// URL"""
        try:
            if not isinstance(upload, StyleGuideUpload):
                upload = StyleGuideUpload.from_path(upload, name)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e, "style guide upload") from e
        except ValueError as e:
            raise ValidationError(str(e)) from e
        except OSError as e:
            raise ValidationError(f"Could not read style guide file {upload}: {e}") from e

        form = FormPayload(
            parts=(
                FormField(
                    name="file_upload",
                    value=upload.content,
                    filename=upload.filename,
                    content_type="application/pdf",
                ),
                FormField(name="name", value=upload.name),
            )
        )
        data = await self.transport.send(
            self.transport.envelope("POST", STYLE_GUIDES_ENDPOINT, form=form)
        )
        return _parse_guide(data)

    async def update(self, style_guide_id: str, updates: StyleGuideUpdate) -> StyleGuide:
        data = await self.transport.send(
            self.transport.envelope(
                "PATCH",
                f"{STYLE_GUIDES_ENDPOINT}/{style_guide_id}",
                json_body=updates.model_dump(exclude_none=True),
            )
        )
        return _parse_guide(data)

    async def delete(self, style_guide_id: str) -> None:
        await self.transport.send(
            self.transport.envelope("DELETE", f"{STYLE_GUIDES_ENDPOINT}/{style_guide_id}")
        )

    async def validate_token(self) -> bool:
        """True when the configured API key can list style guides"""
        try:
            await self.list()
        except StyleClientError as e:
            self.logger.warning(f"Token validation failed: {e.message}")
            return False
        return True
