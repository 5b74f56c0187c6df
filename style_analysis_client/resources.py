from typing import Any, Dict

from style_analysis_client.models import (
    AnalysisRequest,
    CheckResult,
    FormField,
    FormPayload,
    RewriteResult,
    StyleCheckResult,
    StyleRewriteResult,
    StyleSuggestionResult,
)
from style_analysis_client.orchestrator import WorkflowResource

REWRITES_ENDPOINT = "/v1/rewrites/"
CHECKS_ENDPOINT = "/v1/checks/"
STYLE_CHECKS_ENDPOINT = "/v1/style/checks"
STYLE_SUGGESTIONS_ENDPOINT = "/v1/style/suggestions"
STYLE_REWRITES_ENDPOINT = "/v1/style/rewrites"


def analysis_form(file_field: str):
    def build(request: AnalysisRequest) -> FormPayload:
        guidance = request.guidance
        return FormPayload(
            parts=(
                request.upload_field(file_field),
                FormField(name="dialect", value=guidance.dialect.value),
                FormField(name="tone", value=guidance.tone.value),
                FormField(name="style_guide", value=guidance.style_guide),
            )
        )

    return build


def _result(body: Dict[str, Any]) -> Dict[str, Any]:
    result = body["result"]
    if not isinstance(result, dict):
        raise TypeError("result is not an object")
    return result


def unwrap_rewrite(body: Dict[str, Any]) -> str:
    return RewriteResult.model_validate(_result(body)).merged_text


def unwrap_check(body: Dict[str, Any]) -> CheckResult:
    return CheckResult.model_validate(_result(body))


REWRITE: WorkflowResource[str] = WorkflowResource(
    name="rewrite",
    endpoint=REWRITES_ENDPOINT,
    request_model=AnalysisRequest,
    build_form=analysis_form("file"),
    unwrap=unwrap_rewrite,
)

CHECK: WorkflowResource[CheckResult] = WorkflowResource(
    name="check",
    endpoint=CHECKS_ENDPOINT,
    request_model=AnalysisRequest,
    build_form=analysis_form("file"),
    unwrap=unwrap_check,
)

# The style endpoints return their payload at the top level of the status body
STYLE_CHECK: WorkflowResource[StyleCheckResult] = WorkflowResource(
    name="style check",
    endpoint=STYLE_CHECKS_ENDPOINT,
    request_model=AnalysisRequest,
    build_form=analysis_form("file_upload"),
    unwrap=StyleCheckResult.model_validate,
)

STYLE_SUGGESTION: WorkflowResource[StyleSuggestionResult] = WorkflowResource(
    name="style suggestion",
    endpoint=STYLE_SUGGESTIONS_ENDPOINT,
    request_model=AnalysisRequest,
    build_form=analysis_form("file_upload"),
    unwrap=StyleSuggestionResult.model_validate,
)

STYLE_REWRITE: WorkflowResource[StyleRewriteResult] = WorkflowResource(
    name="style rewrite",
    endpoint=STYLE_REWRITES_ENDPOINT,
    request_model=AnalysisRequest,
    build_form=analysis_form("file_upload"),
    unwrap=StyleRewriteResult.model_validate,
)
