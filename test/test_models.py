import pytest
from pydantic import ValidationError

from style_analysis_client.models import (
    AnalysisRequest,
    ClientConfig,
    GuidanceSettings,
    JobStatus,
    StyleGuideName,
    StyleGuideUpload,
    get_mime_type,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("completed", JobStatus.completed),
        ("COMPLETED", JobStatus.completed),
        ("processing", JobStatus.running),
        ("pending", JobStatus.queued),
        ("error", JobStatus.failed),
        ("paused", None),
        (None, None),
        (3, None),
    ],
)
def test_job_status_parse(raw, expected):
    assert JobStatus.parse(raw) is expected


def test_terminal_statuses():
    assert {status for status in JobStatus if status.is_terminal} == {
        JobStatus.completed,
        JobStatus.failed,
    }


def test_client_config_strips_trailing_slash():
    config = ClientConfig(platform_url="https://api.example.com/", api_key="k")

    assert config.url_for("v1/rewrites/") == "https://api.example.com/v1/rewrites/"


def test_client_config_rejects_blank_api_key():
    with pytest.raises(ValidationError):
        ClientConfig(platform_url="https://api.example.com", api_key="  ")


def test_guidance_defaults():
    guidance = GuidanceSettings(style_guide=StyleGuideName.chicago.value)

    assert guidance.dialect.value == "american_english"
    assert guidance.tone.value == "formal"
    assert guidance.style_guide == "chicago"


def test_text_upload_field():
    request = AnalysisRequest(content="hello", guidance=GuidanceSettings(style_guide="ap"))

    field = request.upload_field("file_upload")

    assert field.value == b"hello"
    assert field.filename == "unknown.txt"
    assert field.content_type == "text/plain"


def test_binary_upload_field_uses_document_mime_type():
    request = AnalysisRequest(
        content=b"%PDF",
        document_name="doc.pdf",
        guidance=GuidanceSettings(style_guide="ap"),
    )

    assert request.upload_field("file").content_type == "application/pdf"
    assert get_mime_type("README") == "application/octet-stream"


def test_style_guide_upload_requires_pdf():
    with pytest.raises(ValidationError, match="Only .pdf files are supported"):
        StyleGuideUpload(name="guide", filename="guide.docx", content=b"x")


def test_explicit_content_type_overrides_guess():
    request = AnalysisRequest(
        content=b"<p>hi</p>",
        document_name="upload.bin",
        content_type="text/html",
        guidance=GuidanceSettings(style_guide="ap"),
    )

    assert request.upload_field("file").content_type == "text/html"


def test_style_guide_upload_from_file_url(tmp_path):
    guide = tmp_path / "house style.pdf"
    guide.write_bytes(b"%PDF-1.4")

    upload = StyleGuideUpload.from_path(guide.as_uri())

    assert upload.name == "house style"
    assert upload.filename == "house style.pdf"
    assert upload.content == b"%PDF-1.4"


def test_style_guide_upload_rejects_remote_url():
    with pytest.raises(ValueError, match="Only file:// URLs are supported"):
        StyleGuideUpload.from_path("https://example.com/guide.pdf")
