import json

import httpx
import pytest

from leadgen.schemas.image_generation import GenerationRequest, JobHandle, OutputReference
from leadgen.services import comfyui_client
from leadgen.services.comfyui_client import (
    ComfyUIClient,
    DownloadError,
    GenerationTimeoutError,
    QueryError,
    SubmissionError,
)


def _client(handler) -> ComfyUIClient:
    return ComfyUIClient(base_url="http://comfyui.test/", transport=httpx.MockTransport(handler))


def _history(job_id: str, *, filename: str = "generated_00001_.png", subfolder: str = "") -> dict:
    return {
        job_id: {
            "outputs": {
                "9": {"images": [{"filename": filename, "subfolder": subfolder, "type": "output"}]},
            },
            "status": {"status_str": "success", "completed": True},
        }
    }


def test_build_workflow_substitutes_request_parameters():
    request = GenerationRequest(prompt_text="a harbor at dawn", width=1024, height=512)

    workflow = comfyui_client.build_workflow(request, seed=1234, checkpoint_name="model.safetensors")

    assert workflow["3"]["inputs"]["seed"] == 1234
    assert workflow["3"]["class_type"] == "KSampler"
    assert workflow["4"]["inputs"]["ckpt_name"] == "model.safetensors"
    assert workflow["5"]["inputs"] == {"width": 1024, "height": 512, "batch_size": 1}
    assert workflow["6"]["inputs"]["text"] == "a harbor at dawn"
    assert workflow["7"]["inputs"]["text"] == "bad quality, blurry, distorted, low resolution"
    assert workflow["9"]["class_type"] == "SaveImage"


def test_build_workflow_randomizes_seed_per_call(monkeypatch):
    seeds = iter([11, 22])
    monkeypatch.setattr(comfyui_client.random, "randrange", lambda _upper: next(seeds))
    request = GenerationRequest(prompt_text="x")

    first = comfyui_client.build_workflow(request)
    second = comfyui_client.build_workflow(request)

    assert first["3"]["inputs"]["seed"] == 11
    assert second["3"]["inputs"]["seed"] == 22


def test_generation_request_rejects_non_positive_dimensions():
    with pytest.raises(ValueError):
        GenerationRequest(prompt_text="x", width=0)


def test_parse_job_status_pending_when_history_has_no_entry():
    status = comfyui_client.parse_job_status({}, job_id="job-1")
    assert status.state == "pending"
    assert status.output is None


def test_parse_job_status_unknown_when_output_stage_missing():
    history = {"job-1": {"outputs": {"8": {}}, "status": {"completed": False}}}
    status = comfyui_client.parse_job_status(history, job_id="job-1")
    assert status.state == "unknown"
    assert not status.is_complete


def test_parse_job_status_complete_uses_first_image():
    status = comfyui_client.parse_job_status(_history("job-1", subfolder="batch"), job_id="job-1")
    assert status.is_complete
    assert status.output == OutputReference(filename="generated_00001_.png", subfolder="batch", type="output")


def test_submit_posts_workflow_and_returns_handle():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"prompt_id": "abc-123", "number": 1})

    handle = _client(handler).submit(GenerationRequest(prompt_text="hero banner", width=1024, height=512))

    assert handle == JobHandle(job_id="abc-123")
    assert captured["method"] == "POST"
    assert captured["path"] == "/prompt"
    assert captured["body"]["prompt"]["5"]["inputs"]["width"] == 1024


def test_submit_error_includes_status_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text='{"error": "invalid prompt"}')

    with pytest.raises(SubmissionError) as exc_info:
        _client(handler).submit(GenerationRequest(prompt_text="x"))

    assert exc_info.value.status_code == 400
    message = str(exc_info.value)
    assert "[submit]" in message
    assert "status=400" in message
    assert "invalid prompt" in message


def test_submit_unreachable_raises_submission_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SubmissionError, match="unreachable"):
        _client(handler).submit(GenerationRequest(prompt_text="x"))


def test_submit_without_prompt_id_raises_submission_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"number": 3})

    with pytest.raises(SubmissionError, match="prompt_id"):
        _client(handler).submit(GenerationRequest(prompt_text="x"))


def test_get_status_reads_history_by_job_id():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/history/job-7"
        return httpx.Response(200, json=_history("job-7"))

    status = _client(handler).get_status(JobHandle(job_id="job-7"))

    assert status.is_complete
    assert status.output.filename == "generated_00001_.png"


def test_get_status_failure_raises_query_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    with pytest.raises(QueryError) as exc_info:
        _client(handler).get_status(JobHandle(job_id="job-7"))

    assert exc_info.value.status_code == 503
    assert exc_info.value.job_id == "job-7"


def test_download_passes_filename_and_subfolder():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/view"
        assert request.url.params["filename"] == "generated_00001_.png"
        assert request.url.params["subfolder"] == ""
        return httpx.Response(200, content=b"\x89PNG-bytes")

    artifact = _client(handler).download(OutputReference(filename="generated_00001_.png"))

    assert artifact.filename == "generated_00001_.png"
    assert artifact.content == b"\x89PNG-bytes"


def test_download_failure_raises_download_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(DownloadError) as exc_info:
        _client(handler).download(OutputReference(filename="missing.png"), job_id="job-9")

    assert exc_info.value.status_code == 404
    assert "[download]" in str(exc_info.value)


def test_timeout_error_is_a_builtin_timeout():
    exc = GenerationTimeoutError("timed out", job_id="job-1")
    assert isinstance(exc, TimeoutError)
    assert isinstance(exc, comfyui_client.ImageGenerationError)
