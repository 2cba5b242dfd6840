from __future__ import annotations

import logging
import random
from typing import Any

import httpx

from leadgen.config import settings
from leadgen.schemas.image_generation import (
    Artifact,
    GenerationRequest,
    JobHandle,
    JobStatus,
    OutputReference,
)

logger = logging.getLogger(__name__)

# Node id of the SaveImage stage in the workflow graph below.
SAVE_IMAGE_NODE_ID = "9"
_MAX_SEED = 1_000_000
_BODY_PREVIEW_CHARS = 500


class ImageGenerationError(RuntimeError):
    stage = "image_generation"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        job_id: str | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.job_id = job_id
        self.body = body
        # Which image of a batch failed; set by the orchestrator.
        self.image: str | None = None

    def __str__(self) -> str:
        status = f" status={self.status_code}" if self.status_code is not None else ""
        job = f" job_id={self.job_id}" if self.job_id else ""
        image = f" image={self.image}" if self.image else ""
        body = f" body={self.body}" if self.body else ""
        return f"[{self.stage}] {self.message}{status}{job}{image}{body}".strip()


class SubmissionError(ImageGenerationError):
    stage = "submit"


class QueryError(ImageGenerationError):
    stage = "poll"


class GenerationTimeoutError(ImageGenerationError, TimeoutError):
    stage = "poll"


class DownloadError(ImageGenerationError):
    stage = "download"


def build_workflow(request: GenerationRequest, *, seed: int | None = None, checkpoint_name: str | None = None) -> dict[str, Any]:
    """Text-to-image graph for a single Stable Diffusion checkpoint."""
    resolved_seed = random.randrange(_MAX_SEED) if seed is None else seed
    return {
        "3": {
            "inputs": {
                "seed": resolved_seed,
                "steps": 20,
                "cfg": 8,
                "sampler_name": "dpmpp_2m",
                "scheduler": "karras",
                "denoise": 1,
                "model": ["4", 0],
                "positive": ["6", 0],
                "negative": ["7", 0],
                "latent_image": ["5", 0],
            },
            "class_type": "KSampler",
        },
        "4": {
            "inputs": {"ckpt_name": checkpoint_name or settings.COMFYUI_CHECKPOINT_NAME},
            "class_type": "CheckpointLoaderSimple",
        },
        "5": {
            "inputs": {"width": request.width, "height": request.height, "batch_size": 1},
            "class_type": "EmptyLatentImage",
        },
        "6": {
            "inputs": {"text": request.prompt_text, "clip": ["4", 1]},
            "class_type": "CLIPTextEncode",
        },
        "7": {
            "inputs": {"text": request.negative_prompt_text, "clip": ["4", 1]},
            "class_type": "CLIPTextEncode",
        },
        "8": {
            "inputs": {"samples": ["3", 0], "vae": ["4", 2]},
            "class_type": "VAEDecode",
        },
        SAVE_IMAGE_NODE_ID: {
            "inputs": {"filename_prefix": "generated", "images": ["8", 0]},
            "class_type": "SaveImage",
        },
    }


def parse_job_status(history: Any, *, job_id: str) -> JobStatus:
    if not isinstance(history, dict):
        return JobStatus(state="unknown")
    entry = history.get(job_id)
    if entry is None:
        return JobStatus(state="pending")
    if not isinstance(entry, dict):
        return JobStatus(state="unknown")

    outputs = entry.get("outputs")
    node_output = outputs.get(SAVE_IMAGE_NODE_ID) if isinstance(outputs, dict) else None
    images = node_output.get("images") if isinstance(node_output, dict) else None
    if not isinstance(images, list) or not images or not isinstance(images[0], dict):
        return JobStatus(state="unknown")
    first = images[0]
    filename = first.get("filename")
    if not isinstance(filename, str) or not filename:
        return JobStatus(state="unknown")
    return JobStatus(
        state="complete",
        output=OutputReference(
            filename=filename,
            subfolder=first.get("subfolder") or "",
            type=first.get("type") or "output",
        ),
    )


def _preview(text: str) -> str:
    return text[:_BODY_PREVIEW_CHARS]


class ComfyUIClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        checkpoint_name: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        resolved_base = (base_url or settings.COMFYUI_BASE_URL or "").strip()
        if not resolved_base:
            raise ValueError("COMFYUI_BASE_URL is required")
        self.base_url = resolved_base.rstrip("/")
        self.timeout_seconds = float(timeout_seconds or settings.COMFYUI_REQUEST_TIMEOUT_SECONDS or 30.0)
        self.checkpoint_name = checkpoint_name or settings.COMFYUI_CHECKPOINT_NAME
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout_seconds, transport=self._transport)

    def ping(self) -> None:
        """Raises httpx.HTTPError when the queue cannot be reached."""
        with self._client() as client:
            client.get("/")

    def submit(self, request: GenerationRequest) -> JobHandle:
        workflow = build_workflow(request, checkpoint_name=self.checkpoint_name)
        try:
            with self._client() as client:
                resp = client.post("/prompt", json={"prompt": workflow})
        except httpx.HTTPError as exc:
            raise SubmissionError(f"ComfyUI queue is unreachable: {exc}") from exc

        if resp.status_code >= 400:
            raise SubmissionError(
                "ComfyUI rejected the workflow",
                status_code=resp.status_code,
                body=_preview(resp.text),
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise SubmissionError(
                "ComfyUI returned non-JSON payload for /prompt",
                status_code=resp.status_code,
                body=_preview(resp.text),
            ) from exc

        prompt_id = data.get("prompt_id") if isinstance(data, dict) else None
        if not isinstance(prompt_id, str) or not prompt_id.strip():
            raise SubmissionError(
                "ComfyUI response did not include prompt_id",
                status_code=resp.status_code,
                body=_preview(resp.text),
            )
        logger.info(
            "comfyui.job_submitted",
            extra={"job_id": prompt_id, "width": request.width, "height": request.height},
        )
        return JobHandle(job_id=prompt_id)

    def get_status(self, handle: JobHandle) -> JobStatus:
        try:
            with self._client() as client:
                resp = client.get(f"/history/{handle.job_id}")
        except httpx.HTTPError as exc:
            raise QueryError(f"Failed to get generation history: {exc}", job_id=handle.job_id) from exc

        if resp.status_code >= 400:
            raise QueryError(
                "Failed to get generation history",
                status_code=resp.status_code,
                job_id=handle.job_id,
                body=_preview(resp.text),
            )
        try:
            history = resp.json()
        except ValueError as exc:
            raise QueryError(
                "ComfyUI returned non-JSON history payload",
                status_code=resp.status_code,
                job_id=handle.job_id,
            ) from exc
        return parse_job_status(history, job_id=handle.job_id)

    def download(self, output: OutputReference, *, job_id: str | None = None) -> Artifact:
        params = {"filename": output.filename, "subfolder": output.subfolder or "", "type": output.type or "output"}
        try:
            with self._client() as client:
                resp = client.get("/view", params=params)
        except httpx.HTTPError as exc:
            raise DownloadError(f"Failed to download generated image: {exc}", job_id=job_id) from exc

        if resp.status_code >= 400:
            raise DownloadError(
                "Failed to download generated image",
                status_code=resp.status_code,
                job_id=job_id,
            )
        if not resp.content:
            raise DownloadError("ComfyUI returned an empty image body", status_code=resp.status_code, job_id=job_id)
        logger.info(
            "comfyui.artifact_downloaded",
            extra={"job_id": job_id, "artifact_filename": output.filename, "size_bytes": len(resp.content)},
        )
        return Artifact(filename=output.filename, content=resp.content)
