from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from leadgen.config import settings
from leadgen.schemas.image_generation import (
    Artifact,
    GenerationRequest,
    JobHandle,
    LeadGenImages,
    OutputReference,
)
from leadgen.services.comfyui_client import ComfyUIClient, GenerationTimeoutError, ImageGenerationError

logger = logging.getLogger(__name__)

HERO_IMAGE_SIZE = (1024, 512)
FEATURE_IMAGE_SIZE = (512, 512)
FEATURE_IMAGE_COUNT = 2
_DEADLINE_SLACK_SECONDS = 1e-6


@dataclass(frozen=True)
class PollPolicy:
    interval_seconds: float = 1.0
    timeout_seconds: float = 120.0
    backoff_factor: float = 1.0
    max_interval_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0 or self.timeout_seconds <= 0:
            raise ValueError("Poll interval and timeout must be positive")
        if self.backoff_factor < 1.0:
            raise ValueError("Poll backoff factor must be >= 1.0")

    @classmethod
    def from_settings(cls) -> "PollPolicy":
        return cls(
            interval_seconds=float(settings.COMFYUI_POLL_INTERVAL_SECONDS),
            timeout_seconds=float(settings.COMFYUI_POLL_TIMEOUT_SECONDS),
            backoff_factor=float(settings.COMFYUI_POLL_BACKOFF_FACTOR),
            max_interval_seconds=settings.COMFYUI_POLL_MAX_INTERVAL_SECONDS,
        )

    def next_interval(self, current: float) -> float:
        grown = current * self.backoff_factor
        if self.max_interval_seconds is not None:
            grown = min(grown, self.max_interval_seconds)
        return grown


def wait_for_output(client: ComfyUIClient, handle: JobHandle, *, policy: PollPolicy | None = None) -> OutputReference:
    """
    Poll the job history until the SaveImage stage reports an output.

    A failed history request aborts at once with QueryError. Pending and
    unknown statuses wait for the next tick. GenerationTimeoutError is raised
    once the timeout has fully elapsed; the last query always happens before
    the deadline, so at most ceil(timeout / interval) queries are made.
    """

    resolved = policy or PollPolicy.from_settings()
    started = time.monotonic()
    deadline = started + resolved.timeout_seconds
    interval = resolved.interval_seconds
    queries = 0

    while True:
        status = client.get_status(handle)
        queries += 1
        if status.is_complete:
            logger.info(
                "comfyui.job_complete",
                extra={
                    "job_id": handle.job_id,
                    "queries": queries,
                    "elapsed_seconds": round(time.monotonic() - started, 3),
                },
            )
            return status.output
        if status.state == "unknown":
            logger.debug("comfyui.job_status_unknown", extra={"job_id": handle.job_id, "queries": queries})

        remaining = deadline - time.monotonic()
        if remaining > 0:
            time.sleep(min(interval, remaining))
            remaining = deadline - time.monotonic()
        if remaining <= _DEADLINE_SLACK_SECONDS:
            # Summed float sleeps can land a sliver short of the deadline.
            if remaining > 0:
                time.sleep(remaining)
            break
        interval = resolved.next_interval(interval)

    raise GenerationTimeoutError(
        f"Image generation timed out after {resolved.timeout_seconds:g} seconds",
        job_id=handle.job_id,
    )


def generate_image(
    client: ComfyUIClient,
    request: GenerationRequest,
    *,
    policy: PollPolicy | None = None,
) -> Artifact:
    handle = client.submit(request)
    output = wait_for_output(client, handle, policy=policy)
    return client.download(output, job_id=handle.job_id)


def hero_image_request(business_type: str) -> GenerationRequest:
    width, height = HERO_IMAGE_SIZE
    return GenerationRequest(
        prompt_text=(
            f"Professional marketing image for {business_type} business, hero banner, high quality, photorealistic"
        ),
        width=width,
        height=height,
    )


def feature_image_request(business_type: str, *, index: int) -> GenerationRequest:
    width, height = FEATURE_IMAGE_SIZE
    return GenerationRequest(
        prompt_text=f"Feature image {index} for {business_type} business, icon style, professional, clear",
        width=width,
        height=height,
    )


def _generate_labeled(
    client: ComfyUIClient,
    label: str,
    request: GenerationRequest,
    *,
    policy: PollPolicy | None,
) -> Artifact:
    try:
        return generate_image(client, request, policy=policy)
    except ImageGenerationError as exc:
        exc.image = label
        logger.warning(
            "lead_gen.image_failed",
            extra={"image": label, "stage": exc.stage, "job_id": exc.job_id, "error": exc.message},
        )
        raise


def generate_lead_gen_images(
    business_type: str,
    *,
    client: ComfyUIClient | None = None,
    policy: PollPolicy | None = None,
) -> LeadGenImages:
    """Hero plus feature images, generated one after another; any failure aborts the batch."""
    resolved_client = client or ComfyUIClient()
    started = time.monotonic()

    hero = _generate_labeled(resolved_client, "hero", hero_image_request(business_type), policy=policy)
    features = [
        _generate_labeled(
            resolved_client,
            f"feature_{index}",
            feature_image_request(business_type, index=index),
            policy=policy,
        )
        for index in range(1, FEATURE_IMAGE_COUNT + 1)
    ]

    logger.info(
        "lead_gen.images_generated",
        extra={
            "business_type": business_type,
            "image_count": 1 + len(features),
            "elapsed_seconds": round(time.monotonic() - started, 3),
        },
    )
    return LeadGenImages(heroImage=hero, featureImages=features)
