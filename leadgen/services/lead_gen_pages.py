from __future__ import annotations

import base64
import logging
import mimetypes
import re
import time
from dataclasses import dataclass

import httpx

from leadgen.schemas.image_generation import Artifact, LeadGenImages
from leadgen.schemas.lead_gen import (
    BusinessPrompt,
    FeatureDraft,
    FeaturesSectionDraft,
    HeroSectionDraft,
    LeadFormDraft,
    LeadFormField,
    LeadGenContent,
    LeadGenPageDraft,
    MediaAttachment,
)
from leadgen.services.comfyui_client import ComfyUIClient
from leadgen.services.image_generation import PollPolicy, generate_lead_gen_images
from leadgen.services.lead_gen_content import generate_lead_gen_content
from leadgen.services.ollama_client import OllamaClient

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_TYPE = "generic business"
DEFAULT_SERVICE_DESCRIPTION = "3PL services"
GENERATED_BY = "AI Agent"
PAGE_URL_PREFIX = "/lead-gen/"

_BUSINESS_RE = re.compile(r"sell\s+([^.!?]+)", re.IGNORECASE)
_SERVICE_RE = re.compile(r"with\s+([^.!?]+)", re.IGNORECASE)
_SLUG_STRIP_RE = re.compile(r"[^\w\s]", re.ASCII)
_SLUG_SPACE_RE = re.compile(r"\s+")

DEFAULT_FORM_FIELDS: tuple[LeadFormField, ...] = (
    LeadFormField(label="Name", type="text", required=True),
    LeadFormField(label="Email", type="email", required=True),
    LeadFormField(label="Phone", type="tel", required=False),
    LeadFormField(label="Message", type="textarea", required=False),
)


class ServiceUnavailableError(RuntimeError):
    def __init__(self, message: str, *, service: str) -> None:
        super().__init__(message)
        self.service = service


@dataclass
class LeadGenPageResult:
    page: LeadGenPageDraft
    page_url: str


def parse_business_prompt(prompt: str) -> BusinessPrompt:
    business_match = _BUSINESS_RE.search(prompt)
    service_match = _SERVICE_RE.search(prompt)
    business_type = business_match.group(1).strip() if business_match else ""
    service_description = service_match.group(1).strip() if service_match else ""
    return BusinessPrompt(
        businessType=business_type or DEFAULT_BUSINESS_TYPE,
        serviceDescription=service_description or DEFAULT_SERVICE_DESCRIPTION,
    )


def slugify_title(title: str) -> str:
    cleaned = _SLUG_STRIP_RE.sub("", title.lower())
    return _SLUG_SPACE_RE.sub("-", cleaned)


def _attachment(artifact: Artifact, *, alt: str) -> MediaAttachment:
    content_type = mimetypes.guess_type(artifact.filename)[0] or "image/png"
    return MediaAttachment(
        filename=artifact.filename,
        alt=alt,
        contentType=content_type,
        sizeBytes=len(artifact.content),
        dataBase64=base64.b64encode(artifact.content).decode("ascii"),
    )


def build_page_draft(content: LeadGenContent, images: LeadGenImages, *, prompt: str) -> LeadGenPageDraft:
    hero_image = _attachment(images.heroImage, alt=f"Hero image for {content.title}")
    feature_images = [
        _attachment(image, alt=f"Feature image {index} for {content.title}")
        for index, image in enumerate(images.featureImages, start=1)
    ]

    features = [
        FeatureDraft(
            title=feature.title,
            description=feature.description,
            image=feature_images[index] if index < len(feature_images) else None,
        )
        for index, feature in enumerate(content.featuresSection.features)
    ]

    return LeadGenPageDraft(
        title=content.title,
        slug=slugify_title(content.title),
        heroSection=HeroSectionDraft(
            headline=content.heroSection.headline,
            subheadline=content.heroSection.subheadline,
            image=hero_image,
            ctaText=content.heroSection.ctaText,
        ),
        benefits=list(content.benefits),
        featuresSection=FeaturesSectionDraft(title=content.featuresSection.title, features=features),
        contentSection=content.contentSection,
        leadForm=LeadFormDraft(
            title=content.leadForm.title,
            description=content.leadForm.description,
            fields=list(DEFAULT_FORM_FIELDS),
            submitButtonText=content.leadForm.submitButtonText,
        ),
        generatedBy=GENERATED_BY,
        aiPrompt=prompt,
        meta=content.meta,
    )


def check_services(*, text_client: OllamaClient, image_client: ComfyUIClient) -> None:
    try:
        text_client.ping()
    except httpx.HTTPError as exc:
        logger.warning("lead_gen.ollama_unreachable", extra={"base_url": text_client.base_url, "error": str(exc)})
        raise ServiceUnavailableError(
            "Failed to connect to Ollama text generation service", service="ollama"
        ) from exc
    try:
        image_client.ping()
    except httpx.HTTPError as exc:
        logger.warning("lead_gen.comfyui_unreachable", extra={"base_url": image_client.base_url, "error": str(exc)})
        raise ServiceUnavailableError(
            "Failed to connect to ComfyUI image generation service", service="comfyui"
        ) from exc


def generate_lead_gen_page(
    prompt: str,
    *,
    text_client: OllamaClient | None = None,
    image_client: ComfyUIClient | None = None,
    poll_policy: PollPolicy | None = None,
) -> LeadGenPageResult:
    resolved_text = text_client or OllamaClient()
    resolved_image = image_client or ComfyUIClient()
    started = time.monotonic()

    parsed = parse_business_prompt(prompt)
    logger.info(
        "lead_gen.prompt_parsed",
        extra={"business_type": parsed.businessType, "service_description": parsed.serviceDescription},
    )

    check_services(text_client=resolved_text, image_client=resolved_image)

    content = generate_lead_gen_content(parsed.businessType, parsed.serviceDescription, client=resolved_text)
    images = generate_lead_gen_images(parsed.businessType, client=resolved_image, policy=poll_policy)
    page = build_page_draft(content, images, prompt=prompt)

    logger.info(
        "lead_gen.page_generated",
        extra={"slug": page.slug, "elapsed_seconds": round(time.monotonic() - started, 3)},
    )
    return LeadGenPageResult(page=page, page_url=f"{PAGE_URL_PREFIX}{page.slug}")
