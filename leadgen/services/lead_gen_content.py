from __future__ import annotations

import json
import logging
from typing import Any, Dict

from pydantic import ValidationError

from leadgen.config import settings
from leadgen.schemas.lead_gen import LeadGenContent
from leadgen.services.ollama_client import OllamaClient

logger = logging.getLogger(__name__)

_RESPONSE_SHAPE = """{
  "title": "Page title",
  "heroSection": {
    "headline": "Main headline",
    "subheadline": "Supporting subheadline",
    "ctaText": "Call to action button text"
  },
  "benefits": [
    { "title": "Benefit 1", "description": "Description of benefit 1" },
    { "title": "Benefit 2", "description": "Description of benefit 2" },
    { "title": "Benefit 3", "description": "Description of benefit 3" }
  ],
  "featuresSection": {
    "title": "Section title",
    "features": [
      { "title": "Feature 1", "description": "Description of feature 1" },
      { "title": "Feature 2", "description": "Description of feature 2" }
    ]
  },
  "contentSection": {
    "title": "About our services",
    "content": "Detailed information about the service..."
  },
  "leadForm": {
    "title": "Get in touch",
    "description": "Fill out the form to learn more",
    "submitButtonText": "Submit"
  },
  "meta": {
    "title": "SEO title",
    "description": "SEO description"
  }
}"""


class LeadGenContentError(RuntimeError):
    pass


def build_content_prompt(business_type: str, service_description: str) -> str:
    return (
        f"Generate a lead generation landing page for a {business_type} business.\n"
        f"The business offers: {service_description}\n\n"
        "Format the response as a JSON object with the following structure:\n"
        f"{_RESPONSE_SHAPE}\n\n"
        "Make the content persuasive, professional, and focused on generating leads. "
        "Keep each text item concise.\n"
    )


def _object_end(text: str, start: int) -> int | None:
    """Index just past the brace that closes the object opened at ``start``."""
    depth = 0
    quoted = False
    pos = start
    while pos < len(text):
        ch = text[pos]
        if quoted:
            if ch == "\\":
                pos += 2
                continue
            quoted = ch != '"'
        elif ch == '"':
            quoted = True
        elif ch in "{}":
            depth += 1 if ch == "{" else -1
            if depth == 0:
                return pos + 1
        pos += 1
    return None


def extract_first_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first balanced top-level JSON object found in free-form model output.

    Preamble and closing remarks around the object are ignored, as are braces
    inside JSON strings.
    """

    if not isinstance(text, str) or not text.strip():
        raise ValueError("Could not extract JSON from the response")

    start = text.find("{")
    end = _object_end(text, start) if start != -1 else None
    if end is None:
        raise ValueError("Could not extract JSON from the response")

    parsed = json.loads(text[start:end])
    if not isinstance(parsed, dict):
        raise ValueError("Extracted JSON was not an object")
    return parsed


def parse_lead_gen_content(text: str) -> LeadGenContent:
    try:
        data = extract_first_json_object(text)
    except ValueError as exc:
        head = text[:200].replace("\n", "\\n") if isinstance(text, str) else ""
        raise LeadGenContentError(f"Failed to generate lead gen content: {exc} text_head={head!r}") from exc
    try:
        return LeadGenContent.model_validate(data)
    except ValidationError as exc:
        raise LeadGenContentError(f"Failed to generate lead gen content: invalid page structure: {exc}") from exc


def generate_lead_gen_content(
    business_type: str,
    service_description: str,
    *,
    client: OllamaClient | None = None,
    structured_output: bool | None = None,
) -> LeadGenContent:
    resolved_client = client or OllamaClient()
    use_schema = settings.OLLAMA_STRUCTURED_OUTPUT if structured_output is None else structured_output
    response_format = LeadGenContent.model_json_schema() if use_schema else None

    raw = resolved_client.generate(
        build_content_prompt(business_type, service_description),
        response_format=response_format,
    )
    content = parse_lead_gen_content(raw)
    logger.info(
        "lead_gen.content_generated",
        extra={
            "business_type": business_type,
            "benefit_count": len(content.benefits),
            "feature_count": len(content.featuresSection.features),
            "structured_output": use_schema,
        },
    )
    return content
