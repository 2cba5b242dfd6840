from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from leadgen.schemas.lead_gen import LeadGenPageGenerateRequest, LeadGenPageGenerateResponse
from leadgen.services.comfyui_client import ImageGenerationError
from leadgen.services.lead_gen_content import LeadGenContentError
from leadgen.services.lead_gen_pages import ServiceUnavailableError, generate_lead_gen_page
from leadgen.services.ollama_client import TextGenerationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lead-gen-pages", tags=["lead-gen-pages"])


@router.post("/generate", response_model=LeadGenPageGenerateResponse)
def generate_page(payload: LeadGenPageGenerateRequest) -> LeadGenPageGenerateResponse:
    prompt = (payload.prompt or "").strip()
    if not prompt:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Prompt is required")

    try:
        result = generate_lead_gen_page(prompt)
    except ServiceUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except (ImageGenerationError, TextGenerationError, LeadGenContentError) as exc:
        logger.warning("lead_gen.generation_failed", extra={"error": str(exc), "error_type": type(exc).__name__})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate lead page: {exc}",
        ) from exc

    return LeadGenPageGenerateResponse(
        message="Lead generation page created successfully",
        pageUrl=result.page_url,
        page=result.page,
    )
