from leadgen.schemas.image_generation import (
    Artifact,
    GenerationRequest,
    JobHandle,
    JobStatus,
    LeadGenImages,
    OutputReference,
)
from leadgen.schemas.lead_gen import (
    BusinessPrompt,
    LeadGenContent,
    LeadGenPageDraft,
    LeadGenPageGenerateRequest,
    LeadGenPageGenerateResponse,
)

__all__ = [
    "Artifact",
    "BusinessPrompt",
    "GenerationRequest",
    "JobHandle",
    "JobStatus",
    "LeadGenContent",
    "LeadGenImages",
    "LeadGenPageDraft",
    "LeadGenPageGenerateRequest",
    "LeadGenPageGenerateResponse",
    "OutputReference",
]
