from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Copy(BaseModel):
    model_config = ConfigDict(extra="ignore")


class HeroSectionContent(_Copy):
    headline: str
    subheadline: str = ""
    ctaText: str = ""


class TitledText(_Copy):
    title: str
    description: str = ""


class FeaturesSectionContent(_Copy):
    title: str
    features: list[TitledText] = Field(default_factory=list)


class ContentSection(_Copy):
    title: str
    content: str = ""


class LeadFormContent(_Copy):
    title: str
    description: str = ""
    submitButtonText: str = "Submit"


class MetaContent(_Copy):
    title: str = ""
    description: str = ""


class LeadGenContent(_Copy):
    """Page copy returned by the text generation service."""

    title: str = Field(..., min_length=1)
    heroSection: HeroSectionContent
    benefits: list[TitledText] = Field(default_factory=list)
    featuresSection: FeaturesSectionContent
    contentSection: ContentSection
    leadForm: LeadFormContent
    meta: MetaContent = Field(default_factory=MetaContent)


class BusinessPrompt(BaseModel):
    businessType: str
    serviceDescription: str


FORM_FIELD_TYPE = Literal["text", "email", "tel", "textarea"]


class LeadFormField(BaseModel):
    label: str
    type: FORM_FIELD_TYPE
    required: bool


class MediaAttachment(BaseModel):
    """Inline image attached to a draft; the CMS upload consumes these."""

    filename: str
    alt: str
    contentType: str = "image/png"
    sizeBytes: int
    dataBase64: str


class HeroSectionDraft(BaseModel):
    headline: str
    subheadline: str
    image: MediaAttachment
    ctaText: str


class FeatureDraft(BaseModel):
    title: str
    description: str
    image: Optional[MediaAttachment] = None


class FeaturesSectionDraft(BaseModel):
    title: str
    features: list[FeatureDraft]


class LeadFormDraft(BaseModel):
    title: str
    description: str
    fields: list[LeadFormField]
    submitButtonText: str


class LeadGenPageDraft(BaseModel):
    title: str
    slug: str
    heroSection: HeroSectionDraft
    benefits: list[TitledText]
    featuresSection: FeaturesSectionDraft
    contentSection: ContentSection
    leadForm: LeadFormDraft
    generatedBy: str
    aiPrompt: str
    meta: MetaContent


class LeadGenPageGenerateRequest(BaseModel):
    prompt: Optional[str] = None


class LeadGenPageGenerateResponse(BaseModel):
    success: bool = True
    message: str
    pageUrl: str
    page: LeadGenPageDraft
