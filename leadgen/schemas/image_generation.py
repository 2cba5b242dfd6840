from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NEGATIVE_PROMPT = "bad quality, blurry, distorted, low resolution"

JOB_STATE = Literal["pending", "complete", "unknown"]


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt_text: str = Field(..., min_length=1)
    negative_prompt_text: str = DEFAULT_NEGATIVE_PROMPT
    width: int = Field(512, gt=0)
    height: int = Field(512, gt=0)


class JobHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str = Field(..., min_length=1)


class OutputReference(BaseModel):
    model_config = ConfigDict(extra="ignore")

    filename: str
    subfolder: str = ""
    type: str = "output"


class JobStatus(BaseModel):
    state: JOB_STATE
    output: OutputReference | None = None

    @property
    def is_complete(self) -> bool:
        return self.state == "complete" and self.output is not None


class Artifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes


class LeadGenImages(BaseModel):
    heroImage: Artifact
    featureImages: list[Artifact] = Field(default_factory=list)
