"""
Pydantic schemas for the extraction service's reply.
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

BUCKET_KEYS = ("high_confidence", "needs_confirmation")


class HighConfidenceEntry(BaseModel):
    """A book the service identified from direct evidence."""
    model_config = ConfigDict(extra="forbid")

    title: str
    author: str
    evidence: str


class CandidateEntry(BaseModel):
    """A probable book the user has to confirm."""
    model_config = ConfigDict(extra="forbid")

    evidence_found: str
    suggested_title: str
    suggested_author: str
    reasoning: str
    alternatives: List[str] = Field(default_factory=list)


class ExtractionPayload(BaseModel):
    """The two-array object the identification instructions ask for."""
    model_config = ConfigDict(extra="forbid")

    high_confidence: List[HighConfidenceEntry] = Field(default_factory=list)
    needs_confirmation: List[CandidateEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_a_bucket(self) -> "ExtractionPayload":
        if not self.model_fields_set.intersection(BUCKET_KEYS):
            raise ValueError("reply has neither 'high_confidence' nor 'needs_confirmation'")
        return self

    def missing_buckets(self) -> List[str]:
        return [key for key in BUCKET_KEYS if key not in self.model_fields_set]
