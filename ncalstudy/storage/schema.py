from __future__ import annotations

"""Export row schema: one row per answered question."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..bank.models import LEVELS

EXPORT_COLUMNS = [
    "questionId",
    "category",
    "subjectSpecific",
    "level",
    "question",
    "userAnswer",
    "correctness",
    "timeAllocatedSec",
    "timeElapsedSec",
    "author",
    "timestamp",
]

DTYPES = {
    "questionId": "string",
    "category": "string",
    "subjectSpecific": "string",
    "level": "string",
    "question": "string",
    "userAnswer": "string",
    "correctness": "string",
    "timeAllocatedSec": "UInt8",
    "timeElapsedSec": "UInt8",
    "author": "string",
    "timestamp": "string",
}


class ExportRow(BaseModel):
    questionId: str
    category: str
    subjectSpecific: str
    level: str
    question: str
    userAnswer: str = ""
    correctness: Literal["Correct", "Incorrect", "Timeout"]
    timeAllocatedSec: int = Field(ge=3, le=60)
    timeElapsedSec: int = Field(ge=0, le=60)
    author: str
    timestamp: str

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        if v not in LEVELS:
            raise ValueError(f"Unknown level: {v}")
        return v

    @model_validator(mode="after")
    def _elapsed_within_allocation(self) -> "ExportRow":
        if self.timeElapsedSec > self.timeAllocatedSec:
            raise ValueError("timeElapsedSec must be <= timeAllocatedSec")
        return self
