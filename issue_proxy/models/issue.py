"""Issue submission models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class IssueType(str, Enum):
    """Classification chosen by the submitter. Unknown values become QUESTION."""

    BUG = "bug"
    FEATURE = "feature"
    QUESTION = "question"

    @classmethod
    def parse(cls, value: Any) -> "IssueType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.QUESTION


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IssueSubmission(_CamelModel):
    """Anonymous issue report form submission."""

    issue_type: IssueType = IssueType.QUESTION
    title: str
    description: str
    turnstile_token: str
    website: str = ""  # Honeypot: bots fill this, humans don't

    @field_validator("issue_type", mode="before")
    @classmethod
    def _fold_unknown_issue_type(cls, value: Any) -> IssueType:
        return IssueType.parse(value)


class IssueCreatedResponse(_CamelModel):
    """Response after a submission is accepted."""

    issue_number: int
    issue_url: str


class ErrorResponse(BaseModel):
    error: str
