"""
Lead data model and the typed events produced by the streaming parser.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LeadType(str, Enum):
    RECRUITMENT = "recruitment"
    PERSONAL    = "personal"
    GENERAL     = "general"
    UNKNOWN     = "unknown"


class SearchStrategy(str, Enum):
    RECRUITERS      = "recruiters"
    DECISION_MAKERS = "decision_makers"
    ACTIVE_HIRING   = "active_hiring"


def normalize_email(email: str) -> str:
    """Dedup identity for an email address."""
    return email.strip().lower()


class Lead(BaseModel):
    """A discovered contact. Only `email` is required."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    email: str
    type: LeadType = LeadType.UNKNOWN
    name: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    snippet: Optional[str] = None       # why this lead is relevant
    source: Optional[str] = None
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")

    @field_validator("email")
    @classmethod
    def _strip_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("email is empty")
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> LeadType:
        if isinstance(value, LeadType):
            return value
        if isinstance(value, str):
            try:
                return LeadType(value.strip().lower())
            except ValueError:
                pass
        return LeadType.UNKNOWN

    @property
    def key(self) -> str:
        return normalize_email(self.email)


# Alias kept for the name the web client used for this record
FoundEmail = Lead


class LogEvent(BaseModel):
    type: Literal["log"] = "log"
    message: str


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    data: Lead


StreamEvent = Annotated[Union[LogEvent, ResultEvent], Field(discriminator="type")]
