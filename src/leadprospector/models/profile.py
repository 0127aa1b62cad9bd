from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    """Sender profile. Read-only for search and drafting."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    email: str = ""
    years_experience: str = Field(default="", alias="yearsExperience")
    portfolio_url: str = Field(default="", alias="portfolioUrl")
    skills: str = ""
    bio: str = ""
    linkedin_url: str = Field(default="", alias="linkedinUrl")

    @property
    def is_complete(self) -> bool:
        return bool(self.name.strip())
