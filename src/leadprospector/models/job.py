from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leadprospector.models.draft import JobDetails


class JobListing(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company: str
    title: str
    location: str = ""
    email: Optional[str] = None     # contact address, when the listing shows one
    snippet: str = ""
    url: Optional[str] = None

    # Full posting text, used downstream for email generation
    full_description: Optional[str] = Field(default=None, alias="fullDescription")
    source_site: Optional[str] = Field(default=None, alias="sourceSite")

    def to_job_details(self) -> JobDetails:
        return JobDetails(
            company_name=self.company,
            job_title=self.title,
            recruiter_email=self.email or "",
            job_description=self.full_description or self.snippet,
        )
