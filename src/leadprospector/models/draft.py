from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GeneratedEmail(BaseModel):
    subject: str
    body: str


class JobDetails(BaseModel):
    """Job the applicant is writing to; input for application emails."""

    model_config = ConfigDict(populate_by_name=True)

    company_name: str = Field(alias="companyName")
    job_title: str = Field(alias="jobTitle")
    hiring_manager_name: Optional[str] = Field(default=None, alias="hiringManagerName")
    recruiter_email: str = Field(default="", alias="recruiterEmail")
    job_description: str = Field(default="", alias="jobDescription")
