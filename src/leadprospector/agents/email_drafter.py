"""
AI-powered outreach email drafter.

Two flows:
  - Cold email to a discovered lead (one call per recipient, cached by the
    draft coordinator).
  - Application email for a specific job the applicant picked.

Both return a GeneratedEmail {subject, body} from a JSON-mode request. The
sender profile must have a name; that is checked before any network call.
"""
from __future__ import annotations

from typing import Optional

from leadprospector.models.draft import GeneratedEmail, JobDetails
from leadprospector.models.lead import Lead
from leadprospector.models.profile import UserProfile
from leadprospector.services.ai_client import AIClient


class ProfileIncompleteError(ValueError):
    """Raised when the sender profile cannot be used for drafting."""


_COLD_EMAIL_TEMPLATE = """\
Write a highly tailored, professional cold email from a job seeker to the recipient below.
Keep it concise and genuine: 3–4 short paragraphs, under 200 words.
Start with a greeting that uses the recipient's first name when known.
Tie the sender's experience to the recipient's company and role.

RECIPIENT: {recipient_name}, {recipient_role} at {recipient_company}
RECIPIENT CONTEXT: {recipient_snippet}

SENDER: {name}, {years} yrs experience
SKILLS: {skills}
BIO: {bio}
LINKS: {links}

Output JSON with "subject" and "body".
"""

_APPLICATION_TEMPLATE = """\
Generate a high-converting, personalized application email for the job below.
Address {greeting}. Keep it under 250 words.

CANDIDATE: {name}, {years} yrs experience
SKILLS: {skills}
BIO: {bio}
LINKS: {links}

JOB: {job_title} at {company}
DESCRIPTION:
{description}

Output JSON with "subject" and "body".
"""


def ensure_profile(profile: Optional[UserProfile]) -> UserProfile:
    if profile is None or not profile.is_complete:
        raise ProfileIncompleteError("Profile incomplete: add your name before drafting emails.")
    return profile


async def generate_cold_email(
    profile: UserProfile,
    recipient: Lead,
    client: Optional[AIClient] = None,
) -> GeneratedEmail:
    """
    Draft a cold email to one discovered lead.

    Raises:
        ProfileIncompleteError: Sender has no name.
        AIClientError:          Generation failed or returned unusable JSON.
    """
    profile = ensure_profile(profile)
    client = client or AIClient()

    prompt = _COLD_EMAIL_TEMPLATE.format(
        recipient_name=recipient.name or "Hiring team",
        recipient_role=recipient.role or "contact",
        recipient_company=recipient.company or "their company",
        recipient_snippet=(recipient.snippet or "n/a")[:1_000],
        **_sender_fields(profile),
    )
    return await client.generate_structured(prompt, GeneratedEmail)


async def generate_application_email(
    profile: UserProfile,
    job: JobDetails,
    client: Optional[AIClient] = None,
) -> GeneratedEmail:
    """Draft an application email for a job the applicant selected."""
    profile = ensure_profile(profile)
    client = client or AIClient()

    prompt = _APPLICATION_TEMPLATE.format(
        greeting=job.hiring_manager_name or "the hiring team",
        job_title=job.job_title,
        company=job.company_name,
        description=job.job_description[:3_000],
        **_sender_fields(profile),
    )
    return await client.generate_structured(prompt, GeneratedEmail)


def _sender_fields(profile: UserProfile) -> dict[str, str]:
    links = ", ".join(u for u in (profile.portfolio_url, profile.linkedin_url) if u)
    return {
        "name": profile.name,
        "years": profile.years_experience or "n/a",
        "skills": profile.skills or "n/a",
        "bio": profile.bio[:2_000] or "n/a",
        "links": links or "n/a",
    }
