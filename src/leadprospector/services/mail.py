"""mailto: links for handing a draft to the user's mail client."""
from __future__ import annotations

from urllib.parse import quote

from leadprospector.models.draft import GeneratedEmail


def build_mailto(to: str, subject: str, body: str) -> str:
    """Build a mailto: URI with percent-encoded subject and body."""
    query = f"subject={quote(subject, safe='')}&body={quote(body, safe='')}"
    return f"mailto:{quote(to.strip(), safe='@,')}?{query}"


def mailto_for_draft(to: str, draft: GeneratedEmail) -> str:
    return build_mailto(to, draft.subject, draft.body)
