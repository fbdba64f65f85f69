from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from core.models import ExtractedDate
from dates.resolver import resolve

RE_EXPLICIT_PHRASE = re.compile(
    r"\b(?:for|on|from)\s+(?P<phrase>.+?)(?=\s+(?:to|for|working|on)\b|$)",
    re.IGNORECASE,
)
RE_RELATIVE_TOKEN = re.compile(
    r"\b(?P<phrase>yesterday|today|monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|last\s+\w+|\d+\s+days?\s+ago|\d+\s+weeks?\s+ago)(?=[\s.,!?]|$)",
    re.IGNORECASE,
)
RE_DATE_TOKEN = re.compile(
    r"\b(?P<phrase>\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4}|[a-z]+\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?)\b",
    re.IGNORECASE,
)

DATE_PATTERNS = (RE_EXPLICIT_PHRASE, RE_RELATIVE_TOKEN, RE_DATE_TOKEN)


def extract_date_from_text(text: str, reference_now: datetime) -> Optional[ExtractedDate]:
    """Find the first date phrase in a sentence and resolve it.

    Patterns are tried in order and each one only looks at its first match. A
    match that does not resolve to a valid date hands over to the next pattern.
    """
    source = text or ""
    for pattern in DATE_PATTERNS:
        match = pattern.search(source)
        if match is None:
            continue
        resolved = resolve(match.group("phrase").strip(), reference_now)
        if not resolved.is_valid:
            continue
        extracted = match.group(0)
        remaining = source[: match.start()] + " " + source[match.end() :]
        return ExtractedDate(
            resolved=resolved,
            extracted_text=extracted.strip(),
            remaining_text=re.sub(r"\s+", " ", remaining).strip(),
        )
    return None
