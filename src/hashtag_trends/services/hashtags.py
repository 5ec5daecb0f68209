"""Hashtag extraction."""

from __future__ import annotations

import re

# For str patterns \w is Unicode-aware: letters, digits and underscore.
HASHTAG_RE = re.compile(r"#\w+")


def extract_hashtags(text: str | None) -> list[str]:
    """Return every hashtag in ``text``, lowercased, in order of appearance.

    Repeated tags are kept so each occurrence is counted by the ranking.
    """
    return [match.lower() for match in HASHTAG_RE.findall(text or "")]
