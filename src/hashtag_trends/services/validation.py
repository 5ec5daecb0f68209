"""Input checks for submitted tweets and the top-N query."""

from __future__ import annotations

import re

from hashtag_trends.errors import (
    EmptyContent,
    ExceedsMaximum,
    MissingParameter,
    NotAPositiveInteger,
    TooLong,
)

MAX_TWEET_LENGTH = 280
MAX_COUNT = 25

_DIGITS_RE = re.compile(r"[0-9]+")


def validate_post(text: object, *, max_length: int = MAX_TWEET_LENGTH) -> str:
    """Return ``text`` unchanged if it is an acceptable tweet.

    Trimming is only used to detect blank input; the stored text keeps its
    surrounding whitespace.
    """
    if not text:
        raise EmptyContent("Tweet is required.")
    if not isinstance(text, str) or not text.strip():
        raise EmptyContent("Tweet must be a non-empty string.")
    if len(text) > max_length:
        raise TooLong(f"Tweet exceeds maximum length of {max_length} characters.")
    return text


def validate_count(raw: object, *, maximum: int = MAX_COUNT) -> int:
    if raw is None:
        raise MissingParameter("'count' query parameter is required.")
    value = raw.strip() if isinstance(raw, str) else raw
    if isinstance(value, bool):
        raise NotAPositiveInteger("'count' must be a positive integer.")
    if isinstance(value, int):
        count = value
    elif isinstance(value, str) and _DIGITS_RE.fullmatch(value):
        count = int(value)
    else:
        raise NotAPositiveInteger("'count' must be a positive integer.")
    if count <= 0:
        raise NotAPositiveInteger("'count' must be a positive integer.")
    if count > maximum:
        raise ExceedsMaximum(f"'count' cannot exceed the maximum value of {maximum}.")
    return count
