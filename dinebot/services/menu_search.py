import difflib
import re
import unicodedata
from typing import Sequence, TypeVar

T = TypeVar("T")

_ALIAS_PATTERNS = (
    (r"\bcoke\b", "coca cola"),
    (r"\bsoda\b", "soft drink"),
    (r"\bfries\b", "french fries"),
    (r"\bburgers\b", "burger"),
    (r"\bpizzas\b", "pizza"),
)

MIN_SCORE = 0.45


def _apply_aliases(text: str) -> str:
    for pattern, replacement in _ALIAS_PATTERNS:
        text = re.sub(pattern, replacement, text)
    return text


def normalize(text: str) -> str:
    text = (text or "").lower()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(char for char in text if not unicodedata.combining(char))
    text = re.sub(r"[-_]", " ", text)
    text = re.sub(r"[^\w\s]", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    if not text:
        return ""
    text = _apply_aliases(text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def score_match(normalized_query: str, normalized_name: str) -> float:
    if not normalized_query or not normalized_name:
        return 0.0

    if normalized_query == normalized_name:
        return 1.0

    query_tokens = set(normalized_query.split())
    name_tokens = set(normalized_name.split())
    if not query_tokens or not name_tokens:
        return 0.0

    shared_tokens = query_tokens & name_tokens
    token_match_ratio = len(shared_tokens) / max(len(query_tokens), 1)
    name_match_ratio = len(shared_tokens) / max(len(name_tokens), 1)
    score = (token_match_ratio * 0.75) + (name_match_ratio * 0.25)

    similarity = difflib.SequenceMatcher(None, normalized_query, normalized_name).ratio()
    score = max(score, similarity * 0.6)

    if normalized_query in normalized_name:
        score = max(score, 0.78)

    return min(score, 1.0)


def rank_by_name(candidates: Sequence[T], query: str, *, name_of, limit: int = 10) -> list[T]:
    """Order ``candidates`` by how well their name matches ``query``.

    Candidates under ``MIN_SCORE`` are dropped; ties keep input order.
    """
    normalized_query = normalize(query)
    if not normalized_query:
        return []

    scored: list[tuple[float, int, T]] = []
    for position, candidate in enumerate(candidates):
        normalized_name = normalize(name_of(candidate))
        if not normalized_name:
            continue
        score = score_match(normalized_query, normalized_name)
        if score >= MIN_SCORE:
            scored.append((score, position, candidate))

    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return [candidate for _score, _position, candidate in scored[:limit]]
