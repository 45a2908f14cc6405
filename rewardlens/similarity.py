# rewardlens/similarity.py
"""
Edit-distance similarity and best-candidate selection for business names.

- `levenshtein` is the classic insert/delete/substitute (cost 1) distance,
  computed by RapidFuzz (exact values, not an approximation).
- `similarity` turns the distance into a 0..1 score.
- `find_best_match` / `rank_candidates` compare a target name against a list of
  candidates using normalized and canonical forms plus a containment bonus.
"""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence, Tuple

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from .preproc import canonicalize, normalize_name

CONTAINMENT_BONUS = 0.2


class BestMatch(NamedTuple):
    match: Optional[str]
    score: float
    index: int


def levenshtein(a: str, b: str) -> int:
    """
    Minimum number of single-character edits turning ``a`` into ``b``.

    >>> levenshtein("kitten", "sitting")
    3
    """
    return int(Levenshtein.distance(a, b))


def similarity(a: str, b: str) -> float:
    """
    Case-insensitive similarity in [0, 1]: ``1 - distance / max(len)``.

    Two empty strings are identical (1.0).
    """
    a, b = (a or "").lower(), (b or "").lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return max(0.0, 1.0 - levenshtein(a, b) / longest)


def _pair_score(
    norm_target: str, canon_target: str, candidate: str
) -> Tuple[float, bool]:
    """Return (raw score, canonical exact match) for one candidate."""
    norm_cand = normalize_name(candidate)
    canon_cand = canonicalize(candidate)
    if not canon_target or not canon_cand:
        return 0.0, False
    if canon_target == canon_cand:
        return 1.0, True

    score = max(similarity(norm_target, norm_cand), similarity(canon_target, canon_cand))
    if norm_target and norm_cand and (norm_target in norm_cand or norm_cand in norm_target):
        score += CONTAINMENT_BONUS
    return score, False


def find_best_match(target: str, candidates: Sequence[str], threshold: float = 0.6) -> BestMatch:
    """
    Pick the candidate that best matches ``target``.

    An exact canonical match short-circuits with score 1.0. Otherwise each
    candidate scores ``max(normalized similarity, canonical similarity)`` plus a
    0.2 bonus when either normalized string contains the other. The best
    candidate is returned only if its score reaches ``threshold``; otherwise
    ``match`` is None and ``index`` is -1, with the best score kept for
    diagnostics. Reported scores are capped at 1.0.

    Examples
    --------
    >>> find_best_match("JW Marriott Downtown", ["Hilton", "Marriott"]).match
    'Marriott'
    """
    norm_target = normalize_name(target)
    canon_target = canonicalize(target)

    best_score = 0.0
    best_index = -1
    for i, candidate in enumerate(candidates):
        score, exact = _pair_score(norm_target, canon_target, candidate)
        if exact:
            return BestMatch(candidate, 1.0, i)
        if score > best_score:
            best_score, best_index = score, i

    reported = min(best_score, 1.0)
    if best_index >= 0 and best_score >= threshold:
        return BestMatch(candidates[best_index], reported, best_index)
    return BestMatch(None, reported, -1)


def rank_candidates(target: str, candidates: Sequence[str], k: int = 5) -> List[BestMatch]:
    """
    Top-``k`` candidates by the `find_best_match` score, best first.

    Useful to inspect near misses when `find_best_match` reports no match.
    """
    norm_target = normalize_name(target)
    canon_target = canonicalize(target)

    def scorer(_query, choice, **kwargs):
        score, _ = _pair_score(norm_target, canon_target, choice)
        return min(score, 1.0) * 100.0

    matches = process.extract(target, list(candidates), scorer=scorer, processor=None, limit=k)
    return [BestMatch(choice, round(score / 100.0, 6), int(idx)) for choice, score, idx in matches]
