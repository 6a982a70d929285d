"""Free-text product search by name."""

from __future__ import annotations

from typing import Iterable

from shelfscan.core.models import ProductRecord, ScoredProduct

DEFAULT_LIMIT = 10

EXACT_NAME_SCORE = 3
PHRASE_SCORE = 2
ALL_TOKENS_SCORE = 1


def normalize_name(text: str | None) -> str:
    """Uppercase and collapse runs of whitespace."""
    return " ".join((text or "").upper().split())


def score_name(name: str, query: str, tokens: list[str]) -> int:
    """Score one normalized name against a normalized query; 0 means no match.

    A single-token query has no phrase to match, so containing it scores
    the same as containing every token.
    """
    if name == query:
        return EXACT_NAME_SCORE
    if len(tokens) > 1 and query in name:
        return PHRASE_SCORE
    if all(token in name for token in tokens):
        return ALL_TOKENS_SCORE
    return 0


def match_by_name(
    query: str,
    catalog: Iterable[ProductRecord],
    limit: int = DEFAULT_LIMIT,
) -> list[ScoredProduct]:
    """Rank catalog products against a free-text query.

    Args:
        query: Text typed by the user, case-insensitive
        catalog: Products in catalog order
        limit: Maximum number of results

    Returns:
        Matches by descending score; equal scores keep catalog order

    Examples:
        >>> catalog = [ProductRecord("1", "PANADOL BABY"), ProductRecord("2", "PANADOL EXTRA")]
        >>> [(r.product.display_name, r.score) for r in match_by_name("panadol", catalog)]
        [('PANADOL BABY', 1), ('PANADOL EXTRA', 1)]
    """
    normalized = normalize_name(query)
    tokens = normalized.split()
    if not tokens or limit <= 0:
        return []

    hits = []
    for product in catalog:
        score = score_name(normalize_name(product.display_name), normalized, tokens)
        if score > 0:
            hits.append(ScoredProduct(product=product, score=score))

    # sorted() is stable, so ties stay in catalog order
    return sorted(hits, key=lambda hit: hit.score, reverse=True)[:limit]
