"""Hybrid search utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(slots=True)
class RankedItem:
    identifier: str
    score: float


def reciprocal_rank_fusion(results: Sequence[Sequence[Tuple[str, float]]], k: float = 0.0) -> list[RankedItem]:
    """Combine rankings using reciprocal rank fusion.

    Each list contributes ``1 / (k + rank)`` (ranks start at 1) to every
    identifier it contains; identifiers missing from a list get nothing from
    it. Only list order matters, the per-branch scores are ignored. Output is
    sorted by fused score descending, then identifier ascending so equal
    scores come back in a stable order.
    """
    scores: dict[str, float] = {}
    for hits in results:
        for rank, (identifier, _) in enumerate(hits, start=1):
            scores[identifier] = scores.get(identifier, 0.0) + 1.0 / (k + rank)
    fused = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [RankedItem(identifier=identifier, score=score) for identifier, score in fused]


__all__ = ["reciprocal_rank_fusion", "RankedItem"]
