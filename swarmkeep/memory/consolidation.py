"""
Episodic to semantic consolidation

Recurring interactions are detected by clustering episodic records on the
cosine similarity of their bag-of-words vectors (union-find over the
similarity matrix). Every cluster with enough support becomes one semantic
entry keyed by its dominant keywords.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

import numpy as np

from ..types import EpisodeRecord

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9_]+|[一-鿿]")

_STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "can", "do", "for",
        "from", "has", "have", "how", "i", "if", "in", "is", "it", "its", "me", "my",
        "of", "on", "or", "please", "so", "that", "the", "this", "to", "us", "was",
        "we", "what", "when", "where", "which", "who", "why", "will", "with", "you",
        "your",
    }
)

PATTERN_PREFIX = "pattern:"


def tokenize(text: str) -> list[str]:
    return [t for t in _TOKEN_RE.findall(text.lower()) if t not in _STOP_WORDS]


def similarity_matrix(docs: list[list[str]]) -> np.ndarray:
    """Pairwise cosine similarity of term-count vectors."""
    vocab = {term: i for i, term in enumerate(sorted({t for d in docs for t in d}))}
    if not vocab:
        return np.zeros((len(docs), len(docs)), dtype=np.float32)
    vectors = np.zeros((len(docs), len(vocab)), dtype=np.float32)
    for row, doc in enumerate(docs):
        for term, count in Counter(doc).items():
            vectors[row, vocab[term]] = count
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1, norms)
    normalized = vectors / norms
    return np.clip(normalized @ normalized.T, -1.0, 1.0)


def cluster_indices(sim: np.ndarray, threshold: float) -> list[list[int]]:
    n = sim.shape[0]
    parent = list(range(n))

    def find(x: int) -> int:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for i in range(n):
        for j in range(i + 1, n):
            if sim[i, j] >= threshold:
                ri, rj = find(i), find(j)
                if ri != rj:
                    parent[max(ri, rj)] = min(ri, rj)

    groups: dict[int, list[int]] = {}
    for i in range(n):
        groups.setdefault(find(i), []).append(i)
    return list(groups.values())


class PatternConsolidator:
    def __init__(self, similarity: float = 0.6, min_support: int = 2, keywords: int = 3) -> None:
        self.similarity = similarity
        self.min_support = min_support
        self.keywords = keywords

    def extract(
        self, records: list[EpisodeRecord], existing: dict[str, Any] | None = None
    ) -> dict[str, dict[str, Any]]:
        """Return pattern-key to value pairs for every recurring cluster in ``records``."""
        existing = existing or {}
        docs = [tokenize(r.input) for r in records]
        indexed = [i for i, d in enumerate(docs) if d]
        if len(indexed) < self.min_support:
            return {}

        sim = similarity_matrix([docs[i] for i in indexed])
        patterns: dict[str, dict[str, Any]] = {}
        for group in cluster_indices(sim, self.similarity):
            if len(group) < self.min_support:
                continue
            members = [records[indexed[g]] for g in group]
            terms: Counter[str] = Counter()
            for g in group:
                terms.update(docs[indexed[g]])
            top = sorted(terms.items(), key=lambda kv: (-kv[1], kv[0]))[: self.keywords]
            key = PATTERN_PREFIX + "+".join(sorted(t for t, _ in top))

            # records are oldest first
            latest = members[-1]
            prior = existing.get(key) or patterns.get(key) or {}
            support = len(members) + int(prior.get("support", 0)) if isinstance(prior, dict) else len(members)
            patterns[key] = {
                "summary": latest.output,
                "support": support,
                "examples": [m.input for m in members[-3:]],
                "updated_at": latest.timestamp,
            }
        logger.debug("Extracted %d patterns from %d episodes", len(patterns), len(records))
        return patterns
