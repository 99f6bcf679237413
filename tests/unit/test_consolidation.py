"""Unit tests for episodic pattern extraction."""

import numpy as np

from swarmkeep.memory.consolidation import (
    PatternConsolidator,
    cluster_indices,
    similarity_matrix,
    tokenize,
)
from swarmkeep.types import EpisodeRecord


def _records(*inputs):
    return [EpisodeRecord(text, f"out:{text}", timestamp=float(i)) for i, text in enumerate(inputs)]


class TestTokenize:
    def test_drops_stop_words_and_case(self):
        assert tokenize("What is THE weather in Paris?") == ["weather", "paris"]

    def test_empty(self):
        assert tokenize("") == []


class TestSimilarity:
    def test_identical_documents(self):
        sim = similarity_matrix([["a", "b"], ["a", "b"], ["c"]])
        assert np.isclose(sim[0, 1], 1.0)
        assert np.isclose(sim[0, 2], 0.0)
        assert np.allclose(sim, sim.T)

    def test_empty_vocabulary(self):
        assert similarity_matrix([[], []]).shape == (2, 2)

    def test_cluster_indices_is_transitive(self):
        sim = np.array(
            [
                [1.0, 0.9, 0.0],
                [0.9, 1.0, 0.8],
                [0.0, 0.8, 1.0],
            ]
        )
        assert cluster_indices(sim, 0.7) == [[0, 1, 2]]
        assert cluster_indices(sim, 0.85) == [[0, 1], [2]]


class TestPatternConsolidator:
    def test_extracts_supported_cluster(self):
        records = _records(
            "deploy service staging",
            "deploy service production",
            "order pizza",
            "deploy service canary",
        )
        patterns = PatternConsolidator(similarity=0.6, min_support=2).extract(records)
        # ties on frequency fall back to alphabetical order
        assert list(patterns) == ["pattern:canary+deploy+service"]
        (value,) = patterns.values()
        assert value["support"] == 3
        assert value["summary"] == "out:deploy service canary"
        assert value["updated_at"] == 3.0

    def test_keywords_pick_most_frequent_terms(self):
        records = _records("alpha beta gamma", "alpha beta delta")
        patterns = PatternConsolidator(similarity=0.5, min_support=2, keywords=2).extract(records)
        assert list(patterns) == ["pattern:alpha+beta"]

    def test_support_accumulates_with_existing(self):
        records = _records("alpha beta", "alpha beta")
        consolidator = PatternConsolidator(min_support=2, keywords=2)
        first = consolidator.extract(records)
        second = consolidator.extract(records, existing=first)
        assert second["pattern:alpha+beta"]["support"] == 4

    def test_below_min_support(self):
        records = _records("alpha beta", "gamma delta")
        assert PatternConsolidator(min_support=2).extract(records) == {}

    def test_stop_word_only_records_are_ignored(self):
        records = _records("the a an", "is it", "alpha beta", "alpha beta")
        patterns = PatternConsolidator(min_support=2, keywords=2).extract(records)
        assert list(patterns) == ["pattern:alpha+beta"]
        assert patterns["pattern:alpha+beta"]["examples"] == ["alpha beta", "alpha beta"]
