# tests/test_rules.py
from __future__ import annotations

import pytest

from rewardlens.rules import KeywordRule, KeywordRuleSet, ProviderTagMapper, food_cue, merge_votes
from rewardlens.taxonomy import Taxonomy as T


def test_keyword_votes_accumulate_per_taxonomy():
    rules = KeywordRuleSet(
        [
            KeywordRule.of(r"\bpizza", T.DINING, 0.4),
            KeywordRule.of(r"\bkitchen", T.DINING, 0.3),
            KeywordRule.of(r"\bmarket", T.GROCERIES, 0.5),
        ]
    )
    votes = rules.vote("Pizza Kitchen Market")
    assert votes[T.DINING] == pytest.approx(0.7)
    assert votes[T.GROCERIES] == pytest.approx(0.5)


def test_keyword_vote_folds_accents():
    assert T.COFFEE in KeywordRuleSet().vote("Joe's CAFÉ")


def test_keyword_vote_empty_text():
    assert KeywordRuleSet().vote(None) == {}
    assert KeywordRuleSet().vote("") == {}


def test_tag_votes_are_stronger_than_keywords():
    tag_weights = [r.weight for r in ProviderTagMapper().rules]
    kw_weights = [r.weight for r in KeywordRuleSet().rules]
    assert min(tag_weights) >= 0.55 and max(tag_weights) <= 0.9
    assert min(kw_weights) >= 0.3 and max(kw_weights) <= 0.6


def test_tag_mapper_snake_case_tags():
    votes = ProviderTagMapper().vote(["gas_station", "point_of_interest"])
    assert set(votes) == {T.GAS}
    assert T.DINING not in ProviderTagMapper().vote(["barber_shop"])
    votes = ProviderTagMapper().vote(["convenience_store"])
    assert votes[T.GROCERIES] > votes[T.SHOPPING]


def test_merge_votes_sums():
    merged = merge_votes({T.DINING: 0.5}, {T.DINING: 0.25, T.COFFEE: 0.1})
    assert merged == {T.DINING: 0.75, T.COFFEE: 0.1}


def test_food_cue():
    assert food_cue("Joe's Café") == T.COFFEE
    assert food_cue("Rosa's Taco Kitchen") == T.DINING
    assert food_cue("Acme Corp") is None
    assert food_cue(None) is None
