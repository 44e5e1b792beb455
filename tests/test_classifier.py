"""Tests for idea/memory classification."""

import pytest

from src.chat.classifier import classify, looks_like_idea
from src.records.models import RecordKind


@pytest.mark.parametrize(
    "content",
    [
        "Nova ideia: app de receitas",
        "Estratégia de tráfego pago",
        "my startup plan is X",
        "Projeto Berger Singular",
        "A new PROJECT for the summer",
    ],
)
def test_keywords_classify_as_idea(content: str):
    assert classify(content) is RecordKind.IDEA


def test_no_keyword_is_memory():
    assert classify("buy milk") is RecordKind.MEMORY


def test_explicit_type_wins_over_keywords():
    assert classify("project kickoff", RecordKind.MEMORY) is RecordKind.MEMORY
    assert classify("buy milk", RecordKind.IDEA) is RecordKind.IDEA


def test_substring_inside_unrelated_word_matches():
    # "planet" contains "plan"; the match is deliberately not word-bounded.
    assert looks_like_idea("the planet is round")
    assert classify("explanation of the bill") is RecordKind.IDEA
