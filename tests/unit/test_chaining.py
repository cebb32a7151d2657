"""Tests for follow-up fetch rules."""
import pytest

from collectory.modules import IdentifierType
from collectory.providers.chaining import (
    ChainedFetch,
    chained_fetches,
    comicvine_reference,
    metron_to_comicvine,
)

ACTIVE = {"metron", "comicvine"}


@pytest.mark.parametrize("document,expected", [
    ({"comicvine_id": "4000-123"}, "4000-123"),
    ({"comicvine_id": 123}, "4000-123"),
    ({"cv_id": " 456 "}, "4000-456"),
    ({"comicvine_id": "", "cv_id": "789"}, "4000-789"),
    ({"comicvine_id": "abc"}, None),
    ({"comicvine_id": {"id": 1}}, None),
    ({}, None),
])
def test_comicvine_reference(make_result, document, expected):
    assert comicvine_reference(make_result("metron", 70, document)) == expected


def test_comicvine_reference_from_envelope(make_result):
    result = make_result("metron", 70, {"json": '{"cv_id": "42"}'})

    assert comicvine_reference(result) == "4000-42"


def test_comicvine_reference_unparseable_payload(make_result):
    assert comicvine_reference(make_result("metron", 70, "{nope")) is None


def test_metron_result_chains_to_comicvine(make_result):
    fetch = metron_to_comicvine(make_result("metron", 70, {"cv_id": "42"}), ACTIVE)

    assert fetch == ChainedFetch("comicvine", IdentifierType.CUSTOM, "4000-42")


def test_no_chain_when_comicvine_inactive(make_result):
    assert metron_to_comicvine(make_result("metron", 70, {"cv_id": "42"}), {"metron"}) is None


def test_no_chain_from_other_providers(make_result):
    assert metron_to_comicvine(make_result("comicvine", 70, {"cv_id": "42"}), ACTIVE) is None


def test_chained_fetches_uses_given_rules(make_result):
    result = make_result("openlibrary", 80, {"title": "Dune"})

    def rule(r, active):
        return ChainedFetch("googlebooks", IdentifierType.ISBN13, "9780441013593")

    assert chained_fetches(result, ACTIVE) == []
    assert chained_fetches(result, ACTIVE, rules=[rule]) == [
        ChainedFetch("googlebooks", IdentifierType.ISBN13, "9780441013593")
    ]
