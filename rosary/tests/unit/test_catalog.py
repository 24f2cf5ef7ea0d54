"""
tests/unit/test_catalog.py — The compiled-in mystery catalog.

No database, no app context.
"""

from __future__ import annotations

import random

import pytest

from rosary.app.services.catalog import (
    DEFAULT_CATALOG,
    Mystery,
    MysteryCatalog,
    MysteryGroup,
    pick_random_from,
)

ALL_IDS = [m.id for m in DEFAULT_CATALOG]


class TestDefaultCatalog:

    def test_has_twenty_mysteries(self):
        assert len(DEFAULT_CATALOG) == 20

    def test_five_mysteries_per_group(self):
        for group in MysteryGroup:
            assert len(DEFAULT_CATALOG.by_group(group)) == 5

    def test_ids_are_unique(self):
        ids = [m.id for m in DEFAULT_CATALOG]
        assert len(set(ids)) == len(ids)

    def test_every_entry_has_name_and_contemplation(self):
        for mystery in DEFAULT_CATALOG:
            assert mystery.name.strip()
            assert mystery.contemplation.strip()

    def test_luminous_group_is_labelled_light(self):
        assert MysteryGroup.LUMINOUS.value == "Light"

    def test_catalog_order_starts_with_joyful(self):
        assert DEFAULT_CATALOG.mysteries[0].id == "joyful-annunciation"
        assert DEFAULT_CATALOG.mysteries[0].group == MysteryGroup.JOYFUL


class TestLookup:

    def test_known_id(self):
        mystery = DEFAULT_CATALOG.lookup("sorrowful-agony")
        assert mystery is not None
        assert mystery.group == MysteryGroup.SORROWFUL

    def test_unknown_id_returns_none(self):
        assert DEFAULT_CATALOG.lookup("no-such-mystery") is None

    def test_none_returns_none(self):
        assert DEFAULT_CATALOG.lookup(None) is None

    def test_contains(self):
        assert "glorious-coronation" in DEFAULT_CATALOG
        assert "glorious-nothing" not in DEFAULT_CATALOG

    def test_to_dict(self):
        data = DEFAULT_CATALOG.lookup("light-baptism").to_dict()
        assert data["id"] == "light-baptism"
        assert data["group"] == "Light"
        assert set(data) == {"id", "group", "name", "contemplation", "image_ref"}


class TestExcluding:

    def test_excludes_given_ids_and_keeps_order(self):
        excluded = ALL_IDS[:5]
        remaining = DEFAULT_CATALOG.excluding(excluded)
        assert [m.id for m in remaining] == ALL_IDS[5:]

    def test_unknown_ids_are_ignored(self):
        assert len(DEFAULT_CATALOG.excluding(["not-a-mystery"])) == 20

    def test_excluding_everything_is_empty(self):
        assert DEFAULT_CATALOG.excluding(ALL_IDS) == []


class TestRandomPick:

    def test_returns_one_of_the_candidates(self):
        candidates = DEFAULT_CATALOG.by_group(MysteryGroup.GLORIOUS)
        picked = pick_random_from(candidates, rng=random.Random(1))
        assert picked in candidates

    def test_is_reproducible_with_seeded_rng(self):
        first = pick_random_from(DEFAULT_CATALOG.mysteries, rng=random.Random(42))
        second = pick_random_from(DEFAULT_CATALOG.mysteries, rng=random.Random(42))
        assert first == second

    def test_empty_sequence_returns_none(self):
        assert pick_random_from([]) is None

    def test_empty_catalog_returns_none(self):
        assert pick_random_from(MysteryCatalog([]).mysteries) is None

    def test_every_mystery_is_reachable(self):
        rng = random.Random(7)
        seen = {pick_random_from(DEFAULT_CATALOG.mysteries, rng=rng).id for _ in range(2000)}
        assert seen == set(ALL_IDS)


def test_by_group_keeps_catalog_order():
    joyful = DEFAULT_CATALOG.by_group(MysteryGroup.JOYFUL)
    assert [m.id for m in joyful] == ALL_IDS[:5]
    assert all(m.group == MysteryGroup.JOYFUL for m in joyful)


def test_duplicate_ids_are_rejected():
    m = Mystery("x", MysteryGroup.JOYFUL, "X", "x")
    with pytest.raises(ValueError):
        MysteryCatalog([m, m])
