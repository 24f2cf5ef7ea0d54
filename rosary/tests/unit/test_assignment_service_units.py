"""
Unit tests for assignment_service: selection rule, fallback and unit of work.

DB-free: the history reads and writes are patched and the session is a MagicMock.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

from sqlalchemy.exc import OperationalError

from rosary.app.errors import AppError, ErrorCode
from rosary.app.services import assignment_service
from rosary.app.services.catalog import DEFAULT_CATALOG, Mystery, MysteryCatalog, MysteryGroup

WARSAW = ZoneInfo("Europe/Warsaw")


def _small_catalog(size: int) -> MysteryCatalog:
    return MysteryCatalog(
        Mystery(f"m{i}", MysteryGroup.JOYFUL, f"Mystery {i}", "text")
        for i in range(size)
    )


# ═══════════════════════════════════════════════════════════════════════════
# select_mystery
# ═══════════════════════════════════════════════════════════════════════════

class TestSelectMystery:

    def test_never_picks_a_recent_mystery(self):
        recent = [m.id for m in DEFAULT_CATALOG][:5]
        rng = random.Random(3)
        for _ in range(500):
            picked = assignment_service.select_mystery(recent, rng=rng)
            assert picked.id not in recent

    def test_picks_from_full_catalog_without_history(self):
        picked = assignment_service.select_mystery([], rng=random.Random(0))
        assert picked.id in DEFAULT_CATALOG

    def test_only_remaining_mystery_is_chosen(self):
        catalog = _small_catalog(6)
        recent = ["m0", "m1", "m2", "m3", "m4"]
        picked = assignment_service.select_mystery(recent, catalog=catalog)
        assert picked.id == "m5"

    def test_falls_back_to_whole_catalog_when_everything_is_recent(self, caplog):
        catalog = _small_catalog(3)
        picked = assignment_service.select_mystery(["m0", "m1", "m2"], catalog=catalog)
        assert picked.id in catalog
        assert "full catalog" in caplog.text

    def test_empty_catalog_returns_none(self):
        assert assignment_service.select_mystery([], catalog=MysteryCatalog([])) is None


# ═══════════════════════════════════════════════════════════════════════════
# assign_new_mystery
# ═══════════════════════════════════════════════════════════════════════════

@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_assign_records_and_commits(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = ["joyful-annunciation"]
    now = datetime(2024, 1, 7, 0, 0, tzinfo=timezone.utc)

    mystery = assignment_service.assign_new_mystery(
        7, session, rng=random.Random(5), now=now, tz=WARSAW,
    )

    assert mystery is not None
    assert mystery.id != "joyful-annunciation"
    mock_recent.assert_called_once_with(7, 5, session)
    mock_record.assert_called_once_with(
        membership_id=7,
        mystery_id=mystery.id,
        month=1,
        year=2024,
        assigned_at=now,
        session=session,
    )
    session.commit.assert_called_once()
    session.rollback.assert_not_called()


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_assign_uses_configured_window(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = []

    assignment_service.assign_new_mystery(1, session, window=3)

    mock_recent.assert_called_once_with(1, 3, session)


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_month_and_year_follow_local_zone(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = []
    # 2025-05-31 23:00 UTC is 2025-06-01 01:00 in Warsaw.
    now = datetime(2025, 5, 31, 23, 0, tzinfo=timezone.utc)

    assignment_service.assign_new_mystery(1, session, now=now, tz=WARSAW)

    kwargs = mock_record.call_args.kwargs
    assert (kwargs["month"], kwargs["year"]) == (6, 2025)


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_new_year_in_local_zone(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = []
    now = datetime(2023, 12, 31, 23, 30, tzinfo=timezone.utc)

    assignment_service.assign_new_mystery(1, session, now=now, tz=WARSAW)

    kwargs = mock_record.call_args.kwargs
    assert (kwargs["month"], kwargs["year"]) == (1, 2024)


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_commit_failure_rolls_back_and_returns_none(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = []
    session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk I/O error"))

    result = assignment_service.assign_new_mystery(1, session)

    assert result is None
    session.rollback.assert_called_once()


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_missing_membership_rolls_back_and_returns_none(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = []
    mock_record.side_effect = AppError(ErrorCode.MEMBERSHIP_NOT_FOUND, "gone", 404)

    result = assignment_service.assign_new_mystery(99, session)

    assert result is None
    session.rollback.assert_called_once()
    session.commit.assert_not_called()


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_history_read_failure_returns_none(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

    assert assignment_service.assign_new_mystery(1, session) is None
    mock_record.assert_not_called()
    session.rollback.assert_called_once()


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_empty_catalog_writes_nothing(mock_recent, mock_record):
    session = MagicMock()
    mock_recent.return_value = []

    result = assignment_service.assign_new_mystery(
        1, session, catalog=MysteryCatalog([]),
    )

    assert result is None
    mock_record.assert_not_called()
    session.commit.assert_not_called()


@patch("rosary.app.services.history_service.record_assignment")
@patch("rosary.app.services.history_service.recent_mystery_ids")
def test_shrunk_catalog_fallback_still_assigns(mock_recent, mock_record):
    session = MagicMock()
    catalog = _small_catalog(2)
    mock_recent.return_value = ["m0", "m1"]

    mystery = assignment_service.assign_new_mystery(1, session, catalog=catalog)

    assert mystery is not None
    assert mystery.id in ("m0", "m1")
    session.commit.assert_called_once()
