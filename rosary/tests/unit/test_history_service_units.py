"""
Unit tests for history_service and rotation_run_service with mocked sessions.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.group import Group  # noqa: F401
from rosary.app.models.intention import PrayerIntention  # noqa: F401
from rosary.app.models.user import User  # noqa: F401
from rosary.app.models.mystery_history import AssignedMysteryHistory
from rosary.app.models.rotation_run import RotationRun
from rosary.app.services import history_service, rotation_run_service

NOW = datetime(2024, 1, 7, 0, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# history_service
# ═══════════════════════════════════════════════════════════════════════════

def test_recent_mystery_ids_with_zero_limit_skips_query():
    session = MagicMock()
    assert history_service.recent_mystery_ids(1, 0, session) == []
    session.execute.assert_not_called()


def test_recent_mystery_ids_returns_query_rows():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = ["a", "b"]

    assert history_service.recent_mystery_ids(1, 5, session) == ["a", "b"]
    session.execute.assert_called_once()


def test_record_assignment_raises_when_membership_missing():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        history_service.record_assignment(1, "light-baptism", 1, 2024, NOW, session)

    assert exc_info.value.code == ErrorCode.MEMBERSHIP_NOT_FOUND
    session.add.assert_not_called()


def test_record_assignment_moves_pointer_and_clears_confirmation():
    session = MagicMock()
    membership = SimpleNamespace(
        id=3,
        current_assigned_mystery="joyful-visitation",
        mystery_confirmed_at=NOW,
    )
    session.get.return_value = membership

    entry = history_service.record_assignment(3, "light-baptism", 1, 2024, NOW, session)

    assert isinstance(entry, AssignedMysteryHistory)
    assert entry.membership_id == 3
    assert entry.mystery_id == "light-baptism"
    assert (entry.assigned_month, entry.assigned_year) == (1, 2024)
    assert membership.current_assigned_mystery == "light-baptism"
    assert membership.mystery_confirmed_at is None
    session.add.assert_called_once_with(entry)
    session.flush.assert_called_once()
    session.commit.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# rotation_run_service
# ═══════════════════════════════════════════════════════════════════════════

def test_claim_run_returns_true_on_insert():
    session = MagicMock()

    assert rotation_run_service.claim_run("2024-01-07", NOW, session) is True

    added = session.add.call_args.args[0]
    assert isinstance(added, RotationRun)
    assert added.run_key == "2024-01-07"
    session.commit.assert_called_once()


def test_claim_run_returns_false_on_duplicate_key():
    session = MagicMock()
    session.commit.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

    assert rotation_run_service.claim_run("2024-01-07", NOW, session) is False
    session.rollback.assert_called_once()


def _session_with_existing_claim(started_at, finished_at=None, rowcount=1) -> MagicMock:
    session = MagicMock()
    session.commit.side_effect = [IntegrityError("INSERT", {}, Exception("unique")), None]
    lookup = MagicMock()
    lookup.scalar_one_or_none.return_value = SimpleNamespace(
        id=9, started_at=started_at, finished_at=finished_at,
    )
    takeover = MagicMock(rowcount=rowcount)
    session.execute.side_effect = [lookup, takeover]
    return session


def test_claim_run_takes_over_stale_unfinished_claim(caplog):
    # Naive, as SQLite returns it.
    session = _session_with_existing_claim(datetime(2024, 1, 6, 22, 0))

    claimed = rotation_run_service.claim_run(
        "2024-01-07", NOW, session, stale_after=timedelta(hours=1),
    )

    assert claimed is True
    assert session.execute.call_count == 2
    assert "never finished" in caplog.text


def test_claim_run_keeps_recent_unfinished_claim():
    session = _session_with_existing_claim(NOW - timedelta(minutes=10))

    claimed = rotation_run_service.claim_run(
        "2024-01-07", NOW, session, stale_after=timedelta(hours=1),
    )

    assert claimed is False
    assert session.execute.call_count == 1


def test_claim_run_never_takes_over_finished_run():
    session = _session_with_existing_claim(
        NOW - timedelta(days=1), finished_at=NOW - timedelta(hours=20),
    )

    claimed = rotation_run_service.claim_run(
        "2024-01-07", NOW, session, stale_after=timedelta(hours=1),
    )

    assert claimed is False


def test_claim_run_loses_takeover_race():
    session = _session_with_existing_claim(NOW - timedelta(hours=3), rowcount=0)

    claimed = rotation_run_service.claim_run(
        "2024-01-07", NOW, session, stale_after=timedelta(hours=1),
    )

    assert claimed is False


def test_release_run_deletes_and_commits():
    session = MagicMock()

    rotation_run_service.release_run("2024-01-07", session)

    session.execute.assert_called_once()
    session.commit.assert_called_once()


def test_release_run_swallows_database_errors():
    session = MagicMock()
    session.execute.side_effect = OperationalError("DELETE", {}, Exception("gone"))

    rotation_run_service.release_run("2024-01-07", session)

    assert session.rollback.call_count == 2


def test_finish_run_records_counts():
    session = MagicMock()
    run = SimpleNamespace(finished_at=None, success_count=0, failure_count=0)
    session.execute.return_value.scalar_one_or_none.return_value = run

    rotation_run_service.finish_run("2024-01-07", NOW, 7, 2, session)

    assert run.finished_at == NOW
    assert (run.success_count, run.failure_count) == (7, 2)
    session.commit.assert_called_once()


def test_finish_run_without_claim_only_warns():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    rotation_run_service.finish_run("2024-01-07", NOW, 1, 0, session)

    session.commit.assert_not_called()


def test_list_recent_runs_serializes_rows():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [
        SimpleNamespace(
            run_key="2024-01-07",
            started_at=NOW,
            finished_at=None,
            success_count=0,
            failure_count=0,
        ),
    ]

    assert rotation_run_service.list_recent_runs(session) == [{
        "run_key": "2024-01-07",
        "started_at": NOW.isoformat(),
        "finished_at": None,
        "success_count": 0,
        "failure_count": 0,
    }]
