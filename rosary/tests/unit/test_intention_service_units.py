"""
Unit tests for intention_service: ownership, sharing rules and group access.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.group import Group
from rosary.app.models.intention import PrayerIntention
from rosary.app.models.mystery_history import AssignedMysteryHistory  # noqa: F401
from rosary.app.models.user import User, UserRole
from rosary.app.services import intention_service

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

AUTHOR_ID = 3
ZELATOR_ID = 2
GROUP_ID = 10


def _intention(**overrides) -> SimpleNamespace:
    values = dict(
        id=7,
        author_user_id=AUTHOR_ID,
        author=SimpleNamespace(id=AUTHOR_ID, name="Maria"),
        text="For my mother",
        shared_with_group_id=None,
        shared_with_group=None,
        is_shared_with_group=False,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _session(intention=None, member: bool = False, users=()) -> MagicMock:
    """
    session.get resolves intentions, group GROUP_ID (led by ZELATOR_ID) and
    `users`; session.execute answers the membership lookup with `member`.
    """
    objects = {
        PrayerIntention: {intention.id: intention} if intention is not None else {},
        Group: {GROUP_ID: SimpleNamespace(id=GROUP_ID, name="Rose 1", zelator_user_id=ZELATOR_ID)},
        User: {u.id: u for u in users},
    }
    session = MagicMock()
    session.get.side_effect = lambda model, key: objects.get(model, {}).get(key)
    session.execute.return_value.scalar_one_or_none.return_value = 1 if member else None
    return session


# ═══════════════════════════════════════════════════════════════════════════
# create_intention
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateIntention:

    def test_private_intention_ignores_group_id(self):
        session = _session()

        result = intention_service.create_intention(
            AUTHOR_ID, "  For peace  ", False, GROUP_ID, session,
        )

        added = session.add.call_args.args[0]
        assert added.text == "For peace"
        assert added.shared_with_group_id is None
        assert result["is_shared_with_group"] is False
        session.get.assert_not_called()

    def test_member_may_share_with_group(self):
        session = _session(member=True)

        result = intention_service.create_intention(
            AUTHOR_ID, "For the sick", True, GROUP_ID, session,
        )

        assert session.add.call_args.args[0].shared_with_group_id == GROUP_ID
        assert result["is_shared_with_group"] is True

    def test_outsider_cannot_share(self):
        session = _session(member=False, users=[SimpleNamespace(id=AUTHOR_ID, role=UserRole.MEMBER)])

        with pytest.raises(AppError) as exc_info:
            intention_service.create_intention(AUTHOR_ID, "For peace", True, GROUP_ID, session)

        assert exc_info.value.code == ErrorCode.FORBIDDEN
        session.add.assert_not_called()

    def test_unknown_group_is_404(self):
        session = _session()

        with pytest.raises(AppError) as exc_info:
            intention_service.create_intention(AUTHOR_ID, "For peace", True, 999, session)

        assert exc_info.value.code == ErrorCode.GROUP_NOT_FOUND


# ═══════════════════════════════════════════════════════════════════════════
# update_intention / delete_intention
# ═══════════════════════════════════════════════════════════════════════════

class TestUpdateIntention:

    def test_missing_intention_is_404(self):
        session = _session()

        with pytest.raises(AppError) as exc_info:
            intention_service.update_intention(7, AUTHOR_ID, {"text": "x"}, session)

        assert exc_info.value.code == ErrorCode.INTENTION_NOT_FOUND

    def test_only_author_may_edit(self):
        intention = _intention()
        session = _session(intention)

        with pytest.raises(AppError) as exc_info:
            intention_service.update_intention(7, ZELATOR_ID, {"text": "Changed"}, session)

        assert exc_info.value.code == ErrorCode.FORBIDDEN
        assert intention.text == "For my mother"

    def test_text_is_trimmed(self):
        intention = _intention()
        session = _session(intention)

        intention_service.update_intention(7, AUTHOR_ID, {"text": " For my father "}, session)

        assert intention.text == "For my father"
        session.flush.assert_called_once()

    def test_unsharing_clears_group(self):
        intention = _intention(shared_with_group_id=GROUP_ID)
        session = _session(intention)

        intention_service.update_intention(
            7, AUTHOR_ID, {"is_shared_with_group": False, "shared_with_group_id": GROUP_ID}, session,
        )

        assert intention.shared_with_group_id is None

    def test_sharing_without_any_group_is_rejected(self):
        intention = _intention()
        session = _session(intention)

        with pytest.raises(AppError) as exc_info:
            intention_service.update_intention(7, AUTHOR_ID, {"is_shared_with_group": True}, session)

        assert exc_info.value.code == ErrorCode.INVALID_FIELD
        assert exc_info.value.field == "shared_with_group_id"

    def test_sharing_flag_keeps_current_group(self):
        intention = _intention(shared_with_group_id=GROUP_ID)
        session = _session(intention)

        intention_service.update_intention(7, AUTHOR_ID, {"is_shared_with_group": True}, session)

        assert intention.shared_with_group_id == GROUP_ID
        session.execute.assert_not_called()

    def test_group_id_alone_shares_after_access_check(self):
        intention = _intention()
        session = _session(intention, member=True)

        intention_service.update_intention(7, AUTHOR_ID, {"shared_with_group_id": GROUP_ID}, session)

        assert intention.shared_with_group_id == GROUP_ID


class TestDeleteIntention:

    def test_author_deletes(self):
        intention = _intention()
        session = _session(intention)

        intention_service.delete_intention(7, AUTHOR_ID, session)

        session.delete.assert_called_once_with(intention)

    def test_other_user_is_forbidden(self):
        session = _session(_intention())

        with pytest.raises(AppError) as exc_info:
            intention_service.delete_intention(7, 99, session)

        assert exc_info.value.code == ErrorCode.FORBIDDEN
        session.delete.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# list_shared_for_group
# ═══════════════════════════════════════════════════════════════════════════

class TestListSharedForGroup:

    def test_zelator_sees_shared_intentions(self):
        shared = _intention(
            shared_with_group_id=GROUP_ID,
            shared_with_group=SimpleNamespace(id=GROUP_ID, name="Rose 1"),
            is_shared_with_group=True,
        )
        session = _session()
        session.execute.return_value.scalars.return_value.all.return_value = [shared]

        result = intention_service.list_shared_for_group(GROUP_ID, ZELATOR_ID, session)

        assert [i["id"] for i in result] == [7]
        assert result[0]["author"] == {"id": AUTHOR_ID, "name": "Maria"}
        assert result[0]["shared_with_group"] == {"id": GROUP_ID, "name": "Rose 1"}

    def test_outsider_is_forbidden(self):
        session = _session(users=[SimpleNamespace(id=50, role=UserRole.MEMBER)])

        with pytest.raises(AppError) as exc_info:
            intention_service.list_shared_for_group(GROUP_ID, 50, session)

        assert exc_info.value.code == ErrorCode.FORBIDDEN

    def test_admin_outside_group_is_allowed(self):
        session = _session(users=[SimpleNamespace(id=1, role=UserRole.ADMIN)])
        session.execute.return_value.scalars.return_value.all.return_value = []

        assert intention_service.list_shared_for_group(GROUP_ID, 1, session) == []
