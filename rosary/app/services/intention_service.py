"""
services/intention_service.py — Prayer intentions: private notes a member may
share with one of their groups.

Authorization rules:
  - Create / list own:     any authenticated user
  - Update / delete:       the author only
  - Share with a group:    a member of the group, its zelator, or an ADMIN
  - List a group's shared: a member of the group, its zelator, or an ADMIN

Sharing is stored as shared_with_group_id alone: None means private.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.group import Group
from rosary.app.models.intention import PrayerIntention
from rosary.app.models.membership import Membership
from rosary.app.services.group_service import can_manage_group, get_group_or_404

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_intention_or_404(intention_id: int, session: Session) -> PrayerIntention:
    intention = session.get(PrayerIntention, intention_id)
    if intention is None:
        raise AppError(
            ErrorCode.INTENTION_NOT_FOUND,
            f"Intention {intention_id} does not exist.",
            404,
        )
    return intention


def _is_member(group_id: int, user_id: int, session: Session) -> bool:
    membership_id = session.execute(
        select(Membership.id).where(
            Membership.group_id == group_id,
            Membership.user_id == user_id,
        )
    ).scalar_one_or_none()
    return membership_id is not None


def _can_see_group_intentions(group: Group, user_id: int, session: Session) -> bool:
    return _is_member(group.id, user_id, session) or can_manage_group(group, user_id, session)


def _require_owner(intention: PrayerIntention, caller_id: int, action: str) -> None:
    if intention.author_user_id != caller_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You may only {action} your own intentions.",
            403,
        )


def _require_can_share(group_id: int, user_id: int, session: Session) -> None:
    """Raises GROUP_NOT_FOUND (404) or FORBIDDEN (403)."""
    group = get_group_or_404(group_id, session)
    if not _can_see_group_intentions(group, user_id, session):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You cannot share intentions with group {group_id}: "
            "you neither belong to it nor manage it.",
            403,
        )


def _build_intention_dict(intention: PrayerIntention) -> dict:
    group = intention.shared_with_group
    author = intention.author
    return {
        "id": intention.id,
        "text": intention.text,
        "is_shared_with_group": intention.is_shared_with_group,
        "shared_with_group": (
            {"id": group.id, "name": group.name} if group is not None else None
        ),
        "author": (
            {"id": author.id, "name": author.name} if author is not None else None
        ),
        "created_at": intention.created_at.isoformat() if intention.created_at else None,
        "updated_at": intention.updated_at.isoformat() if intention.updated_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_intention(
        author_id: int,
        text: str,
        is_shared_with_group: bool,
        shared_with_group_id: int | None,
        session: Session,
) -> dict:
    """
    Stores a new intention, private unless is_shared_with_group is set.

    Raises:
      AppError(GROUP_NOT_FOUND, 404) — the group to share with does not exist
      AppError(FORBIDDEN, 403)       — caller may not share with that group
    """
    group_id = shared_with_group_id if is_shared_with_group else None
    if group_id is not None:
        _require_can_share(group_id, author_id, session)

    intention = PrayerIntention(
        author_user_id=author_id,
        text=text.strip(),
        shared_with_group_id=group_id,
    )
    session.add(intention)
    session.flush()
    session.refresh(intention)

    logger.info("User %s created intention %s (group %s).", author_id, intention.id, group_id)
    return _build_intention_dict(intention)


def list_my_intentions(user_id: int, session: Session) -> list[dict]:
    """The caller's intentions, newest first."""
    stmt = (
        select(PrayerIntention)
        .where(PrayerIntention.author_user_id == user_id)
        .order_by(PrayerIntention.created_at.desc(), PrayerIntention.id.desc())
    )
    return [_build_intention_dict(i) for i in session.execute(stmt).scalars().all()]


def update_intention(
        intention_id: int,
        caller_id: int,
        changes: dict,
        session: Session,
) -> dict:
    """
    Applies a partial update. `changes` holds only the fields the client sent.

    Sharing rules:
      is_shared_with_group=false          → private, any group id is ignored
      a shared_with_group_id              → shared with that group
      is_shared_with_group=true, no id    → keeps the current group; an
                                            intention that has none is rejected

    Raises:
      AppError(INTENTION_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)       — caller is not the author, or may not
                                       share with the requested group
      AppError(GROUP_NOT_FOUND, 404)
      AppError(INVALID_FIELD, 400)   — sharing requested without any group
    """
    intention = _get_intention_or_404(intention_id, session)
    _require_owner(intention, caller_id, "edit")

    if "text" in changes:
        intention.text = changes["text"].strip()

    shared = changes.get("is_shared_with_group")
    group_id = changes.get("shared_with_group_id")

    if shared is False:
        intention.shared_with_group_id = None
    elif group_id is not None:
        _require_can_share(group_id, caller_id, session)
        intention.shared_with_group_id = group_id
    elif shared is True and intention.shared_with_group_id is None:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "shared_with_group_id is required to share an intention.",
            400,
            field="shared_with_group_id",
        )

    session.flush()
    session.refresh(intention)

    logger.info("User %s updated intention %s.", caller_id, intention_id)
    return _build_intention_dict(intention)


def delete_intention(intention_id: int, caller_id: int, session: Session) -> None:
    """
    Raises:
      AppError(INTENTION_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403) — caller is not the author
    """
    intention = _get_intention_or_404(intention_id, session)
    _require_owner(intention, caller_id, "delete")
    session.delete(intention)
    session.flush()
    logger.info("User %s deleted intention %s.", caller_id, intention_id)


def list_shared_for_group(group_id: int, caller_id: int, session: Session) -> list[dict]:
    """
    Intentions shared with a group, newest first, with their authors.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403) — caller neither belongs to nor manages the group
    """
    group = get_group_or_404(group_id, session)
    if not _can_see_group_intentions(group, caller_id, session):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not allowed to view the intentions of group {group_id}.",
            403,
        )

    stmt = (
        select(PrayerIntention)
        .where(PrayerIntention.shared_with_group_id == group_id)
        .order_by(PrayerIntention.created_at.desc(), PrayerIntention.id.desc())
    )
    return [_build_intention_dict(i) for i in session.execute(stmt).scalars().all()]
