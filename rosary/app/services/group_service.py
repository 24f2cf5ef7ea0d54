"""
services/group_service.py — Group and membership management.

Authorization rules:
  - Creating a group:           ADMIN only
  - Viewing a group's members:  ADMIN or the group's zelator ("manager")
  - Adding / removing members:  manager
  - Triggering a group rotation: manager (see routes/admin.py)

Membership rules:
  - ALREADY_MEMBER (409) — one membership per (user, group)
  - GROUP_FULL (422)     — at most max_members memberships per group
  - order_index          — max existing index + 1, starting at 0

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.group import Group
from rosary.app.models.membership import Membership
from rosary.app.models.user import User, UserRole
from rosary.app.services.catalog import DEFAULT_CATALOG

logger = logging.getLogger(__name__)


# ── Shared helpers (also used by membership_service and the admin routes) ──

def get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def get_user_or_404(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
        )
    return user


def is_admin(user_id: int, session: Session) -> bool:
    user = session.get(User, user_id)
    return user is not None and user.role == UserRole.ADMIN


def require_admin(user_id: int, session: Session) -> None:
    """Raises FORBIDDEN (403) unless the caller is an ADMIN."""
    if not is_admin(user_id, session):
        raise AppError(ErrorCode.FORBIDDEN, "Administrator role required.", 403)


def can_manage_group(group: Group, user_id: int, session: Session) -> bool:
    """ADMINs manage every group; a zelator manages the groups they lead."""
    if group.zelator_user_id is not None and group.zelator_user_id == user_id:
        return True
    return is_admin(user_id, session)


def require_manager(group: Group, user_id: int, session: Session) -> None:
    """Raises FORBIDDEN (403) unless the caller may manage `group`."""
    if not can_manage_group(group, user_id, session):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not allowed to manage group {group.id}.",
            403,
        )


# ── Private helpers ────────────────────────────────────────────────────────

def _build_member_dict(membership: Membership) -> dict:
    mystery = DEFAULT_CATALOG.lookup(membership.current_assigned_mystery)
    return {
        "membership_id": membership.id,
        "user_id": membership.user_id,
        "name": membership.user.name if membership.user else None,
        "email": membership.user.email if membership.user else None,
        "order_index": membership.order_index,
        "current_assigned_mystery": membership.current_assigned_mystery,
        "mystery": mystery.to_dict() if mystery else None,
        "mystery_confirmed_at": (
            membership.mystery_confirmed_at.isoformat()
            if membership.mystery_confirmed_at else None
        ),
    }


def _build_group_dict(group: Group, memberships: list[Membership] | None = None) -> dict:
    """Serialises a Group, optionally with its member list, to a plain dict."""
    payload = {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "zelator_user_id": group.zelator_user_id,
        "created_at": group.created_at.isoformat() if group.created_at else None,
    }
    if memberships is not None:
        payload["members"] = [_build_member_dict(m) for m in memberships]
    return payload


# ── Public service functions ───────────────────────────────────────────────

def create_group(
        caller_id: int,
        name: str,
        session: Session,
        description: str | None = None,
        zelator_user_id: int | None = None,
) -> dict:
    """
    Creates a new group. ADMIN only.

    If a zelator is named, that user must exist; a MEMBER named as zelator is
    promoted to ZELATOR.

    Raises:
      AppError(FORBIDDEN, 403)      — caller is not an admin
      AppError(USER_NOT_FOUND, 404) — zelator_user_id does not exist
    """
    require_admin(caller_id, session)

    if zelator_user_id is not None:
        zelator = get_user_or_404(zelator_user_id, session)
        if zelator.role == UserRole.MEMBER:
            zelator.role = UserRole.ZELATOR

    group = Group(
        name=name.strip(),
        description=description,
        zelator_user_id=zelator_user_id,
    )
    session.add(group)
    session.flush()
    session.refresh(group)

    logger.info("User %s created group %s.", caller_id, group.id)
    return _build_group_dict(group, [])


def list_groups(caller_id: int, session: Session) -> list[dict]:
    """
    Groups the caller manages: every group for an ADMIN, the led groups for
    a zelator, none for anyone else.
    """
    stmt = select(Group).order_by(Group.created_at.asc(), Group.id.asc())
    if not is_admin(caller_id, session):
        stmt = stmt.where(Group.zelator_user_id == caller_id)
    groups = session.execute(stmt).scalars().all()
    return [_build_group_dict(g) for g in groups]


def get_group(group_id: int, caller_id: int, session: Session) -> dict:
    """
    Returns group details with every member's current mystery and
    confirmation state. Manager only.
    """
    group = get_group_or_404(group_id, session)
    require_manager(group, caller_id, session)

    stmt = (
        select(Membership)
        .where(Membership.group_id == group_id)
        .order_by(Membership.order_index.asc(), Membership.id.asc())
    )
    memberships = list(session.execute(stmt).scalars().all())

    return _build_group_dict(group, memberships)


def add_member(
        group_id: int,
        caller_id: int,
        target_user_id: int,
        session: Session,
        max_members: int = 20,
) -> dict:
    """
    Adds a user to a group. Manager only.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)  — group does not exist
      AppError(FORBIDDEN, 403)        — caller may not manage the group
      AppError(USER_NOT_FOUND, 404)   — target user does not exist
      AppError(ALREADY_MEMBER, 409)   — user is already in the group
      AppError(GROUP_FULL, 422)       — group already has max_members members

    Returns: dict with the new membership details.
    """
    group = get_group_or_404(group_id, session)
    require_manager(group, caller_id, session)

    get_user_or_404(target_user_id, session)

    existing = session.execute(
        select(Membership).where(
            Membership.group_id == group_id,
            Membership.user_id == target_user_id,
        )
    ).scalar_one_or_none()

    if existing is not None:
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            f"User {target_user_id} is already a member of group {group_id}.",
            409,
        )

    count, max_index = session.execute(
        select(func.count(Membership.id), func.max(Membership.order_index))
        .where(Membership.group_id == group_id)
    ).one()

    if count >= max_members:
        raise AppError(
            ErrorCode.GROUP_FULL,
            f"Group {group_id} already has the maximum of {max_members} members.",
            422,
        )

    membership = Membership(
        user_id=target_user_id,
        group_id=group_id,
        order_index=0 if max_index is None else max_index + 1,
    )
    session.add(membership)
    session.flush()
    session.refresh(membership)

    logger.info("User %s added user %s to group %s.", caller_id, target_user_id, group_id)
    return _build_member_dict(membership)


def remove_member(
        group_id: int,
        caller_id: int,
        target_user_id: int,
        session: Session,
) -> None:
    """
    Removes a user from a group. Manager only. The membership's history goes
    with it.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)       — group does not exist
      AppError(FORBIDDEN, 403)             — caller may not manage the group
      AppError(MEMBERSHIP_NOT_FOUND, 404)  — target user is not a member
    """
    group = get_group_or_404(group_id, session)
    require_manager(group, caller_id, session)

    membership = session.execute(
        select(Membership).where(
            Membership.group_id == group_id,
            Membership.user_id == target_user_id,
        )
    ).scalar_one_or_none()

    if membership is None:
        raise AppError(
            ErrorCode.MEMBERSHIP_NOT_FOUND,
            f"User {target_user_id} is not a member of group {group_id}.",
            404,
        )

    session.delete(membership)
    session.flush()
    logger.info("User %s removed user %s from group %s.", caller_id, target_user_id, group_id)
