"""
cli.py — Flask CLI commands.

  flask --app rosary.wsgi create-admin EMAIL NAME PASSWORD
  flask --app rosary.wsgi rotate-mysteries [--group-id ID]
  flask --app rosary.wsgi run-scheduler

rotate-mysteries runs the rotation inline and prints the counts without
waiting for the first Sunday. Rotating every group is still refused when a
full rotation already ran today.

run-scheduler runs the Schedule Trigger in the foreground, for deployments
that keep the web workers free of the cron thread (SCHEDULER_ENABLED=false).
Submitted admin rotations then run on a worker thread of the web process.
"""

from __future__ import annotations

import click
from flask import Flask, current_app

from rosary.app.errors import AppError
from rosary.app.extensions import db
from rosary.app.models.user import UserRole
from rosary.app.services import auth_service, group_service


def register_commands(app: Flask) -> None:

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("name")
    @click.argument("password")
    def create_admin(email: str, name: str, password: str) -> None:
        """Create an ADMIN account."""
        try:
            user = auth_service.create_user(
                email, name, password, db.session, role=UserRole.ADMIN,
            )
        except AppError as exc:
            db.session.rollback()
            raise click.ClickException(exc.message)
        db.session.commit()
        click.echo(f"Created admin {user.email} (id {user.id}).")

    @app.cli.command("rotate-mysteries")
    @click.option("--group-id", type=int, default=None, help="Rotate only this group.")
    def rotate_mysteries(group_id: int | None) -> None:
        """Assign new mysteries now."""
        scheduler = current_app.extensions["rotation_scheduler"]
        if group_id is not None:
            try:
                group_service.get_group_or_404(group_id, db.session)
            except AppError as exc:
                raise click.ClickException(exc.message)
        result = scheduler.rotate_now(group_id)
        if result is None:
            raise click.ClickException(
                "No rotation ran: mysteries were already rotated today, "
                "or the rotation failed (see the log)."
            )
        click.echo(
            f"Rotation finished for {result.total} members: "
            f"{result.success_count} succeeded, {result.failure_count} failed."
        )

    @app.cli.command("run-scheduler")
    def run_scheduler() -> None:
        """Run the monthly rotation trigger in the foreground."""
        scheduler = current_app.extensions["rotation_scheduler"]
        click.echo("Mystery rotation scheduler running; press Ctrl+C to stop.")
        # Replace a background scheduler the factory may already have started.
        scheduler.shutdown()
        try:
            scheduler.start(blocking=True)
        except (KeyboardInterrupt, SystemExit):
            scheduler.shutdown()
