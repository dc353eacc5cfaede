"""CLI tools for clinic scheduling administration."""

from datetime import date
from uuid import UUID

import click

from clinic_api.core.exceptions import SchedulingError
from clinic_api.db.base import Base
import clinic_api.db.models  # noqa: F401
from clinic_api.db.session import SessionLocal, engine
from clinic_api.services import session_type_service, slot_service


@click.group()
def cli():
    """Clinic scheduling CLI tools."""
    pass


@cli.command("init-db")
def init_db():
    """
    Create all tables directly from the ORM models.

    Meant for local SQLite development; use `alembic upgrade head` elsewhere.
    """
    Base.metadata.create_all(bind=engine)
    click.echo(f"✓ Created {len(Base.metadata.tables)} tables")


@cli.command()
@click.option("--date", "slot_date", required=True, type=click.DateTime(formats=["%Y-%m-%d"]), help="Date (YYYY-MM-DD)")
@click.option("--session-type-id", required=True, help="Session type UUID")
@click.option("--all", "show_all", is_flag=True, help="Ignore the public booking window")
def slots(slot_date, session_type_id: str, show_all: bool):
    """
    Print free slots for a date.

    Example:
        clinic-api slots --date 2026-11-02 --session-type-id <uuid>
    """
    db = SessionLocal()
    try:
        day: date = slot_date.date()
        session_type = session_type_service.get_session_type(db, UUID(session_type_id))
        if show_all:
            found = slot_service.generate_slots(db, day, session_type)
        else:
            found = slot_service.get_available_slots(db, day, session_type)

        if not found:
            click.echo(f"No free slots on {day.isoformat()}")
            return
        click.echo(f"{session_type.name} ({session_type.duration_minutes} min) on {day.isoformat()}:")
        for slot in found:
            click.echo(f"  {slot.start:%H:%M} - {slot.end:%H:%M}")
    except (SchedulingError, ValueError) as e:
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
