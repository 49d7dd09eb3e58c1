"""CLI tools for Aid CRM administration."""

import click

from aidcrm.core.errors import UniqueViolationError
from aidcrm.core.security import create_session_token
from aidcrm.core.structured_logging import configure_logging
from aidcrm.db.enums import Role
from aidcrm.db.session import SessionLocal
from aidcrm.db.sql_store import SqlEntityStore
from aidcrm.services import audit_service, seed_service


@click.group()
def cli():
    """Aid CRM CLI tools."""
    configure_logging()


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--role",
    required=True,
    type=click.Choice([r.value for r in Role], case_sensitive=False),
    help="User role",
)
@click.option("--organization", default=None, help="Optional organization name")
@click.option("--phone", default=None, help="Optional phone number")
def create_user(email: str, name: str, role: str, organization: str | None, phone: str | None):
    """
    Create a back-office user.

    Example:
        aidcrm create-user --email "admin@example.org" --name "Admin" --role ADMIN
    """
    db = SessionLocal()
    try:
        store = SqlEntityStore(db)
        user = seed_service.create_user(
            store, email=email, name=name, role=Role(role.upper()),
            organization=organization, phone=phone,
        )
        click.echo(f"✓ Created user: {user.email}")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Role: {user.role.value}")
    except UniqueViolationError:
        click.echo(f"❌ User already exists: {email}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to issue a session token for")
def issue_token(email: str):
    """
    Print a session token for a user (for API clients and local testing).

    Example:
        aidcrm issue-token --email "admin@example.org"
    """
    db = SessionLocal()
    try:
        user = SqlEntityStore(db).get_user_by_email(email)
        if user is None:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)
        click.echo(create_session_token(user.id, user.role.value, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        aidcrm revoke-sessions --email "user@example.org"
    """
    from sqlalchemy import func

    from aidcrm.db.models import User

    db = SessionLocal()
    try:
        user = db.query(User).filter(func.lower(User.email) == email.lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    finally:
        db.close()


@cli.command()
def seed_demo():
    """Create demo users, beneficiaries, cases and services."""
    db = SessionLocal()
    try:
        result = seed_service.seed_demo(SqlEntityStore(db))
        if result.skipped:
            click.echo("Demo data already present, nothing to do")
            return
        click.echo(f"✓ Created {len(result.users)} users")
        for email in result.users:
            click.echo(f"  {email}")
        click.echo(f"✓ Created {len(result.beneficiary_ids)} beneficiaries")
        click.echo(f"✓ Created {len(result.case_ids)} cases")
        click.echo(f"✓ Created {len(result.service_ids)} services")
        click.echo("→ Use `aidcrm issue-token --email <email>` to get a session token")
    finally:
        db.close()


@cli.command()
def verify_audit_chain():
    """Recompute the audit hash chain and report the first broken entry."""
    db = SessionLocal()
    try:
        report = audit_service.verify_chain(SqlEntityStore(db).all_audit_entries())
    finally:
        db.close()

    if report.ok:
        click.echo(f"✓ Audit chain intact ({report.checked} entries)")
        return
    click.echo(f"❌ Audit chain broken at entry {report.first_broken_id}")
    raise SystemExit(1)


if __name__ == "__main__":
    cli()
