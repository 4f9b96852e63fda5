# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pantry/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv and install the project (pip install -e .).
# - Use: flask --app pantry <group> <command> [options]
#
# System bootstrap:
# - flask --app pantry system init-db
#   Create all tables that do not exist yet (development; use `flask db upgrade` otherwise).
#
# Organization inspection (MULTI-TENANT):
# - flask --app pantry orgs list
#   List all organizations with their user counts.
#
# Onboarding:
# - flask --app pantry invites create --organization-name "Tacos del Norte" [--code tacos-del-norte]
#   Create a new-organization invite code. The first user to redeem it becomes its admin.
# - flask --app pantry invites list [--unused]
#   List invite codes.
#
# User bootstrap:
# - flask --app pantry users create-admin --org-id 1 --name "Ana" --email ana@example.com
#   Create an admin inside an existing organization (prompts for the password).
# - flask --app pantry users list [--org-id 1]
#   List users with role and active status.
#
# Stock ledger:
# - flask --app pantry stock verify [--org-id 1]
#   Replay every product's ledger and report products whose cached stock level disagrees.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import PantryError
from .extensions import db
from .models import InviteCode, Organization, User
from .permissions.roles import ADMIN
from .services import auth_service
from .services import stock_service
from .services import tenant_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables from the model metadata."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('orgs')
def orgs_group():
    """Organization inspection."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    orgs = tenant_service.list_organizations()
    if not orgs:
        click.echo("No organizations yet. Create an invite code and register through it.")
        return
    for org in orgs:
        user_count = db.session.query(User).filter_by(org_id=org.id).count()
        status = "active" if org.is_active else "inactive"
        click.echo(f"{org.id:>4}  {org.code or '-':<24} {org.name:<32} {status:<8} users={user_count}")


@click.group('invites')
def invites_group():
    """Invite code management."""


@invites_group.command('create')
@click.option('--organization-name', prompt=True, help='Name of the organization the code creates')
@click.option('--code', default=None, help='Explicit code (generated when omitted)')
@with_appcontext
def create_invite(organization_name, code):
    """
    Create a new-organization invite code without an authenticated admin.

    Used to onboard the very first tenant of a fresh installation.
    """
    organization_name = (organization_name or "").strip()
    if not organization_name:
        click.echo("FAIL organization name is required")
        raise SystemExit(1)

    code = tenant_service.normalize_code(code or f"{tenant_service.slugify(organization_name)}")
    if not tenant_service.CODE_RE.match(code):
        click.echo(f"FAIL invalid invite code: {code}")
        raise SystemExit(1)
    if db.session.get(InviteCode, code) is not None:
        click.echo(f"FAIL invite code already exists: {code}")
        raise SystemExit(1)

    db.session.add(InviteCode(code=code, organization_name=organization_name, used=False))
    db.session.commit()
    current_app.logger.info("Invite code %s created from CLI", code)
    click.echo(f"PASS Created invite code: {code} (organization: {organization_name})")


@invites_group.command('list')
@click.option('--unused', is_flag=True, help='Only codes that can still be redeemed')
@with_appcontext
def list_invites(unused):
    query = db.session.query(InviteCode)
    if unused:
        query = query.filter(InviteCode.used.is_(False))
    for invite in query.order_by(InviteCode.created_at.desc()).all():
        status = "used" if invite.used else "open"
        target = f"org {invite.org_id}" if invite.org_id else "new org"
        click.echo(f"{invite.code:<40} {status:<5} {target:<10} {invite.organization_name}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('create-admin')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin(org_id, name, email, password):
    """
    Create an admin user inside an existing organization.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    org = db.session.get(Organization, org_id)
    if not org:
        click.echo(f"FAIL Organization ID {org_id} not found")
        raise SystemExit(1)

    try:
        user = auth_service.create_user(
            org_id=org.id,
            name=name,
            email=email,
            password=password,
            role=ADMIN,
        )
    except PantryError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin {user.email} (ID: {user.id}) in '{org.name}'")


@users_group.command('list')
@click.option('--org-id', type=int, default=None, help='Limit to one organization')
@with_appcontext
def list_users(org_id):
    query = db.session.query(User)
    if org_id is not None:
        query = query.filter_by(org_id=org_id)
    for user in query.order_by(User.org_id.asc(), User.id.asc()).all():
        status = "active" if user.is_active else "inactive"
        label = f" ({user.restaurant})" if user.restaurant else ""
        click.echo(f"{user.id:>4}  org={user.org_id:<4} {user.email:<32} {user.role:<10} {status}{label}")


@click.group('stock')
def stock_group():
    """Stock ledger maintenance."""


@stock_group.command('verify')
@click.option('--org-id', type=int, default=None, help='Limit to one organization')
@with_appcontext
def verify_stock(org_id):
    """Exit status 1 when any cached stock level disagrees with its ledger."""
    mismatches = stock_service.verify_stock_levels(org_id=org_id)
    if not mismatches:
        click.echo("PASS Stock levels match the ledger")
        return
    for row in mismatches:
        click.echo(
            f"FAIL product {row['product_id']} '{row['name']}' (org {row['org_id']}): "
            f"cached={row['cached']} ledger={row['replayed']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(invites_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
