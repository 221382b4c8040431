# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/laundry/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--outlet "Main" --prefix MN]
#   Idempotent bootstrap: creates tables, a first outlet and a default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Outlet management:
# - python -m flask outlets list
# - python -m flask outlets create --name "Bandra" --prefix BD
#
# User inspection/bootstrap:
# - python -m flask users list
# - python -m flask users create --email staff@laundry.local --full-name "Ravi" --role staff --outlet-id 1
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Outlet, User
from .services import outlet_service
from .services.access_policy import Caller
from .services.auth_service import create_user, has_admin
from .catalog import ROLE_ADMIN, VALID_ROLES
from .validation import ConflictError, NotFoundError, ValidationError

# Commands run with full rights but are not attributable to a user row
SYSTEM_CALLER = Caller(user_id=None, role=ROLE_ADMIN)

DEFAULT_ADMIN_EMAIL = "admin@laundry.local"
DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--outlet', 'outlet_name', default='Main Outlet', help='First outlet name')
@click.option('--prefix', default='MN', help='First outlet invoice prefix')
@with_appcontext
def init_system(outlet_name, prefix):
    """
    Initialize the system: schema, a first outlet and a default admin.

    Default admin: admin@laundry.local / Password123!

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing laundry system...")

    db.create_all()

    outlet = db.session.query(Outlet).order_by(Outlet.id.asc()).first()
    if not outlet:
        outlet = outlet_service.create_outlet(SYSTEM_CALLER, name=outlet_name, prefix=prefix)
        click.echo(f"PASS Created outlet: {outlet.name} (ID: {outlet.id}, Prefix: {outlet.prefix})")
    else:
        click.echo(f"PASS Using existing outlet: {outlet.name} (ID: {outlet.id})")

    if has_admin():
        click.echo("WARN  An admin already exists, skipping default admin...")
    else:
        create_user(
            email=DEFAULT_ADMIN_EMAIL,
            password=DEFAULT_PASSWORD,
            full_name="Administrator",
            role=ROLE_ADMIN,
        )
        click.echo(f"PASS Created admin: {DEFAULT_ADMIN_EMAIL} / {DEFAULT_PASSWORD}")
        click.echo("SECURITY Change this password immediately in production!")

    click.echo("DONE Laundry system initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('outlets')
def outlets_group():
    """Outlet management commands."""


@outlets_group.command('list')
@with_appcontext
def list_outlets_cli():
    outlets = outlet_service.list_outlets(SYSTEM_CALLER)
    if not outlets:
        click.echo("No outlets found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Prefix':<8} {'Name':<30} {'Phone'}")
    click.echo("="*70)
    for outlet in outlets:
        click.echo(f"{outlet.id:<5} {outlet.prefix:<8} {outlet.name:<30} {outlet.phone or ''}")
    click.echo("="*70 + "\n")


@outlets_group.command('create')
@click.option('--name', required=True, help='Outlet name')
@click.option('--prefix', required=True, help='Invoice number prefix (unique)')
@click.option('--address', help='Address')
@click.option('--phone', help='Phone')
@with_appcontext
def create_outlet_cli(name, prefix, address, phone):
    try:
        outlet = outlet_service.create_outlet(
            SYSTEM_CALLER, name=name, prefix=prefix, address=address, phone=phone
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created outlet: {outlet.name} (ID: {outlet.id}, Prefix: {outlet.prefix})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@click.option('--outlet-id', type=int, help='Outlet ID (required for staff)')
@with_appcontext
def create_user_cli(email, full_name, password, role, outlet_id):
    """
    Create a new user.

    Password must meet strength requirements:
    8+ chars, uppercase, lowercase, digit, special char.
    """
    try:
        user = create_user(
            email=email,
            password=password,
            full_name=full_name,
            role=role,
            outlet_id=outlet_id,
        )
    except (ValidationError, NotFoundError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--outlet-id', type=int, help='Filter by outlet ID')
@with_appcontext
def list_users_cli(outlet_id):
    """List all users with their role and outlet."""
    query = db.session.query(User)
    if outlet_id:
        query = query.filter_by(outlet_id=outlet_id)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<24} {'Role':<7} {'Outlet':<7} {'Active'}")
    click.echo("="*90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        outlet_str = str(user.outlet_id) if user.outlet_id else "-"
        click.echo(f"{user.id:<5} {user.email:<32} {user.full_name:<24} {user.role:<7} {outlet_str:<7} {active_str}")
    click.echo("="*90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(outlets_group)
    app.cli.add_command(users_group)
