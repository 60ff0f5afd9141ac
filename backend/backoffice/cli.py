# Overview: Flask CLI command groups for bootstrap and account setup.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv and install the package (pip install -e .).
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables and seed the device status catalog. Idempotent.
#
# Device status catalog:
# - python -m flask catalog seed-statuses
#   Upsert the built-in statuses (available, consigned, sold, returned, ...).
# - python -m flask catalog list
#   Print the catalog with active/visible flags.
#
# Users:
# - python -m flask users create-admin --email admin@example.com --name "Admin" --password "..."
#   Create an admin account (prompts for missing options).
# - python -m flask users list
#   List accounts with role and active status.

import click
from flask.cli import with_appcontext

from .errors import BackofficeError
from .extensions import db
from .models import User
from .services import auth_service, device_service


@click.group("system")
def system_group():
    """System bootstrap commands."""


@system_group.command("init")
@with_appcontext
def init_system():
    """Create tables and seed the device status catalog."""
    click.echo("START Initializing back-office database...")
    db.create_all()
    click.echo("PASS Tables created")
    keys = device_service.seed_device_statuses()
    click.echo(f"PASS Seeded {len(keys)} device statuses: {', '.join(keys)}")


@click.group("catalog")
def catalog_group():
    """Device status catalog commands."""


@catalog_group.command("seed-statuses")
@with_appcontext
def seed_statuses():
    """Upsert the built-in device statuses."""
    keys = device_service.seed_device_statuses()
    click.echo(f"PASS Seeded {len(keys)} device statuses")


@catalog_group.command("list")
@with_appcontext
def list_statuses():
    for status in device_service.list_device_statuses():
        flags = []
        if status.is_active:
            flags.append("active")
        if status.is_visible_for_reseller:
            flags.append("visible")
        if status.is_sellable:
            flags.append("sellable")
        click.echo(f"{status.sort_order:>5}  {status.key:<20} {status.name:<24} [{', '.join(flags)}]")


@click.group("users")
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command("create-admin")
@click.option("--email", prompt=True, help="Email address")
@click.option("--name", prompt=True, help="Display name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password (min 8 chars)")
@with_appcontext
def create_admin_cli(email, name, password):
    """Create an admin account."""
    try:
        user = auth_service.create_admin(email=email, name=name, password=password)
    except BackofficeError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"PASS Created admin {user.email} (ID: {user.id})")


@users_group.command("list")
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<10} {status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(users_group)
