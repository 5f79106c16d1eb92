# Overview: Flask CLI command groups for bootstrap, inspection, and stock verification.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--email admin@pos.local --password "Password123!" --name Admin]
#   Idempotent bootstrap: creates tables and the first admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email c@pos.local --name Cashier --password "Password123!" --role CASHIER
#
# Stock:
# - python -m flask stock show
#   Current stock and FIFO value per ingredient.
# - python -m flask stock verify
#   Ledger vs lot totals per ingredient; exits 1 if any ingredient disagrees.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import PosError
from .models import User
from .models.auth import ROLES, ROLE_ADMIN
from .services.auth_service import create_user
from .services import reporting_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default='admin@pos.local', show_default=True, help='Admin email')
@click.option('--password', default='Password123!', show_default=True, help='Admin password')
@click.option('--name', default='Admin', show_default=True, help='Admin display name')
@with_appcontext
def init_system(email, password, name):
    """
    Create all tables and the first admin user.

    Safe to re-run: an existing admin is left untouched.
    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing system...")
    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if existing:
        click.echo(f"WARN  Admin '{existing.email}' already exists, skipping...")
        return

    try:
        user = create_user(email=email, password=password, name=name, role=ROLE_ADMIN)
    except PosError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, name, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    8+ chars, uppercase, lowercase, digit, special char.
    """
    try:
        user = create_user(email=email, password=password, name=name, role=role)
    except PosError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.email} with role '{user.role}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<30} {'Name':<20} {'Role':<10} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<30} {user.name:<20} {user.role:<10} {active_str}")
    click.echo("="*80 + "\n")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('show')
@with_appcontext
def show_stock():
    """Current stock and FIFO value per ingredient."""
    rows = reporting_service.current_stock()
    if not rows:
        click.echo("No ingredients found.")
        return

    click.echo(f"{'ID':<5} {'Ingredient':<25} {'Qty':>12} {'Unit':<6} {'Value':>12} {'Low'}")
    for row in rows:
        value = f"{row['value_cents'] / 100:,.2f}"
        low = "LOW" if row["is_low"] else ""
        click.echo(
            f"{row['ingredient_id']:<5} {row['name']:<25} {row['quantity']:>12} "
            f"{row['unit']:<6} {value:>12} {low}"
        )


@stock_group.command('verify')
@with_appcontext
def verify_stock():
    """Check SUM(movements) == SUM(lots) for every ingredient."""
    report = reporting_service.consistency_report()
    for row in report["ingredients"]:
        status = "PASS" if row["consistent"] else "FAIL"
        click.echo(
            f"{status} {row['ingredient_name']}: ledger={row['ledger_quantity']} lots={row['lot_quantity']}"
        )

    if not report["consistent"]:
        raise click.ClickException("Ledger and lot totals disagree")
    click.echo("PASS Ledger consistent")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
