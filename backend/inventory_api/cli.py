# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/inventory_api/cli.py
# Commands Legend (run from the backend directory):
# FLASK_APP=wsgi.py, then: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the walk-in customer and default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions --days 30
#   Delete old expired/revoked access tokens.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username admin --email admin@shop.local --full-name "Admin" --password "Password123!" --role admin
#
# Stock:
# - python -m flask stock alerts
#   Print products at or below their minimum stock level.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, User
from .models.auth import ROLES
from .services import session_service
from .services.auth_service import create_user, list_users as list_users_service, PasswordValidationError
from .services.reporting_service import stock_alerts
from .validation import ConflictError, ValidationError


WALK_IN_CUSTOMER = "Walk-in Customer"
DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database: tables, walk-in customer and default users.

    Default users: admin, manager, cashier, all with password "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing system...")
    db.create_all()

    if not db.session.query(Customer).filter_by(name=WALK_IN_CUSTOMER).first():
        db.session.add(Customer(name=WALK_IN_CUSTOMER, is_active=True))
        db.session.commit()
        click.echo(f"PASS Created customer: {WALK_IN_CUSTOMER}")

    default_users = [
        ("admin", "admin@shop.local", "Administrator", "admin"),
        ("manager", "manager@shop.local", "Store Manager", "manager"),
        ("cashier", "cashier@shop.local", "Cashier", "cashier"),
    ]

    for username, email, full_name, role in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(
                username=username,
                email=email,
                full_name=full_name,
                password=DEFAULT_PASSWORD,
                role=role,
            )
            click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
        except (PasswordValidationError, ValidationError, ConflictError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("DONE System initialized. Change default passwords in production!")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table. Sales, stock history and users are lost."""
    if not yes:
        click.confirm("WARN Every sale, movement and user will be deleted. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Schema recreated; run 'flask system init' to seed users.")


@system_group.command('cleanup-sessions')
@click.option('--days', default=30, show_default=True, type=int, help='Age threshold in days')
@with_appcontext
def cleanup_sessions(days):
    """Delete expired or revoked access tokens older than --days."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=days)
    click.echo(f"PASS Deleted {deleted} session(s)")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = list_users_service()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Active'}")
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {active_str}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--full-name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default='cashier', show_default=True)
@with_appcontext
def create_user_command(username, email, full_name, password, role):
    """Create a user."""
    try:
        user = create_user(
            username=username,
            email=email,
            full_name=full_name,
            password=password,
            role=role,
        )
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('alerts')
@with_appcontext
def alerts():
    """Print products at or below their minimum stock level."""
    rows = stock_alerts()
    if not rows:
        click.echo("No stock alerts.")
        return
    for row in rows:
        click.echo(
            f"{row['alert_level']:<9} {row['sku']:<20} {row['product_name']:<40} "
            f"{row['current_stock']}/{row['min_stock_level']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
