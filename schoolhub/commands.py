import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .accounts import create_account


@click.command("init-db")
@with_appcontext
def init_db():
    """Create every table that does not exist yet (development only)."""
    db.create_all()
    click.echo("Database initialised")


@click.command("create-admin")
@click.option("--email", prompt=True)
@click.option("--name", "full_name", prompt="Full name")
@click.password_option()
@with_appcontext
def create_admin(email, full_name, password):
    """Create an administrator account."""
    email = email.strip().lower()
    if len(password) < 6:
        raise click.BadParameter("must be at least 6 characters", param_hint="password")
    create_account(full_name.strip(), email, "admin", password)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise click.ClickException(f"A user with email {email} already exists")
    current_app.logger.info("Admin account created: %s", email)
    click.echo(f"Admin {email} created")
