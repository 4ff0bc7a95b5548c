"""
Operator commands, run through the Flask CLI:

    flask --app wsgi create-admin admin
    flask --app wsgi issue-tokens 50
    flask --app wsgi import-tokens AB3X9K 77QRST
"""
import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from .errors import BallotError
from .extensions import db
from .models.admin_user import AdminUser
from .services.token_authority import create_tokens, import_tokens


@click.command("create-admin")
@click.argument("username")
@click.password_option()
@with_appcontext
def create_admin(username, password):
    """Create an admin account, or reset the password of an existing one."""
    username = username.strip().lower()
    if len(password) < 8:
        raise click.BadParameter("password must be at least 8 characters", param_hint="password")

    admin = AdminUser.query.filter_by(username=username).first()
    created = admin is None
    if created:
        admin = AdminUser(username=username)
        db.session.add(admin)
    admin.set_password(password)
    admin.is_active = True

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise click.ClickException(f"could not save admin: {e}")

    current_app.logger.info("Admin %s %s", username, "created" if created else "password reset")
    click.echo(f"Admin '{username}' {'created' if created else 'updated'}.")


@click.command("issue-tokens")
@click.argument("amount", type=click.IntRange(min=1))
@with_appcontext
def issue_tokens(amount):
    """Issue AMOUNT voting tokens and print them, one per line."""
    try:
        tokens = create_tokens(amount)
    except BallotError as err:
        raise click.ClickException(f"{err.code}: {err.message}")
    for t in tokens:
        click.echo(t.token)


@click.command("import-tokens")
@click.argument("codes", nargs=-1, required=True)
@with_appcontext
def import_tokens_command(codes):
    """Register pre-printed CODES as unused tokens, all or none."""
    try:
        tokens = import_tokens(list(codes))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="codes")
    except BallotError as err:
        raise click.ClickException(f"{err.code}: {err.message}")
    click.echo(f"Imported {len(tokens)} tokens.")


def register_commands(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(issue_tokens)
    app.cli.add_command(import_tokens_command)
