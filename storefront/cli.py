# storefront/cli.py
import click
from flask.cli import with_appcontext

from .extensions import db
from .model import Role, User


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
@with_appcontext
def create_admin(email, password, name):
    """Create an admin account, or promote and reset an existing one."""
    email = email.strip().lower()
    if len(password) < 6:
        raise click.BadParameter("must be at least 6 characters", param_hint="--password")

    u = User.query.filter_by(email=email).first()
    if u:
        action = "updated"
    else:
        u = User(email=email)
        db.session.add(u)
        action = "created"
    u.name = name
    u.role = Role.ADMIN
    u.is_active = True
    u.set_password(password)
    db.session.commit()
    click.echo(f"Admin {action}: {u.id} {u.email}")


def register_cli(app):
    app.cli.add_command(create_admin)
