import click
from flask.cli import with_appcontext

from app.extensions import db
from app.models import UserRole
from app.services.user_service import register_user


@click.command('create-admin')
@click.option('--phone', 'phone_no', required=True, help='Admin phone number (login id)')
@click.option('--name', default=None)
@click.option('--email', default=None)
@click.password_option()
@with_appcontext
def create_admin_command(phone_no, name, email, password):
    """Register a committee admin."""
    user = register_user({
        'phone_no': phone_no,
        'name': name,
        'email': email,
        'password': password,
        'role': UserRole.ADMIN.value,
    })
    db.session.commit()
    click.echo(f"Admin {user.name} created (id={user.id})")


def register_commands(app):
    app.cli.add_command(create_admin_command)
