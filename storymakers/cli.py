"""Operator commands: create the schema and admin profiles."""
import asyncio

import typer
from sqlalchemy.exc import IntegrityError

from . import crud
from .backend import BackendAccessor
from .models.profiles import ROLE_ADMIN

app = typer.Typer(name='storymakers', help='StoryMakers service administration.')


def _client():
    client = BackendAccessor().get()
    if client is None:
        typer.echo('Backend not configured; check DATABASE_URL, JWT_SECRET and storage settings.', err=True)
        raise typer.Exit(1)
    return client


@app.command('init-db')
def init_db():
    """Create any missing tables (development; use alembic in production)."""
    async def run():
        client = _client()
        try:
            await client.create_schema()
        finally:
            await client.dispose()

    asyncio.run(run())
    typer.echo('Schema ready')


@app.command('create-admin')
def create_admin(
    email: str = typer.Argument(..., help='Sign-in email of the new admin.'),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Create a profile with the admin role."""
    async def run():
        client = _client()
        try:
            async with client.session() as session:
                async with session.begin():
                    profile = await crud.create_profile(session, email, password, role=ROLE_ADMIN)
                    return profile.id
        finally:
            await client.dispose()

    try:
        profile_id = asyncio.run(run())
    except IntegrityError:
        typer.echo(f'A profile with email {email} already exists', err=True)
        raise typer.Exit(1)
    typer.echo(f'Admin {email} created (id {profile_id})')


if __name__ == '__main__':
    app()
