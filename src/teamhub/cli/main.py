"""TeamHub CLI — run the API server and manage credentials.

Usage:
    teamhub serve                         # Run the API with uvicorn
    teamhub serve --port 9000 --reload    # Dev server with autoreload
    teamhub hash-password                 # Print a bcrypt hash (prompts)
    teamhub create-user a@b.com "Ann"     # Register a user directly in the DB
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click

from teamhub.config import settings


def _run(coro):
    """Run an async coroutine from a synchronous Click handler."""
    return asyncio.run(coro)


@click.group()
@click.version_option(package_name="teamhub-api")
def cli():
    """TeamHub API server."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: TEAMHUB_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TEAMHUB_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "teamhub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        # Secure cookies need the real scheme when behind a TLS proxy
        proxy_headers=settings.is_production,
        forwarded_allow_ips="*" if settings.is_production else None,
        log_config=None,
    )


@cli.command("hash-password")
@click.password_option("--password", prompt=True, help="Password to hash")
def hash_password_cmd(password: str):
    """Print a bcrypt hash suitable for users.password_hash."""
    from teamhub.auth.password import hash_password

    click.echo(hash_password(password))


@cli.command("create-user")
@click.argument("email")
@click.argument("name")
@click.password_option("--password", prompt=True, help="Initial password")
def create_user(email: str, name: str, password: str):
    """Register a user (with a personal workspace) directly in the database."""
    from teamhub.db.engine import async_session_factory, engine
    from teamhub.errors import AppError
    from teamhub.services.user_service import UserService

    async def _create():
        try:
            async with async_session_factory() as db:
                user = await UserService(db).register_user(
                    email=email, name=name, password=password
                )
                await db.commit()
                return user
        finally:
            await engine.dispose()

    try:
        user = _run(_create())
    except AppError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Created user {user.email} ({user.id})", fg="green")


if __name__ == "__main__":
    cli()
