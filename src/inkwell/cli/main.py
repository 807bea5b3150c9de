"""Inkwell CLI — database bootstrap and upload maintenance.

Usage:
    inkwell init-db                          # Create tables, admin, sample post
    inkwell create-admin --email a@b.c       # Create the first admin account
    inkwell repair-uploads ./old/uploads     # Copy missing files into upload dir
    inkwell list-uploads                     # Show stored uploads
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from pathlib import Path
from typing import Optional

import click

from inkwell import __version__
from inkwell.config import settings

SAMPLE_POST = {
    "title": "Getting Started with Inkwell",
    "excerpt": "A first post to check that publishing works end to end.",
    "content": (
        "# Getting Started with Inkwell\n\n"
        "This sample post was created by `inkwell init-db`.\n\n"
        "Sign in as an editor or admin to write your own posts, "
        "upload cover images, and manage drafts."
    ),
    "tags": ["Getting Started"],
}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop — normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _admin_credentials(
    username: Optional[str], email: Optional[str], password: Optional[str]
) -> tuple[str, str, str]:
    """Options win over INKWELL_ADMIN_* settings; both empty is an error."""
    username = username or settings.admin_username
    email = email or settings.admin_email
    password = password or settings.admin_password
    if not email or not password:
        click.secho(
            "Error: admin email and password required "
            "(--email/--password or INKWELL_ADMIN_EMAIL/INKWELL_ADMIN_PASSWORD)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return username, email, password


async def _ensure_admin(username: str, email: str, password: str):
    from inkwell.db.engine import async_session_factory
    from inkwell.services.user_service import UserService

    async with async_session_factory() as db:
        return await UserService(db).ensure_admin(username, email, password)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="inkwell")
def main():
    """Inkwell — blog backend maintenance commands."""


# ---------------------------------------------------------------------------
# inkwell init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
@click.option("--username", help="Admin username (default: INKWELL_ADMIN_USERNAME)")
@click.option("--email", help="Admin email (default: INKWELL_ADMIN_EMAIL)")
@click.option("--password", help="Admin password (default: INKWELL_ADMIN_PASSWORD)")
@click.option("--no-sample", is_flag=True, help="Skip the sample post")
def init_db(username: Optional[str], email: Optional[str], password: Optional[str],
            no_sample: bool):
    """Create tables, the bootstrap admin, and a sample post."""
    creds = _admin_credentials(username, email, password)
    _run(_init_db_impl(*creds, sample=not no_sample))


async def _init_db_impl(username: str, email: str, password: str, sample: bool):
    from inkwell.db.engine import async_session_factory, create_tables, engine
    from inkwell.services.post_service import PostService

    await create_tables()
    click.secho("Tables ready", fg="green")

    admin, created = await _ensure_admin(username, email, password)
    if created:
        click.secho(f"Admin user created: {admin.email}", fg="green")
    else:
        click.echo(f"Admin user already exists: {admin.email}")

    if sample:
        async with async_session_factory() as db:
            svc = PostService(db)
            count = await svc.count()
            if count == 0:
                post = await svc.create(author_id=admin.id, status="published", **SAMPLE_POST)
                click.secho(f"Sample post created: /{post.slug}", fg="green")
            else:
                click.echo(f"{count} blog posts already exist")

    await engine.dispose()
    click.secho("Database initialization complete", bold=True)


# ---------------------------------------------------------------------------
# inkwell create-admin
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.option("--username", help="Admin username (default: INKWELL_ADMIN_USERNAME)")
@click.option("--email", help="Admin email (default: INKWELL_ADMIN_EMAIL)")
@click.option("--password", help="Admin password (default: INKWELL_ADMIN_PASSWORD)")
def create_admin(username: Optional[str], email: Optional[str], password: Optional[str]):
    """Create the first admin account, unless an admin already exists."""
    creds = _admin_credentials(username, email, password)
    admin, created = _run(_ensure_admin(*creds))
    if created:
        click.secho(f"Admin user created: {admin.email}", fg="green")
    else:
        click.echo(f"Admin user already exists: {admin.email}")


# ---------------------------------------------------------------------------
# inkwell repair-uploads / list-uploads
# ---------------------------------------------------------------------------


@main.command("repair-uploads")
@click.argument(
    "source_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
def repair_uploads(source_dir: Path):
    """Copy files missing from the upload directory out of SOURCE_DIR."""
    from inkwell.services.upload_service import UploadService

    svc = UploadService()
    copied = svc.repair_from(source_dir)
    total = svc.list_files()["count"]
    click.secho(f"Repair complete! Copied {copied} files.", fg="green")
    click.echo(f"{svc.upload_dir} now contains {total} files.")


@main.command("list-uploads")
def list_uploads():
    """List files in the upload directory."""
    from inkwell.services.upload_service import UploadService

    svc = UploadService()
    listing = svc.list_files()
    click.secho(f"{listing['count']} files in {svc.upload_dir}", bold=True)
    for i, f in enumerate(listing["files"], 1):
        click.echo(f"{i:>4}. {f['name']}  ({f['path']})")


if __name__ == "__main__":
    main()
