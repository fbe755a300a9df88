"""
Database initialization CLI command.

Provides commands for initializing and resetting the fintrack database.
"""

import click

from fintrack.lib.db import db_exists, get_engine, init_db, reset_db


@click.command()
@click.option("--reset", is_flag=True, help="Reset database (WARNING: deletes all data)")
def init(reset: bool) -> None:
    """Initialize the fintrack database."""
    db_path = get_engine().url.database

    if db_exists() and not reset:
        # create_all only adds missing tables
        init_db()
        click.echo(f"Database already exists at {db_path}")
        click.echo("Use --reset to recreate (WARNING: this will delete all data)")
        return

    if reset:
        if not click.confirm("This will DELETE ALL DATA. Continue?"):
            click.echo("Aborted.")
            return

        reset_db()
        click.echo("Database reset successfully.")
    else:
        init_db()
        click.echo(f"Database initialized at {db_path}")
