"""
Flask CLI commands for database management.

Commands:
- flask init-db: Create the tables
- flask flush-db: Remove all products, shipments and orders
"""

import click
from flask import current_app

from storefront.database import create_tables, get_session
from storefront.exceptions import StorefrontError
from storefront.services.inventory_service import InventoryLedger
from storefront.store import SqlStore


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables for all models."""
        create_tables(current_app)
        click.echo(click.style('Tables created.', fg='green'))

    @app.cli.command('flush-db')
    @click.option('--yes', is_flag=True, help='Do not ask for confirmation')
    def flush_db_command(yes):
        """Remove all database records (products, shipments, orders)."""
        if not yes:
            click.confirm('This deletes every product, shipment and order. Continue?', abort=True)

        try:
            InventoryLedger(SqlStore(get_session())).flush()
        except StorefrontError as e:
            click.echo(click.style(f'Error flushing database: {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Database flushed.', fg='green'))
