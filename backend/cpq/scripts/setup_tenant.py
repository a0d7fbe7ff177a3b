#!/usr/bin/env python
"""Provision a tenant: database tables and the quote number counter.

Usage:
    cpq-setup-tenant acme
    cpq-setup-tenant acme --start 41   # next quote will be COT-0042
"""

import asyncio

import click
import structlog

from cpq.logging import setup_logging

setup_logging()
logger = structlog.get_logger(__name__)


async def _setup(tenant_id: str, start: int, create: bool) -> int:
    from cpq.db import async_session_maker, create_tables, dispose_engine
    from cpq.store.provisioning import provision_quote_counter

    try:
        if create:
            await create_tables()
        return await provision_quote_counter(async_session_maker, tenant_id, start)
    finally:
        await dispose_engine()


@click.command()
@click.argument("tenant_id")
@click.option("--start", default=0, show_default=True, type=click.IntRange(min=0), help="Last issued quote number.")
@click.option("--create-tables/--no-create-tables", default=True, show_default=True, help="Create missing tables.")
def main(tenant_id: str, start: int, create_tables: bool) -> None:
    """Set up TENANT_ID so quotes can be numbered."""
    current = asyncio.run(_setup(tenant_id, start, create_tables))
    click.echo(f"Tenant {tenant_id}: quote counter at {current}")


if __name__ == "__main__":
    main()
