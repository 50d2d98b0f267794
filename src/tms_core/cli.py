"""
cli.py — Click CLI entrypoint.

Usage:
    tms serve --port 8000
    tms rules IN "Private Limited Company"
    tms tasks IN "Private Limited Company" 2022-04-01 --through-year 2024
"""

from __future__ import annotations

from datetime import date

import click

from tms_shared.config import settings

from tms_core.utils.logging import configure_logging, get_logger

log = get_logger(__name__)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
def main(log_level: str) -> None:
    """TrackMyStartup session service."""
    configure_logging(log_level=log_level, log_format=settings.log_format)


@main.command()
@click.option("--host", default=settings.api_host, show_default=True)
@click.option("--port", default=settings.api_port, show_default=True, type=int)
def serve(host: str, port: int) -> None:
    """Run the HTTP API."""
    import uvicorn

    log.info("serve_start", host=host, port=port)
    uvicorn.run("tms_api.app:app", host=host, port=port)


@main.command()
@click.argument("country")
@click.argument("company_type")
def rules(country: str, company_type: str) -> None:
    """Show the compliance rule set for a country and company type."""
    from tms_core.services import compliance_service

    try:
        rule_set = compliance_service.get_rule_set(country, company_type)
    except Exception as exc:
        click.echo(f"  Error fetching rules: {exc}", err=True)
        raise SystemExit(1) from exc

    if rule_set is None:
        click.echo(f"  No rules for {country} / {company_type}.")
        return

    for title, items in (("First year", rule_set.first_year), ("Annual", rule_set.annual)):
        click.echo(f"{title}:")
        for rule in items:
            checkers = "/".join(
                label for label, needed in (("CA", rule.ca_required), ("CS", rule.cs_required))
                if needed
            )
            click.echo(f"  {rule.id:20s} {rule.name:40s} {checkers or '-'}")


@main.command()
@click.argument("country")
@click.argument("company_type")
@click.argument("registration_date", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--through-year", type=int, default=None, help="Last year to generate")
def tasks(country: str, company_type: str, registration_date, through_year: int | None) -> None:
    """List the compliance tasks a company registered on REGISTRATION_DATE owes."""
    from tms_core.compliance import PARENT_ENTITY, generate_tasks
    from tms_core.services import compliance_service

    try:
        rule_set = compliance_service.get_rule_set(country, company_type)
    except Exception as exc:
        click.echo(f"  Error fetching rules: {exc}", err=True)
        raise SystemExit(1) from exc

    if rule_set is None:
        click.echo(f"  No rules for {country} / {company_type}.")
        return

    registered: date = registration_date.date()
    generated = generate_tasks(
        rule_set,
        PARENT_ENTITY,
        f"Parent Company ({country})",
        registered,
        through_year,
    )
    for task in generated:
        click.echo(f"  {task.year}  {task.task_id:40s} {task.task_name}")
    click.echo(f"{len(generated)} tasks")


if __name__ == "__main__":
    main()
