"""
SageMaker Cost Monitor - CLI Interface
Command-line tool that lists running SageMaker resources and what they cost
"""

import logging
import sys
from typing import Optional

import click
from botocore.exceptions import BotoCoreError, ClientError

from ..core.aggregator import ResourceAggregator, fatal_message
from ..core.aws_client import SageMakerClient
from ..core.config import Config, LOG_LEVELS, get_config, set_config
from ..core.cost_calculator import CostCalculator
from ..core.errors import OperationCancelled, describe_error
from ..core.logging_config import setup_logging
from ..core.pricing import PriceTable
from ..core.retry import CancellationToken
from .report import ReportPrinter

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

logger = logging.getLogger(__name__)


def load_prices(pricing_file: Optional[str]) -> PriceTable:
    if pricing_file:
        return PriceTable.from_file(pricing_file)
    return PriceTable()


@click.group()
@click.option("--region", "-r", default=None, help="AWS region (defaults to the AWS CLI configuration)")
@click.option("--profile", default=None, help="AWS profile to use")
@click.option("--json", "-j", "output_json", is_flag=True, help="Output in JSON format")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log verbosity (logs go to stderr)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    region: Optional[str],
    profile: Optional[str],
    output_json: bool,
    log_level: Optional[str],
) -> None:
    """SageMaker Cost Monitor CLI.

    Spot forgotten SageMaker endpoints, notebooks and Studio apps before they burn money.
    """
    ctx.ensure_object(dict)

    try:
        config = Config.from_env()
        if region:
            config.aws.region = region
        if profile:
            config.aws.profile = profile
        if log_level:
            config.app.log_level = log_level.upper()
        set_config(config)
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    setup_logging(level=config.app.log_level, log_file=config.app.log_file)
    logger.debug(f"Effective configuration: {config.to_dict()}")

    ctx.obj["printer"] = ReportPrinter(
        output_json=output_json, color=not output_json and sys.stdout.isatty()
    )


@cli.command()
@click.option("--detailed", is_flag=True, help="Fetch instance counts and volume sizes (extra API calls)")
@click.option(
    "--pricing-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file overriding the built-in price table",
)
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def scan(
    ctx: click.Context, detailed: bool, pricing_file: Optional[str], timeout: Optional[float]
) -> None:
    """List running SageMaker resources with their running and projected cost."""
    config = get_config()
    printer: ReportPrinter = ctx.obj["printer"]

    try:
        prices = load_prices(pricing_file or config.app.pricing_file)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading prices: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    try:
        client = SageMakerClient(
            region=config.aws.region,
            profile_name=config.aws.profile,
            role_arn=config.aws.role_arn,
            detailed=detailed or config.app.detailed,
            connect_timeout=config.aws.connect_timeout,
            read_timeout=config.aws.read_timeout,
        )
        region = client.region
        providers = client.providers()
    except (BotoCoreError, ClientError) as e:
        click.echo(f"Error initializing SageMaker client: {describe_error(e)}", err=True)
        sys.exit(EXIT_FAILURE)

    token = CancellationToken(timeout=timeout if timeout is not None else config.app.timeout)
    aggregator = ResourceAggregator(providers, policy=config.retry.to_policy())

    try:
        if not client.validate_configuration():
            printer.print_warning(
                "AWS credentials could not be validated for SageMaker; nothing to report"
            )
            printer.print_no_resources(region)
            return
        result = aggregator.run(token)
    except OperationCancelled as e:
        click.echo(f"Scan cancelled: {e}", err=True)
        sys.exit(EXIT_CANCELLED)
    except KeyboardInterrupt:
        token.cancel("interrupted by user")
        click.echo("Scan interrupted", err=True)
        sys.exit(EXIT_CANCELLED)
    except (ClientError, BotoCoreError) as e:
        click.echo(f"Error: configuration validation failed: {describe_error(e)}", err=True)
        sys.exit(EXIT_FAILURE)

    for warning in result.warnings:
        printer.print_warning(warning)

    if result.fatal_error is not None:
        click.echo(f"Error: {fatal_message(result)}", err=True)
        sys.exit(EXIT_FAILURE)

    figures = CostCalculator(prices).calculate_all(result.resources)
    printer.print_report(result, figures, region)


@cli.command()
@click.option(
    "--pricing-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file overriding the built-in price table",
)
@click.pass_context
def prices(ctx: click.Context, pricing_file: Optional[str]) -> None:
    """Show the hourly price table used for cost estimates."""
    config = get_config()
    printer: ReportPrinter = ctx.obj["printer"]

    try:
        table = load_prices(pricing_file or config.app.pricing_file)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading prices: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    printer.print_prices(table)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
