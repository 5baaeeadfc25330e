"""Table and JSON rendering of a scan result."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import click
from tabulate import tabulate

from ..core.cost_calculator import CostCalculator
from ..core.models import AggregateResult, CostFigure, ResourceRecord
from ..core.pricing import PriceTable
from ..core.utils import format_currency, format_duration, round_money, truncate


class Colors:
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    BOLD = "\033[1m"
    END = "\033[0m"


STATUS_COLORS = {
    "InService": Colors.GREEN,
    "Running": Colors.GREEN,
    "Stopped": Colors.YELLOW,
    "Failed": Colors.RED,
    "Deleting": Colors.RED,
}

NO_RESOURCES_MESSAGE = "No resources found"


def print_colored(
    text: str, color: Optional[str] = None, bold: bool = False, err: bool = False
) -> None:
    """Print text with optional color and bold."""
    if color:
        text = f"{color}{text}{Colors.END}"
    if bold:
        text = f"{Colors.BOLD}{text}{Colors.END}"
    click.echo(text, err=err)


def resource_entry(record: ResourceRecord, figure: CostFigure) -> Dict[str, Any]:
    """JSON representation of one resource and its cost figure."""
    entry = {
        "resourceType": figure.resource_type,
        "name": figure.name,
        "status": record.status,
        "instanceType": record.instance_type,
        "instanceCount": record.instance_count,
        "creationTime": record.creation_time.isoformat(),
        "runningTime": format_duration(figure.running_time),
        "hourlyRate": round_money(figure.hourly_rate),
        "currentCost": round_money(figure.current_cost),
        "projectedMonthlyCost": round_money(figure.projected_monthly_cost),
    }
    if figure.storage_cost is not None:
        entry["storageSizeGB"] = figure.storage_size_gb
        entry["storageCost"] = round_money(figure.storage_cost)
    if record.owner:
        entry["owner"] = record.owner
    if record.app_type:
        entry["appType"] = record.app_type
    return entry


class ReportPrinter:
    """Renders scan results either as a colored table or as JSON."""

    def __init__(self, output_json: bool = False, color: bool = True):
        self.output_json = output_json
        self.color = color

    def _metadata(self, region: str, message: Optional[str] = None) -> Dict[str, Any]:
        metadata = {
            "region": region,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }
        if message:
            metadata["message"] = message
        return metadata

    def _status(self, status: str) -> str:
        color = STATUS_COLORS.get(status)
        if self.color and color:
            return f"{color}{status}{Colors.END}"
        return status

    def print_warning(self, message: str) -> None:
        print_colored(message, Colors.YELLOW if self.color else None, err=True)

    def print_report(
        self, result: AggregateResult, figures: List[CostFigure], region: str
    ) -> None:
        if result.no_resources:
            self.print_no_resources(region, warnings=result.warnings)
            return

        totals = CostCalculator.summarize(figures)
        if self.output_json:
            payload = {
                "resources": [
                    resource_entry(record, figure)
                    for record, figure in zip(result.resources, figures)
                ],
                "warnings": list(result.warnings),
                "totals": {key: round_money(value) for key, value in totals.items()},
                "metadata": self._metadata(region),
            }
            click.echo(json.dumps(payload, indent=2))
            return

        table_data = []
        for record, figure in zip(result.resources, figures):
            table_data.append(
                [
                    figure.resource_type,
                    truncate(figure.name, 29),
                    self._status(record.status),
                    record.instance_type,
                    format_duration(figure.running_time),
                    format_currency(figure.hourly_rate),
                    format_currency(figure.current_cost),
                    format_currency(figure.projected_monthly_cost),
                    format_currency(figure.storage_cost),
                ]
            )

        headers = [
            "Type",
            "Name",
            "Status",
            "Instance",
            "Running Time",
            "Hourly",
            "Current Cost",
            "Monthly Est.",
            "Storage/Month",
        ]
        print_colored(f"\n=== SageMaker resources in {region} ===", bold=self.color)
        click.echo(tabulate(table_data, headers=headers, tablefmt="simple"))
        if not table_data:
            print_colored(
                "No resources could be listed; some resource kinds failed (see warnings)",
                Colors.YELLOW if self.color else None,
            )

        print_colored(
            f"\nTotal hourly rate: {format_currency(totals['hourly_rate'])}",
            Colors.GREEN if self.color else None,
            bold=self.color,
        )
        print_colored(f"Cost so far: {format_currency(totals['current_cost'])}")
        print_colored(
            f"Monthly estimate: {format_currency(totals['projected_monthly_cost'])}"
            f" (+ {format_currency(totals['storage_cost'])} storage)"
        )

    def print_no_resources(self, region: str, warnings: Optional[List[str]] = None) -> None:
        if self.output_json:
            payload = {
                "resources": [],
                "warnings": list(warnings or []),
                "metadata": self._metadata(region, NO_RESOURCES_MESSAGE),
            }
            click.echo(json.dumps(payload, indent=2))
        else:
            print_colored(
                f"No SageMaker resources found in region {region}",
                Colors.YELLOW if self.color else None,
            )

    def print_prices(self, prices: PriceTable) -> None:
        categories = prices.categories()
        if self.output_json:
            payload = {"hourly": categories, "storage": {"ebs": prices.storage_rate()}}
            click.echo(json.dumps(payload, indent=2))
            return

        table_data = []
        for category, rates in categories.items():
            for instance_type, rate in sorted(rates.items()):
                table_data.append([category, instance_type, format_currency(rate)])

        click.echo(tabulate(table_data, headers=["Category", "Instance", "Hourly"], tablefmt="simple"))
        print_colored(f"\nEBS storage: {format_currency(prices.storage_rate())} per GB-month")
