"""
Cost Calculator Module - Turns polled resource facts into cost figures
Pure functions: no I/O, no rounding (rounding happens when displaying)
"""

from datetime import datetime, timedelta
from typing import List, Optional, Dict

from .models import HOURS_PER_MONTH, CostFigure, ResourceKind, ResourceRecord, utcnow
from .pricing import PriceLookup

CANVAS_APP_TYPE = "Canvas"


def current_cost(hourly_rate: float, running_time: timedelta) -> float:
    return hourly_rate * (running_time.total_seconds() / 3600.0)


def projected_monthly_cost(hourly_rate: float) -> float:
    return hourly_rate * HOURS_PER_MONTH


def storage_cost(size_gb: float, price_per_gb_month: float) -> float:
    return size_gb * price_per_gb_month


def _hourly_rate(prices: PriceLookup, category: str, instance_type: str) -> float:
    # An unknown instance type means "pricing unknown", not an error
    rate, _found = prices.get(category, instance_type)
    return rate


def _figure(
    resource_type: str,
    record: ResourceRecord,
    hourly_rate: float,
    now: Optional[datetime],
    **extra,
) -> CostFigure:
    running_time = record.running_time(now)
    return CostFigure(
        resource_type=resource_type,
        name=record.display_name,
        instance_type=record.instance_type,
        running_time=running_time,
        hourly_rate=hourly_rate,
        current_cost=current_cost(hourly_rate, running_time),
        projected_monthly_cost=projected_monthly_cost(hourly_rate),
        **extra,
    )


def calculate_endpoint_cost(
    record: ResourceRecord, prices: PriceLookup, now: Optional[datetime] = None
) -> CostFigure:
    """Endpoints are billed per instance-hour times the instance count."""
    count = max(record.instance_count, 1)
    hourly_rate = _hourly_rate(prices, "endpoint", record.instance_type) * count
    return _figure("Endpoint", record, hourly_rate, now)


def calculate_notebook_cost(
    record: ResourceRecord, prices: PriceLookup, now: Optional[datetime] = None
) -> CostFigure:
    """Notebook instances add a monthly storage cost for their attached volume."""
    hourly_rate = _hourly_rate(prices, "notebook", record.instance_type)
    size_gb = float(record.volume_size_gb or 0)
    return _figure(
        "Notebook",
        record,
        hourly_rate,
        now,
        storage_size_gb=size_gb,
        storage_cost=storage_cost(size_gb, prices.storage_rate()),
    )


def calculate_studio_cost(
    record: ResourceRecord, prices: PriceLookup, now: Optional[datetime] = None
) -> CostFigure:
    hourly_rate = _hourly_rate(prices, "studio", record.instance_type)
    return _figure("Studio", record, hourly_rate, now)


def calculate_canvas_cost(
    record: ResourceRecord, prices: PriceLookup, now: Optional[datetime] = None
) -> CostFigure:
    hourly_rate = _hourly_rate(prices, "canvas", record.instance_type)
    return _figure("Canvas", record, hourly_rate, now)


def calculate_cost(
    record: ResourceRecord, prices: PriceLookup, now: Optional[datetime] = None
) -> CostFigure:
    """Dispatch to the calculator matching the record's kind."""
    if record.kind is ResourceKind.ENDPOINT:
        return calculate_endpoint_cost(record, prices, now)
    if record.kind is ResourceKind.NOTEBOOK:
        return calculate_notebook_cost(record, prices, now)
    if record.app_type == CANVAS_APP_TYPE:
        return calculate_canvas_cost(record, prices, now)
    return calculate_studio_cost(record, prices, now)


class CostCalculator:
    """Evaluates every record against one price source at a single instant."""

    def __init__(self, prices: PriceLookup) -> None:
        """
        Initialize cost calculator with a price source.

        Args:
            prices: Anything implementing ``PriceLookup``
        """
        self.prices = prices

    def calculate_all(
        self, records: List[ResourceRecord], now: Optional[datetime] = None
    ) -> List[CostFigure]:
        """
        Cost figures for ``records``, in input order.

        All records share the same evaluation instant so that the figures
        are consistent with each other.
        """
        now = now or utcnow()
        return [calculate_cost(record, self.prices, now) for record in records]

    @staticmethod
    def summarize(figures: List[CostFigure]) -> Dict[str, float]:
        """Totals across figures (unrounded)."""
        return {
            "hourly_rate": sum(f.hourly_rate for f in figures),
            "current_cost": sum(f.current_cost for f in figures),
            "projected_monthly_cost": sum(f.projected_monthly_cost for f in figures),
            "storage_cost": sum(f.storage_cost or 0.0 for f in figures),
        }
