"""Core modules for the SageMaker cost monitor."""

from .aggregator import ResourceAggregator
from .aws_client import SageMakerClient
from .cost_calculator import CostCalculator
from .pricing import PriceTable
from .retry import CancellationToken, Retrier, RetryPolicy

__all__ = [
    "ResourceAggregator",
    "SageMakerClient",
    "CostCalculator",
    "PriceTable",
    "CancellationToken",
    "Retrier",
    "RetryPolicy",
]
