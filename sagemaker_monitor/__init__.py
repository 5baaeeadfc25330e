"""
SageMaker Cost Monitor

Finds running SageMaker endpoints, notebook instances and Studio apps and
estimates what they cost, so forgotten resources get noticed early.
"""

__version__ = "1.0.0"

from .core.aggregator import ResourceAggregator
from .core.aws_client import SageMakerClient
from .core.cost_calculator import CostCalculator
from .core.pricing import PriceTable

__all__ = ["ResourceAggregator", "SageMakerClient", "CostCalculator", "PriceTable"]
