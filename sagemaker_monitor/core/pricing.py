"""
Price tables for SageMaker compute and storage.

Hourly on-demand rates are keyed by price category (endpoint, notebook,
studio, canvas) and instance type. Storage is a flat EBS rate per GB-month.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union

logger = logging.getLogger(__name__)

PRICE_CATEGORIES = ("endpoint", "notebook", "studio", "canvas")

_GENERAL_PURPOSE_PRICES = {
    "ml.t2.medium": 0.05,
    "ml.t2.large": 0.10,
    "ml.t2.xlarge": 0.20,
    "ml.t3.medium": 0.05,
    "ml.t3.large": 0.10,
    "ml.t3.xlarge": 0.20,
    "ml.m4.xlarge": 0.28,
    "ml.m5.large": 0.13,
    "ml.m5.xlarge": 0.27,
    "ml.m5.2xlarge": 0.54,
    "ml.c5.large": 0.12,
    "ml.c5.xlarge": 0.24,
    "ml.c5.2xlarge": 0.48,
    "ml.p3.2xlarge": 3.825,
    "ml.g4dn.xlarge": 0.736,
}

_INTERACTIVE_PRICES = {
    "ml.t3.medium": 0.05,
    "ml.m5.large": 0.13,
    "ml.m5.xlarge": 0.27,
    "ml.m5.2xlarge": 0.54,
    "ml.c5.large": 0.12,
    "ml.c5.xlarge": 0.24,
    "ml.c5.2xlarge": 0.48,
    "ml.g4dn.xlarge": 0.736,
    "ml.p3.2xlarge": 3.825,
}

DEFAULT_HOURLY_PRICES: Dict[str, Dict[str, float]] = {
    "endpoint": dict(_GENERAL_PURPOSE_PRICES),
    "notebook": dict(_GENERAL_PURPOSE_PRICES),
    "studio": dict(_INTERACTIVE_PRICES),
    "canvas": dict(_INTERACTIVE_PRICES),
}

# EBS general purpose storage, USD per GB-month
DEFAULT_STORAGE_PRICE = 0.10


class PriceLookup(Protocol):
    """What the cost calculator needs from a price source."""

    def get(self, category: str, instance_type: str) -> Tuple[float, bool]:
        ...

    def storage_rate(self) -> float:
        ...


class PriceTable:
    """In-memory price table, optionally overlaid from a JSON file."""

    def __init__(
        self,
        hourly: Optional[Mapping[str, Mapping[str, float]]] = None,
        storage_price: float = DEFAULT_STORAGE_PRICE,
    ):
        self._hourly: Dict[str, Dict[str, float]] = {
            category: dict(prices) for category, prices in DEFAULT_HOURLY_PRICES.items()
        }
        if hourly:
            for category, prices in hourly.items():
                self._check_category(category)
                self._hourly[category].update({k: float(v) for k, v in prices.items()})
        if storage_price < 0:
            raise ValueError("Storage price must be non-negative")
        self._storage_price = float(storage_price)

    @staticmethod
    def _check_category(category: str) -> None:
        if category not in PRICE_CATEGORIES:
            raise ValueError(f"Unsupported price category: {category}")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "PriceTable":
        """
        Load overrides from a JSON file shaped like::

            {"endpoint": {"ml.t3.medium": 0.05}, "storage": {"ebs": 0.10}}

        Missing categories and instance types keep their defaults.
        """
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)

        if not isinstance(data, dict):
            raise ValueError(f"Pricing file {path} must contain a JSON object")

        storage = data.pop("storage", {}) or {}
        storage_price = float(storage.get("ebs", DEFAULT_STORAGE_PRICE))
        table = cls(hourly=data, storage_price=storage_price)
        logger.info(f"Loaded pricing overrides from {path}")
        return table

    def get(self, category: str, instance_type: str) -> Tuple[float, bool]:
        """Hourly rate for ``instance_type``; ``(0.0, False)`` if unknown."""
        prices = self._hourly.get(category)
        if prices is None or instance_type not in prices:
            return 0.0, False
        return prices[instance_type], True

    def storage_rate(self) -> float:
        return self._storage_price

    def categories(self) -> Dict[str, Dict[str, float]]:
        return {category: dict(prices) for category, prices in self._hourly.items()}
