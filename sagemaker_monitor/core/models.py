"""Data model shared by the providers, the aggregator and the cost calculator."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import ClassifiedError, NonRetryableError

# 365 * 24 / 12
HOURS_PER_MONTH = 730


class ResourceKind(Enum):
    """Categories of live SageMaker resources, in report priority order."""

    ENDPOINT = "endpoint"
    NOTEBOOK = "notebook"
    APP = "app"


# Fixed order used whenever results from several kinds are combined.
KIND_PRIORITY = (ResourceKind.ENDPOINT, ResourceKind.NOTEBOOK, ResourceKind.APP)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ResourceRecord:
    """One polled resource instance."""

    kind: ResourceKind
    name: str
    status: str
    instance_type: str
    creation_time: datetime
    instance_count: int = 1
    volume_size_gb: Optional[int] = None
    owner: Optional[str] = None
    app_type: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Name shown in reports; apps are identified by owner and app type."""
        if self.kind is ResourceKind.APP and self.owner and self.app_type:
            return f"{self.owner}/{self.app_type}"
        return self.name

    def running_time(self, now: Optional[datetime] = None) -> timedelta:
        """Elapsed time since creation, never negative."""
        now = now or utcnow()
        created = self.creation_time
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return max(now - created, timedelta(0))


@dataclass
class AggregateResult:
    """Outcome of one concurrent listing pass over all resource kinds."""

    resources: List[ResourceRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    fatal_error: Optional["NonRetryableError"] = None
    fatal_kind: Optional[ResourceKind] = None
    errors: Dict[ResourceKind, "ClassifiedError"] = field(default_factory=dict)

    @property
    def no_resources(self) -> bool:
        """True when every provider succeeded and none returned a record."""
        return not self.resources and self.fatal_error is None and not self.errors

    def by_kind(self, kind: ResourceKind) -> List[ResourceRecord]:
        return [r for r in self.resources if r.kind is kind]


@dataclass(frozen=True)
class CostFigure:
    """Cost figures for a single resource; values are unrounded."""

    resource_type: str
    name: str
    instance_type: str
    running_time: timedelta
    hourly_rate: float
    current_cost: float
    projected_monthly_cost: float
    storage_size_gb: Optional[float] = None
    storage_cost: Optional[float] = None
