"""
Concurrent listing of all SageMaker resource kinds.

One worker per resource kind runs its provider through a Retrier. The
calling thread waits for all of them, or until the cancellation token
fires, and then combines the outcomes in the fixed kind priority order.
"""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Mapping, Optional

from .errors import (
    ClassifiedError,
    NonRetryableError,
    OperationCancelled,
    WarningTracker,
    classify_error,
    describe_error,
)
from .models import KIND_PRIORITY, AggregateResult, ResourceKind, ResourceRecord
from .retry import DEFAULT_RETRY_POLICY, CancellationToken, Retrier, RetryPolicy

logger = logging.getLogger(__name__)

Provider = Callable[[CancellationToken], List[ResourceRecord]]

_PLURAL_LABELS = {
    ResourceKind.ENDPOINT: "endpoints",
    ResourceKind.NOTEBOOK: "notebooks",
    ResourceKind.APP: "studio apps",
}


class ResourceAggregator:
    """Fans out one list call per resource kind and fans the results back in."""

    def __init__(
        self,
        providers: Mapping[ResourceKind, Provider],
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        poll_interval: float = 0.05,
    ):
        """
        Args:
            providers: List call per resource kind
            policy: Retry policy applied to each provider call
            poll_interval: How often the waiting thread re-checks cancellation, in seconds
        """
        self.providers = dict(providers)
        self.policy = policy
        self.poll_interval = poll_interval

    def _list_kind(
        self, kind: ResourceKind, provider: Provider, token: CancellationToken
    ) -> List[ResourceRecord]:
        retrier = Retrier(self.policy)
        records = retrier.execute(
            lambda: provider(token), token, description=f"list {_PLURAL_LABELS[kind]}"
        )
        return [record for record in records if record.name]

    def run(self, token: Optional[CancellationToken] = None) -> AggregateResult:
        """
        List every resource kind concurrently.

        Returns:
            AggregateResult with resources in Endpoint, Notebook, App order,
            warnings for exhausted retryable failures and the first
            non-retryable failure (in kind order) as ``fatal_error``

        Raises:
            OperationCancelled: The token fired before all providers finished
        """
        token = token or CancellationToken()
        executor = ThreadPoolExecutor(
            max_workers=max(len(self.providers), 1), thread_name_prefix="sagemaker-list"
        )
        futures: Dict[ResourceKind, Future] = {}
        try:
            for kind, provider in self.providers.items():
                futures[kind] = executor.submit(self._list_kind, kind, provider, token)

            pending = set(futures.values())
            while pending:
                if token.cancelled:
                    logger.warning(f"Listing cancelled: {token.reason}")
                    raise OperationCancelled(token.reason or "operation cancelled")
                _, pending = wait(pending, timeout=self.poll_interval, return_when=FIRST_COMPLETED)

            # A provider may have failed after the token fired
            if token.cancelled:
                raise OperationCancelled(token.reason or "operation cancelled")
        finally:
            # Stragglers are signalled through the token, never joined here
            executor.shutdown(wait=False, cancel_futures=True)

        return self._combine(futures, token)

    def _combine(
        self, futures: Mapping[ResourceKind, Future], token: CancellationToken
    ) -> AggregateResult:
        result = AggregateResult()
        tracker = WarningTracker()

        for kind in KIND_PRIORITY:
            future = futures.get(kind)
            if future is None:
                continue

            error = future.exception()
            if error is None:
                records = future.result()
                logger.debug(f"Listed {len(records)} {_PLURAL_LABELS[kind]}")
                result.resources.extend(records)
                continue

            classified: ClassifiedError = classify_error(error)
            if isinstance(classified, OperationCancelled):
                raise OperationCancelled(token.reason or classified.reason)

            result.errors[kind] = classified
            if isinstance(classified, NonRetryableError):
                if result.fatal_error is None:
                    result.fatal_error = classified
                    result.fatal_kind = kind
                logger.error(f"Failed to list {_PLURAL_LABELS[kind]}: {classified}")
            else:
                tracker.track(_PLURAL_LABELS[kind], describe_error(classified))
                logger.warning(f"Giving up on {_PLURAL_LABELS[kind]} after retries: {classified}")

        for message, sources in tracker.items():
            result.warnings.append(f"Retryable error listing {', '.join(sources)}: {message}")
        return result


def fatal_message(result: AggregateResult) -> Optional[str]:
    """'failed to list <kind>: <cause>' for a result carrying a fatal error."""
    if result.fatal_error is None:
        return None
    label = _PLURAL_LABELS[result.fatal_kind] if result.fatal_kind else "resources"
    return f"failed to list {label}: {describe_error(result.fatal_error)}"
