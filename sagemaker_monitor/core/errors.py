"""
Error classification for SageMaker API calls.

Every failure raised by a provider is turned into one of three tagged
variants which carry the original exception as ``cause``:

* ``RetryableError``    - throttling, timeouts, transient network failures
* ``NonRetryableError`` - authorization/validation failures and anything unknown
* ``OperationCancelled`` - caller-initiated abort, never blamed on a provider
"""

import socket
from typing import Dict, List, Optional, Tuple

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectionError as BotoConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

RETRYABLE_ERROR_CODES = frozenset(
    {
        "RequestTimeout",
        "RequestTimeoutException",
        "ThrottlingException",
        "Throttling",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "TransactionInProgressException",
    }
)

NON_RETRYABLE_ERROR_CODES = frozenset(
    {
        "ValidationError",
        "ValidationException",
        "AccessDeniedException",
        "AccessDenied",
        "InvalidParameterException",
    }
)

NETWORK_ERROR_MESSAGES = (
    "connection refused",
    "connection reset",
    "network is unreachable",
    "timeout",
    "i/o timeout",
)

# botocore's ConnectionError covers EndpointConnectionError and ConnectTimeoutError
TRANSPORT_ERROR_TYPES = (
    BotoConnectionError,
    ConnectionClosedError,
    ReadTimeoutError,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)


class ClassifiedError(Exception):
    """Base class of the classification variants."""

    retryable = False

    def __init__(self, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message or (str(cause) if cause is not None else self.__class__.__name__))


class RetryableError(ClassifiedError):
    """Failure expected to resolve itself if the call is attempted again."""

    retryable = True


class NonRetryableError(ClassifiedError):
    """Failure for which retrying is futile."""


class OperationCancelled(ClassifiedError):
    """The caller's cancellation signal fired."""

    def __init__(self, reason: str = "operation cancelled"):
        self.reason = reason
        super().__init__(cause=None, message=reason)


def error_code(err: BaseException) -> str:
    """Machine-readable error code of a botocore ``ClientError``, or ''."""
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code", "") or ""
    return ""


def is_network_error(err: BaseException) -> bool:
    """Heuristic: does the error look like a transient transport failure?"""
    if isinstance(err, TRANSPORT_ERROR_TYPES):
        return True
    message = str(err).lower()
    return any(fragment in message for fragment in NETWORK_ERROR_MESSAGES)


def classify_error(err: BaseException) -> ClassifiedError:
    """
    Tag a provider failure as retryable or not.

    Structured error codes take precedence over the network heuristic;
    unrecognized errors are non-retryable. Already classified errors are
    returned unchanged.
    """
    if isinstance(err, ClassifiedError):
        return err

    code = error_code(err)
    if code in RETRYABLE_ERROR_CODES:
        return RetryableError(err)
    if code in NON_RETRYABLE_ERROR_CODES:
        return NonRetryableError(err)

    if is_network_error(err):
        return RetryableError(err)

    return NonRetryableError(err)


def _credential_message(err: BaseException) -> str:
    if isinstance(err, NoCredentialsError):
        return "No AWS credentials found. Configure them with the AWS CLI, environment variables or an IAM role."

    text = str(err)
    if "no EC2 IMDS role found" in text:
        return "No AWS role configured. Set credentials using AWS CLI or environment variables."
    if "failed to refresh cached credentials" in text:
        return "Credential refresh failed. Verify AWS configuration and permissions."
    if "failed to get API token" in text:
        return "Unable to obtain AWS API token. Check network and authentication settings."
    if error_code(err) == "ExpiredToken" or "ExpiredToken" in text:
        return "AWS credentials have expired. Please refresh your credentials."
    return ""


def describe_error(err: BaseException) -> str:
    """User facing description of an error, with credential problems rephrased."""
    cause = err.cause if isinstance(err, ClassifiedError) and err.cause is not None else err
    friendly = _credential_message(cause)
    if friendly:
        return f"AWS Authentication Error: {friendly}"
    return str(cause)


class WarningTracker:
    """
    At-most-once warning policy.

    Each distinct warning text is surfaced once; later sources reporting the
    same text are folded into the first occurrence instead of repeating it.
    """

    def __init__(self) -> None:
        self._sources: Dict[str, List[str]] = {}
        self.suppressed = 0

    def track(self, source: str, message: str) -> bool:
        """Record ``message`` from ``source``; True if the text is new."""
        if message in self._sources:
            self._sources[message].append(source)
            self.suppressed += 1
            return False
        self._sources[message] = [source]
        return True

    def items(self) -> List[Tuple[str, List[str]]]:
        """(message, sources) pairs in first-seen order."""
        return [(message, list(sources)) for message, sources in self._sources.items()]
