"""
AWS Client Module - SageMaker API Integration
Lists live endpoints, notebook instances and Studio apps and maps them to ResourceRecords.
"""

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging
import threading

from .errors import error_code
from .models import ResourceKind, ResourceRecord, utcnow
from .retry import CancellationToken

logger = logging.getLogger(__name__)

IN_SERVICE = "InService"

# Error codes meaning "credentials/configuration unusable" rather than a hard failure
AUTH_FAILURE_CODES = frozenset(
    {
        "AccessDeniedException",
        "InvalidClientTokenId",
        "SignatureDoesNotMatch",
        "ExpiredToken",
        "UnrecognizedClientException",
    }
)

ResourceProvider = Callable[[CancellationToken], List[ResourceRecord]]


class SageMakerClient:
    """SageMaker client exposing one list call per resource kind."""

    def __init__(
        self,
        region: Optional[str] = None,
        profile_name: Optional[str] = None,
        role_arn: Optional[str] = None,
        detailed: bool = False,
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
    ):
        """
        Initialize SageMaker client with appropriate credentials.

        Args:
            region: AWS region (None uses the AWS CLI configuration)
            profile_name: AWS CLI profile name for local development
            role_arn: IAM role ARN to assume for cross-account access
            detailed: Fetch instance counts, types and volume sizes with extra describe calls
            connect_timeout: Socket connect timeout in seconds
            read_timeout: Socket read timeout in seconds
        """
        self.region_name = region
        self.profile_name = profile_name
        self.role_arn = role_arn
        self.detailed = detailed
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._session = None
        self._sagemaker_client = None
        # boto3 sessions are not thread-safe to create; list calls run on worker threads
        self._lock = threading.RLock()

    @property
    def session(self) -> boto3.Session:
        """Get or create boto3 session."""
        with self._lock:
            if not self._session:
                self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        if self.profile_name:
            return boto3.Session(profile_name=self.profile_name, region_name=self.region_name)

        if self.role_arn:
            sts = boto3.client("sts")
            assumed_role = sts.assume_role(
                RoleArn=self.role_arn, RoleSessionName="sagemaker-cost-monitor"
            )
            credentials = assumed_role["Credentials"]
            return boto3.Session(
                aws_access_key_id=credentials["AccessKeyId"],
                aws_secret_access_key=credentials["SecretAccessKey"],
                aws_session_token=credentials["SessionToken"],
                region_name=self.region_name,
            )

        return boto3.Session(region_name=self.region_name)

    @property
    def sagemaker(self):
        """Get SageMaker client; botocore's own retries are off, the Retrier owns retrying."""
        with self._lock:
            if not self._sagemaker_client:
                self._sagemaker_client = self.session.client(
                    "sagemaker",
                    config=BotoConfig(
                        connect_timeout=self.connect_timeout,
                        read_timeout=self.read_timeout,
                        retries={"total_max_attempts": 1, "mode": "standard"},
                    ),
                )
        return self._sagemaker_client

    @property
    def region(self) -> str:
        return self.region_name or self.session.region_name or "unknown"

    def validate_configuration(self) -> bool:
        """
        Cheap check that credentials work: list at most one Studio domain.

        Returns:
            False for authorization/credential failures, True otherwise

        Raises:
            ClientError: Any other API failure
        """
        try:
            self.sagemaker.list_domains(MaxResults=1)
        except ClientError as e:
            if error_code(e) in AUTH_FAILURE_CODES:
                logger.warning(f"SageMaker configuration is not usable: {e}")
                return False
            raise
        return True

    def providers(self) -> Dict[ResourceKind, ResourceProvider]:
        """One list call per resource kind, as consumed by the aggregator."""
        # Build the service client before the calls fan out to worker threads
        self.sagemaker
        return {
            ResourceKind.ENDPOINT: self.list_endpoints,
            ResourceKind.NOTEBOOK: self.list_notebooks,
            ResourceKind.APP: self.list_apps,
        }

    def _paginate(
        self, operation: str, key: str, token: Optional[CancellationToken]
    ) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        paginator = self.sagemaker.get_paginator(operation)
        for page in paginator.paginate():
            if token is not None:
                token.raise_if_cancelled()
            items.extend(page.get(key, []))
        return items

    def list_endpoints(self, token: Optional[CancellationToken] = None) -> List[ResourceRecord]:
        """Endpoints currently InService."""
        records = []
        for endpoint in self._paginate("list_endpoints", "Endpoints", token):
            if endpoint.get("EndpointStatus") != IN_SERVICE:
                continue

            name = endpoint.get("EndpointName", "")
            instance_type, instance_count = "unknown", 1
            if self.detailed and name:
                instance_type, instance_count = self._endpoint_capacity(name)

            records.append(
                ResourceRecord(
                    kind=ResourceKind.ENDPOINT,
                    name=name,
                    status=endpoint["EndpointStatus"],
                    instance_type=instance_type,
                    instance_count=instance_count,
                    creation_time=_creation_time(endpoint),
                )
            )

        logger.info(f"Found {len(records)} in-service endpoints")
        return records

    def _endpoint_capacity(self, endpoint_name: str):
        """(instance type, total instance count) from the endpoint's production variants."""
        endpoint = self.sagemaker.describe_endpoint(EndpointName=endpoint_name)
        config = self.sagemaker.describe_endpoint_config(
            EndpointConfigName=endpoint["EndpointConfigName"]
        )
        variants = config.get("ProductionVariants", [])
        if not variants:
            return "unknown", 1

        running = {
            v.get("VariantName"): v.get("CurrentInstanceCount")
            for v in endpoint.get("ProductionVariants", [])
        }
        count = 0
        for variant in variants:
            current = running.get(variant.get("VariantName"))
            count += current if current is not None else variant.get("InitialInstanceCount", 1)

        return variants[0].get("InstanceType", "unknown"), max(count, 1)

    def list_notebooks(self, token: Optional[CancellationToken] = None) -> List[ResourceRecord]:
        """Notebook instances currently InService."""
        records = []
        for notebook in self._paginate("list_notebook_instances", "NotebookInstances", token):
            if notebook.get("NotebookInstanceStatus") != IN_SERVICE:
                continue

            name = notebook.get("NotebookInstanceName", "")
            volume_size = None
            if self.detailed and name:
                details = self.sagemaker.describe_notebook_instance(NotebookInstanceName=name)
                volume_size = details.get("VolumeSizeInGB")

            records.append(
                ResourceRecord(
                    kind=ResourceKind.NOTEBOOK,
                    name=name,
                    status=notebook["NotebookInstanceStatus"],
                    instance_type=notebook.get("InstanceType", "unknown"),
                    creation_time=_creation_time(notebook),
                    volume_size_gb=volume_size,
                )
            )

        logger.info(f"Found {len(records)} in-service notebook instances")
        return records

    def list_apps(self, token: Optional[CancellationToken] = None) -> List[ResourceRecord]:
        """Studio/Canvas apps currently InService; apps without a name are skipped."""
        records = []
        for app in self._paginate("list_apps", "Apps", token):
            if app.get("Status") != IN_SERVICE:
                continue

            name = app.get("AppName") or ""
            if not name:
                logger.debug(f"Skipping app without a name: {app}")
                continue

            resource_spec = app.get("ResourceSpec") or {}
            records.append(
                ResourceRecord(
                    kind=ResourceKind.APP,
                    name=name,
                    status=app["Status"],
                    instance_type=resource_spec.get("InstanceType", ""),
                    creation_time=_creation_time(app),
                    owner=app.get("UserProfileName") or app.get("SpaceName"),
                    app_type=app.get("AppType"),
                )
            )

        logger.info(f"Found {len(records)} in-service Studio apps")
        return records


def _creation_time(item: Dict[str, Any]) -> datetime:
    # boto3 returns tz-aware datetimes; a missing value counts as "just created"
    return item.get("CreationTime") or utcnow()
