"""Pytest configuration and shared fixtures."""

import pytest
from unittest.mock import Mock, MagicMock
from datetime import datetime, timedelta, timezone
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from botocore.exceptions import ClientError

from sagemaker_monitor.core.aws_client import SageMakerClient
from sagemaker_monitor.core.models import ResourceKind, ResourceRecord
from sagemaker_monitor.core.pricing import PriceTable
from sagemaker_monitor.core.retry import RetryPolicy

NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def client_error(code, message='error', operation='ListEndpoints'):
    """Build a botocore ClientError with the given error code."""
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fast_policy():
    """Retry policy with millisecond backoffs."""
    return RetryPolicy(
        max_attempts=3,
        initial_interval=0.001,
        max_interval=0.01,
        multiplier=2.0,
        jitter_factor=0.1
    )


@pytest.fixture
def price_table():
    return PriceTable()


@pytest.fixture
def mock_boto3_session():
    """Mock boto3 session."""
    session = MagicMock()
    session.region_name = 'us-east-1'
    return session


@pytest.fixture
def mock_sagemaker_client(mock_boto3_session):
    """SageMaker client with a mocked boto3 session and service client."""
    client = SageMakerClient(region='us-east-1')
    client._session = mock_boto3_session
    client._sagemaker_client = Mock()
    return client


def paginate_with(mock_client, pages_by_operation):
    """Make mock_client.get_paginator(op).paginate() yield the given pages."""
    def get_paginator(operation):
        paginator = Mock()
        paginator.paginate.return_value = pages_by_operation.get(operation, [])
        return paginator

    mock_client.get_paginator.side_effect = get_paginator


@pytest.fixture
def sample_endpoints():
    """ListEndpoints page contents."""
    return [
        {
            'EndpointName': 'fraud-detector',
            'EndpointStatus': 'InService',
            'CreationTime': NOW - timedelta(hours=5)
        },
        {
            'EndpointName': 'old-model',
            'EndpointStatus': 'Failed',
            'CreationTime': NOW - timedelta(days=3)
        }
    ]


@pytest.fixture
def sample_notebooks():
    """ListNotebookInstances page contents."""
    return [
        {
            'NotebookInstanceName': 'research-nb',
            'NotebookInstanceStatus': 'InService',
            'InstanceType': 'ml.t3.medium',
            'CreationTime': NOW - timedelta(days=2)
        },
        {
            'NotebookInstanceName': 'stopped-nb',
            'NotebookInstanceStatus': 'Stopped',
            'InstanceType': 'ml.m5.xlarge',
            'CreationTime': NOW - timedelta(days=10)
        }
    ]


@pytest.fixture
def sample_apps():
    """ListApps page contents."""
    return [
        {
            'AppName': 'default',
            'AppType': 'JupyterServer',
            'UserProfileName': 'alice',
            'Status': 'InService',
            'CreationTime': NOW - timedelta(hours=30),
            'ResourceSpec': {'InstanceType': 'system'}
        },
        {
            'AppName': 'canvas-app',
            'AppType': 'Canvas',
            'UserProfileName': 'bob',
            'Status': 'InService',
            'CreationTime': NOW - timedelta(hours=2),
            'ResourceSpec': {'InstanceType': 'ml.m5.xlarge'}
        },
        {
            'AppType': 'KernelGateway',
            'UserProfileName': 'carol',
            'Status': 'InService',
            'CreationTime': NOW - timedelta(hours=1)
        }
    ]


def make_record(kind, name, instance_type='ml.t3.medium', hours=1.0, **kwargs):
    """ResourceRecord created `hours` before NOW."""
    return ResourceRecord(
        kind=kind,
        name=name,
        status='InService',
        instance_type=instance_type,
        creation_time=NOW - timedelta(hours=hours),
        **kwargs
    )


@pytest.fixture
def endpoint_record():
    return make_record(ResourceKind.ENDPOINT, 'fraud-detector', instance_count=2)


@pytest.fixture
def notebook_record():
    return make_record(ResourceKind.NOTEBOOK, 'research-nb', volume_size_gb=100)
