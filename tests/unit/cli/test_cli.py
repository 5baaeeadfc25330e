"""Unit tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from conftest import client_error, make_record
from sagemaker_monitor.cli.cli import EXIT_CANCELLED, EXIT_FAILURE, EXIT_OK, cli
from sagemaker_monitor.core.config import get_config, reset_config
from sagemaker_monitor.core.errors import NonRetryableError, OperationCancelled
from sagemaker_monitor.core.models import AggregateResult, ResourceKind

ENV_VARS = [
    'AWS_REGION', 'AWS_DEFAULT_REGION', 'AWS_PROFILE', 'AWS_ROLE_ARN', 'LOG_LEVEL', 'PRICING_FILE',
    'SAGEMAKER_MONITOR_TIMEOUT', 'SAGEMAKER_MONITOR_DETAILED', 'SAGEMAKER_MONITOR_LOG_FILE',
]


@pytest.fixture
def runner(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    with patch('sagemaker_monitor.cli.cli.setup_logging'):
        yield CliRunner()
    reset_config()


@pytest.fixture
def client_cls():
    with patch('sagemaker_monitor.cli.cli.SageMakerClient') as mock_cls:
        client = mock_cls.return_value
        client.region = 'us-east-1'
        client.validate_configuration.return_value = True
        yield mock_cls


@pytest.fixture
def aggregator_cls():
    with patch('sagemaker_monitor.cli.cli.ResourceAggregator') as mock_cls:
        yield mock_cls


@pytest.fixture
def populated_result():
    return AggregateResult(resources=[
        make_record(ResourceKind.ENDPOINT, 'fraud-detector', instance_count=2),
        make_record(ResourceKind.NOTEBOOK, 'research-nb', volume_size_gb=20),
        make_record(ResourceKind.APP, 'default', owner='alice', app_type='JupyterServer'),
    ])


class TestScanCommand:
    """Test cases for `scan`."""

    def test_table_output(self, runner, client_cls, aggregator_cls, populated_result):
        aggregator_cls.return_value.run.return_value = populated_result

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_OK
        assert 'fraud-detector' in result.output
        assert 'alice/JupyterServer' in result.output
        assert 'Monthly estimate' in result.output

    def test_json_output(self, runner, client_cls, aggregator_cls, populated_result):
        aggregator_cls.return_value.run.return_value = populated_result

        result = runner.invoke(cli, ['--json', 'scan'], obj={})

        assert result.exit_code == EXIT_OK
        payload = json.loads(result.stdout)
        assert [r['resourceType'] for r in payload['resources']] == ['Endpoint', 'Notebook', 'Studio']
        endpoint = payload['resources'][0]
        assert endpoint['instanceCount'] == 2
        assert endpoint['hourlyRate'] == 0.1
        assert endpoint['projectedMonthlyCost'] == 73.0
        assert payload['resources'][1]['storageCost'] == 2.0
        assert payload['metadata']['region'] == 'us-east-1'

    def test_no_resources(self, runner, client_cls, aggregator_cls):
        aggregator_cls.return_value.run.return_value = AggregateResult()

        result = runner.invoke(cli, ['--json', 'scan'], obj={})

        assert result.exit_code == EXIT_OK
        payload = json.loads(result.stdout)
        assert payload['resources'] == []
        assert payload['metadata']['message'] == 'No resources found'

    def test_warnings_do_not_fail_the_scan(self, runner, client_cls, aggregator_cls, populated_result):
        populated_result.warnings.append('Retryable error listing notebooks: Rate exceeded')
        aggregator_cls.return_value.run.return_value = populated_result

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_OK
        assert 'Retryable error listing notebooks: Rate exceeded' in result.output

    def test_fatal_error_exits_with_failure(self, runner, client_cls, aggregator_cls, populated_result):
        populated_result.fatal_error = NonRetryableError(client_error('AccessDeniedException', message='denied'))
        populated_result.fatal_kind = ResourceKind.NOTEBOOK
        aggregator_cls.return_value.run.return_value = populated_result

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_FAILURE
        assert 'Error: failed to list notebooks' in result.output
        assert 'fraud-detector' not in result.output

    def test_cancellation_exit_code(self, runner, client_cls, aggregator_cls):
        aggregator_cls.return_value.run.side_effect = OperationCancelled('deadline exceeded')

        result = runner.invoke(cli, ['scan', '--timeout', '5'], obj={})

        assert result.exit_code == EXIT_CANCELLED
        assert 'deadline exceeded' in result.output

    def test_keyboard_interrupt_cancels_token(self, runner, client_cls, aggregator_cls):
        aggregator_cls.return_value.run.side_effect = KeyboardInterrupt

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_CANCELLED
        token = aggregator_cls.return_value.run.call_args[0][0]
        assert token.cancelled
        assert token.reason == 'interrupted by user'

    def test_timeout_sets_token_deadline(self, runner, client_cls, aggregator_cls):
        aggregator_cls.return_value.run.return_value = AggregateResult()

        runner.invoke(cli, ['scan', '--timeout', '5'], obj={})

        token = aggregator_cls.return_value.run.call_args[0][0]
        assert 0 < token.remaining() <= 5

    def test_invalid_credentials_report_nothing(self, runner, client_cls, aggregator_cls):
        client_cls.return_value.validate_configuration.return_value = False

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_OK
        assert 'No SageMaker resources found in region us-east-1' in result.output
        aggregator_cls.return_value.run.assert_not_called()

    def test_validation_error_exits_with_failure(self, runner, client_cls, aggregator_cls):
        client_cls.return_value.validate_configuration.side_effect = client_error(
            'ValidationException', operation='ListDomains'
        )

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_FAILURE
        assert 'configuration validation failed' in result.output

    def test_options_reach_the_client(self, runner, client_cls, aggregator_cls):
        aggregator_cls.return_value.run.return_value = AggregateResult()

        runner.invoke(cli, ['--region', 'eu-west-1', '--profile', 'ml', 'scan', '--detailed'], obj={})

        kwargs = client_cls.call_args[1]
        assert kwargs['region'] == 'eu-west-1'
        assert kwargs['profile_name'] == 'ml'
        assert kwargs['detailed'] is True

    def test_pricing_file_is_applied(self, runner, client_cls, aggregator_cls, populated_result, tmp_path):
        pricing_file = tmp_path / 'prices.json'
        pricing_file.write_text(json.dumps({'endpoint': {'ml.t3.medium': 1.0}}))
        aggregator_cls.return_value.run.return_value = populated_result

        result = runner.invoke(cli, ['--json', 'scan', '--pricing-file', str(pricing_file)], obj={})

        payload = json.loads(result.stdout)
        assert payload['resources'][0]['hourlyRate'] == 2.0

    def test_invalid_pricing_file(self, runner, client_cls, aggregator_cls, tmp_path):
        pricing_file = tmp_path / 'prices.json'
        pricing_file.write_text('{"training": {"ml.t3.medium": 1.0}}')

        result = runner.invoke(cli, ['scan', '--pricing-file', str(pricing_file)], obj={})

        assert result.exit_code == EXIT_FAILURE
        assert 'Unsupported price category' in result.output


class TestPricesCommand:
    """Test cases for `prices`."""

    def test_table(self, runner):
        result = runner.invoke(cli, ['prices'], obj={})

        assert result.exit_code == EXIT_OK
        assert 'ml.t3.medium' in result.output
        assert 'EBS storage' in result.output

    def test_json(self, runner):
        result = runner.invoke(cli, ['--json', 'prices'], obj={})

        payload = json.loads(result.stdout)
        assert payload['hourly']['notebook']['ml.t3.medium'] == 0.05
        assert payload['storage'] == {'ebs': 0.1}


class TestGroupOptions:

    def test_invalid_log_level_is_rejected(self, runner):
        result = runner.invoke(cli, ['--log-level', 'LOUD', 'prices'], obj={})

        assert result.exit_code != EXIT_OK

    def test_invalid_environment(self, runner, monkeypatch):
        monkeypatch.setenv('AWS_ROLE_ARN', 'bogus')

        result = runner.invoke(cli, ['prices'], obj={})

        assert result.exit_code == EXIT_FAILURE
        assert 'Invalid configuration' in result.output

    def test_options_are_published_as_process_config(self, runner):
        runner.invoke(cli, ['--region', 'eu-central-1', '--log-level', 'debug', 'prices'], obj={})

        config = get_config()
        assert config.aws.region == 'eu-central-1'
        assert config.app.log_level == 'DEBUG'

    def test_no_ansi_codes_when_stdout_is_not_a_terminal(self, runner, client_cls, aggregator_cls,
                                                         populated_result):
        aggregator_cls.return_value.run.return_value = populated_result

        result = runner.invoke(cli, ['scan'], obj={})

        assert result.exit_code == EXIT_OK
        assert '\033[' not in result.output
