"""Configuration management for the SageMaker cost monitor."""

import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from pathlib import Path
from dotenv import load_dotenv
import logging

from .retry import RetryPolicy

logger = logging.getLogger(__name__)

ENV_PREFIX = "SAGEMAKER_MONITOR_"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class AWSConfig:
    """AWS-specific configuration."""

    region: Optional[str] = None
    profile: Optional[str] = None
    role_arn: Optional[str] = None
    connect_timeout: float = 10.0
    read_timeout: float = 30.0


@dataclass
class RetryConfig:
    """Backoff settings applied to every SageMaker list call."""

    max_attempts: int = 3
    initial_interval: float = 1.0
    max_interval: float = 30.0
    multiplier: float = 2.0
    jitter_factor: float = 0.1

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_interval=self.initial_interval,
            max_interval=self.max_interval,
            multiplier=self.multiplier,
            jitter_factor=self.jitter_factor,
        )


@dataclass
class ApplicationConfig:
    """Application-specific configuration."""

    log_level: str = "WARNING"
    log_file: Optional[str] = None
    pricing_file: Optional[str] = None
    detailed: bool = False
    # Overall deadline for one scan, in seconds (None = no deadline)
    timeout: Optional[float] = None


@dataclass
class Config:
    """Main configuration class."""

    aws: AWSConfig = field(default_factory=AWSConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    app: ApplicationConfig = field(default_factory=ApplicationConfig)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_file: Path to .env file (optional)

        Returns:
            Config instance
        """
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path(".env")
            if env_path.exists():
                load_dotenv(env_path)

        aws_config = AWSConfig(
            region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION"),
            profile=os.getenv("AWS_PROFILE"),
            role_arn=os.getenv("AWS_ROLE_ARN"),
            connect_timeout=float(os.getenv(f"{ENV_PREFIX}CONNECT_TIMEOUT", "10")),
            read_timeout=float(os.getenv(f"{ENV_PREFIX}READ_TIMEOUT", "30")),
        )

        retry_config = RetryConfig(
            max_attempts=int(os.getenv(f"{ENV_PREFIX}MAX_ATTEMPTS", "3")),
            initial_interval=float(os.getenv(f"{ENV_PREFIX}INITIAL_INTERVAL", "1.0")),
            max_interval=float(os.getenv(f"{ENV_PREFIX}MAX_INTERVAL", "30.0")),
            multiplier=float(os.getenv(f"{ENV_PREFIX}MULTIPLIER", "2.0")),
            jitter_factor=float(os.getenv(f"{ENV_PREFIX}JITTER", "0.1")),
        )

        timeout = os.getenv(f"{ENV_PREFIX}TIMEOUT")
        app_config = ApplicationConfig(
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
            log_file=os.getenv(f"{ENV_PREFIX}LOG_FILE"),
            pricing_file=os.getenv("PRICING_FILE"),
            detailed=os.getenv(f"{ENV_PREFIX}DETAILED", "false").lower() == "true",
            timeout=float(timeout) if timeout else None,
        )

        config = cls(aws=aws_config, retry=retry_config, app=app_config)

        logger.debug("Configuration loaded from environment")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "aws": {
                "region": self.aws.region,
                "profile": self.aws.profile,
                "role_arn": self.aws.role_arn,
                "connect_timeout": self.aws.connect_timeout,
                "read_timeout": self.aws.read_timeout,
            },
            "retry": {
                "max_attempts": self.retry.max_attempts,
                "initial_interval": self.retry.initial_interval,
                "max_interval": self.retry.max_interval,
                "multiplier": self.retry.multiplier,
                "jitter_factor": self.retry.jitter_factor,
            },
            "app": {
                "log_level": self.app.log_level,
                "log_file": self.app.log_file,
                "pricing_file": self.app.pricing_file,
                "detailed": self.app.detailed,
                "timeout": self.app.timeout,
            },
        }

    def validate(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if valid, raises ValueError if not
        """
        if self.aws.role_arn and not self.aws.role_arn.startswith("arn:aws:iam::"):
            raise ValueError("Invalid AWS role ARN format")

        if self.aws.connect_timeout <= 0 or self.aws.read_timeout <= 0:
            raise ValueError("AWS socket timeouts must be positive")

        # RetryPolicy enforces its own invariants
        self.retry.to_policy()

        if self.app.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.app.log_level}")

        if self.app.timeout is not None and self.app.timeout <= 0:
            raise ValueError("Scan timeout must be positive")

        return True


_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config.from_env()
        try:
            _config.validate()
        except ValueError as e:
            logger.error(f"Configuration validation failed: {e}")
            # Use defaults if validation fails
            _config = Config()
    return _config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to set
    """
    global _config
    config.validate()
    _config = config


def reset_config() -> None:
    """Reset configuration to None (useful for testing)."""
    global _config
    _config = None
