"""Gemini API key resolution from the environment or AWS Secrets Manager."""

import json

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Config
from .errors import ConfigurationError
from .logging_config import create_execution_logger

SECRET_KEY_FIELDS = ["api_key", "google_api_key", "gemini_api_key", "key"]


def get_secret_api_key(
    secret_name: str, aws_region: str, execution_id: str | None = None
) -> str:
    """
    Retrieve the Gemini API key from AWS Secrets Manager.

    Supports both plain string and JSON secret formats. The key itself is
    never logged.

    Args:
        secret_name: Name of the secret in Secrets Manager
        aws_region: AWS region for Secrets Manager client
        execution_id: Execution ID for logging context

    Returns:
        The API key

    Raises:
        ConfigurationError: If the secret cannot be read or holds no key
    """
    secrets_logger = create_execution_logger("secrets_manager", execution_id)

    if not secret_name or not secret_name.strip():
        raise ConfigurationError("Secret name cannot be empty")

    if not aws_region or not aws_region.strip():
        raise ConfigurationError("AWS region cannot be empty")

    try:
        secrets_logger.info(f"Retrieving API key from Secrets Manager: {secret_name}")
        secrets_client = boto3.client("secretsmanager", region_name=aws_region)
        response = secrets_client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        secrets_logger.error(
            f"AWS Secrets Manager error retrieving {secret_name}: {error_code}"
        )
        raise ConfigurationError(
            f"Failed to retrieve secret {secret_name}",
            details={"error_code": error_code},
        ) from e
    except BotoCoreError as e:
        secrets_logger.error(
            f"AWS client error retrieving {secret_name}: {type(e).__name__}"
        )
        raise ConfigurationError(f"Failed to retrieve secret {secret_name}") from e

    secret_value = (response.get("SecretString") or "").strip()
    if not secret_value:
        raise ConfigurationError(f"Secret {secret_name} contains empty value")

    try:
        secret_data = json.loads(secret_value)
    except json.JSONDecodeError:
        secrets_logger.info("Retrieved API key from plain text secret")
        return secret_value

    if not isinstance(secret_data, dict):
        raise ConfigurationError(f"JSON secret {secret_name} must be an object")

    for key in SECRET_KEY_FIELDS:
        value = secret_data.get(key)
        if isinstance(value, str) and value.strip():
            secrets_logger.info("Retrieved API key from JSON secret", secret_field=key)
            return value.strip()

    raise ConfigurationError(f"No API key found in JSON secret {secret_name}")


def resolve_api_key(config: Config, execution_id: str | None = None) -> str:
    """GOOGLE_API_KEY wins; otherwise GEMINI_SECRET_NAME is read when set.

    Returns an empty string when neither is configured, so generation calls
    fail with ConfigurationError instead of the whole service refusing to
    start.
    """
    if config.google_api_key.strip():
        return config.google_api_key.strip()
    if config.gemini_secret_name.strip():
        return get_secret_api_key(
            config.gemini_secret_name, config.aws_region, execution_id
        )
    return ""
