"""AWS Lambda entry point serving the proxy routes through API Gateway."""

import json
import os
from datetime import UTC, datetime
from typing import Any

from .handlers import Services, dispatch
from .logging_config import create_execution_logger, setup_structured_logging

# Setup structured logging
setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}

# Reused across warm invocations
_services: Services | None = None


def get_services(execution_id: str) -> Services:
    global _services
    if _services is None:
        _services = Services(execution_id=execution_id)
    return _services


def _request_method(event: dict[str, Any]) -> str:
    method = event.get("httpMethod")
    if not method:
        method = event.get("requestContext", {}).get("http", {}).get("method", "GET")
    return method.upper()


def _request_params(event: dict[str, Any], method: str) -> dict[str, Any]:
    if method == "POST":
        body = event.get("body") or "{}"
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return {}
        return payload if isinstance(payload, dict) else {}
    return dict(event.get("queryStringParameters") or {})


def _response(status_code: int, body: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **CORS_HEADERS},
        "body": json.dumps(body) if body is not None else "",
    }


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Route an API Gateway (REST or HTTP API) event to the proxy handlers.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response with CORS headers
    """
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)

    method = _request_method(event)
    path = event.get("path") or event.get("rawPath") or "/"

    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        http_method=method,
        path=path,
    )

    if method == "OPTIONS":
        return _response(200, None)

    try:
        services = get_services(execution_id)
    except Exception as e:
        error_msg = f"Failed to initialize services: {e}"
        main_logger.error(error_msg, error=str(e))
        main_logger.log_execution_end(success=False, error=error_msg)
        return _response(500, {"error": "Internal server error", "details": str(e)})

    status_code, body = dispatch(services, method, path, _request_params(event, method))
    main_logger.log_execution_end(success=status_code < 500, status_code=status_code)
    return _response(status_code, body)
