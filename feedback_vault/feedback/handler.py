"""Lambda proxy entrypoint for the feedback API

Maps an API Gateway REST (proxy integration) event onto a FeedbackRequest and
returns the service's response as {statusCode, headers, body}.
"""

import base64
from typing import Any, Dict

import structlog

from feedback_vault.feedback.models import FeedbackRequest, Identity

logger = structlog.get_logger()


def _identity_from(event: Dict[str, Any]):
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    principal_id = authorizer.get("principalId")
    if not principal_id:
        return None
    attributes = {k: v for k, v in authorizer.items() if k not in ("principalId", "integrationLatency")}
    return Identity(principal_id=principal_id, attributes=attributes)


def request_from_event(event: Dict[str, Any]) -> FeedbackRequest:
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")

    return FeedbackRequest(
        method=event.get("httpMethod") or "",
        headers={k: v for k, v in (event.get("headers") or {}).items() if v is not None},
        query={k: v for k, v in (event.get("queryStringParameters") or {}).items() if v is not None},
        body=body,
        identity=_identity_from(event),
    )


def handler(event, context):
    from feedback_vault.bootstrap import get_service

    service = get_service()
    logger.info(
        "Received event",
        method=event.get("httpMethod"),
        path=event.get("path"),
        request_id=(event.get("requestContext") or {}).get("requestId"),
    )
    try:
        request = request_from_event(event)
    except (ValueError, TypeError) as e:
        # undecodable body; still answer with a proxy-shaped 500
        return service.internal_error(e).to_dict()
    return service.handle(request).to_dict()
