"""Feedback Service - validate, encrypt, store, respond

Self-Explanatory: One entry point (handle) turning a FeedbackRequest into a FeedbackResponse.
Why: The Lambda handler and the FastAPI app share exactly the same rules.
How: Method dispatch -> presence checks -> cipher + store -> uniform JSON response.

Methods:
- POST: upsert {id, comment, rating}; comment is encrypted before store.put
- GET ?id=: fetch and decrypt
- DELETE ?id=: remove (idempotent)
- anything else: 405

Every failure not raised deliberately below is caught in handle() and
becomes a 500; nothing is retried.
"""

import json
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import structlog

from feedback_vault.feedback.errors import (
    FeedbackError,
    InternalError,
    MethodNotAllowed,
    NotFound,
    ValidationError,
)
from feedback_vault.feedback.models import FeedbackRequest, FeedbackResponse
from feedback_vault.security.cipher import FieldCipher, MalformedCiphertext
from feedback_vault.store.backends import FeedbackStore
from feedback_vault.utils import metrics

logger = structlog.get_logger()

REQUIRED_FIELDS = ("id", "comment", "rating")
DEFAULT_USER_AGENT = "Unknown"


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _reject_constant(name: str):
    raise ValueError(f"Unsupported JSON constant: {name}")


class FeedbackService:
    """Stateless request handler; cipher and store are injected once per process"""

    def __init__(
        self,
        cipher: FieldCipher,
        store: FeedbackStore,
        expose_error_details: bool = True,
        clock: Callable[[], str] = utc_timestamp,
    ):
        self.cipher = cipher
        self.store = store
        self.expose_error_details = expose_error_details
        self.clock = clock
        self._routes = {
            "POST": self.create,
            "GET": self.read,
            "DELETE": self.delete,
        }

    def handle(self, request: FeedbackRequest) -> FeedbackResponse:
        """Dispatch one request; never raises"""
        started_at = time.time()
        method = (request.method or "").upper()
        log = logger.bind(method=method, feedback_id=self._target_id(request))
        if request.identity is not None:
            log = log.bind(principal_id=request.identity.principal_id)

        try:
            route = self._routes.get(method)
            if route is None:
                raise MethodNotAllowed("Method Not Allowed")
            response = route(request)
            log.info("Feedback request handled", status=response.status_code)
        except InternalError as e:
            response = self.internal_error(e, log)
        except FeedbackError as e:
            log.info("Feedback request rejected", status=e.status_code, reason=e.message)
            response = FeedbackResponse.from_payload(e.status_code, {"message": e.message})
        except Exception as e:
            response = self.internal_error(e, log)

        metrics.record_request(method, response.status_code, started_at)
        return response

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(self, request: FeedbackRequest) -> FeedbackResponse:
        body = self._parse_body(request.body)
        if any(_is_blank(body.get(name)) for name in REQUIRED_FIELDS):
            raise ValidationError("Missing required fields (id, comment, rating)")
        if not isinstance(body["comment"], str):
            raise ValidationError("Field comment must be a string")

        try:
            encrypted_comment = self.cipher.encrypt(body["comment"])
        except Exception:
            metrics.record_cipher_failure("encrypt")
            raise

        item = {
            "id": body["id"],
            "rating": body["rating"],
            "comment": encrypted_comment,
            "timestamp": self.clock(),
            "userAgent": request.header("User-Agent") or DEFAULT_USER_AGENT,
        }
        self._store_call("put", self.store.put, body["id"], item)
        return FeedbackResponse.from_payload(200, {"message": "Feedback submitted successfully."})

    def read(self, request: FeedbackRequest) -> FeedbackResponse:
        feedback_id = self._require_id(request)
        item = self._store_call("get", self.store.get, feedback_id)
        if item is None:
            raise NotFound("Feedback not found")

        try:
            comment = self.cipher.decrypt(item.get("comment"))
        except MalformedCiphertext as e:
            metrics.record_cipher_failure("decrypt")
            raise InternalError(f"Stored comment could not be decrypted: {e}") from e

        return FeedbackResponse.from_payload(200, {
            "id": item.get("id"),
            "rating": item.get("rating"),
            "comment": comment,
            "timestamp": item.get("timestamp"),
            "userAgent": item.get("userAgent"),
        })

    def delete(self, request: FeedbackRequest) -> FeedbackResponse:
        feedback_id = self._require_id(request)
        self._store_call("delete", self.store.delete, feedback_id)
        return FeedbackResponse.from_payload(200, {"message": "Feedback deleted successfully."})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_body(raw: Optional[str]) -> Dict[str, Any]:
        # Decimal floats: boto3 refuses Python floats for DynamoDB numbers.
        # NaN/Infinity are not JSON and could never be served back.
        body = json.loads(raw or "{}", parse_float=Decimal, parse_constant=_reject_constant)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body

    @staticmethod
    def _require_id(request: FeedbackRequest) -> str:
        feedback_id = request.query.get("id")
        if _is_blank(feedback_id):
            raise ValidationError("Missing id parameter")
        return feedback_id

    @staticmethod
    def _target_id(request: FeedbackRequest) -> Optional[str]:
        return request.query.get("id")

    @staticmethod
    def _store_call(operation: str, func: Callable, *args):
        try:
            return func(*args)
        except Exception:
            metrics.record_store_error(operation)
            raise

    def internal_error(self, error: Exception, log=None) -> FeedbackResponse:
        log = log or logger
        log.error(
            "Internal server error",
            error=str(error),
            error_type=type(error).__name__,
            exc_info=True,
        )
        payload = {"message": "Internal server error"}
        if self.expose_error_details:
            payload["error"] = str(error)
        return FeedbackResponse.from_payload(500, payload)
