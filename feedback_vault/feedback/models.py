"""Feedback request/response models shared by the Lambda and FastAPI front doors"""

import json
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
}


class Identity(BaseModel):
    """Who the authorizer admitted"""
    principal_id: str
    attributes: Dict[str, Any] = Field(default_factory=dict)


class FeedbackRequest(BaseModel):
    """Transport-neutral view of one inbound call"""
    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    query: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    identity: Optional[Identity] = None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup"""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default


def _json_default(value: Any):
    # DynamoDB hands numbers back as Decimal
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class FeedbackResponse(BaseModel):
    status_code: int
    headers: Dict[str, str] = Field(default_factory=lambda: dict(CORS_HEADERS))
    body: str

    @classmethod
    def from_payload(cls, status_code: int, payload: Dict[str, Any]) -> "FeedbackResponse":
        return cls(
            status_code=status_code,
            body=json.dumps(payload, default=_json_default, allow_nan=False),
        )

    def payload(self) -> Dict[str, Any]:
        return json.loads(self.body)

    def to_dict(self) -> Dict[str, Any]:
        """API Gateway proxy response shape"""
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": self.body,
        }
