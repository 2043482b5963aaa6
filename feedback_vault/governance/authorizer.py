"""Governance Authorizer - pluggable credential check in front of the feedback API

Self-Explanatory: Verify a bearer credential and attach an identity, or reject.
Why: The deployed stack gates every call through an API Gateway authorizer.
How: CredentialVerifier seam; allow-all placeholder by default, Cognito JWT via python-jose.

Lambda contract (TOKEN authorizer):
    in:  {"authorizationToken": "...", "methodArn": "arn:aws:execute-api:..."}
    out: {"principalId", "policyDocument", "context"}
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
import structlog
from fastapi import Header, HTTPException
from jose import JWTError, jwt

from feedback_vault.feedback.models import Identity

logger = structlog.get_logger()

POLICY_VERSION = "2012-10-17"
INVOKE_ACTION = "execute-api:Invoke"


class AuthorizationDenied(Exception):
    """Credential rejected; the call must not reach the service"""


class CredentialVerifier(ABC):
    @abstractmethod
    def verify(self, credential: Optional[str], resource: Optional[str]) -> Identity:
        """Return the caller's identity or raise AuthorizationDenied"""


class AllowAllVerifier(CredentialVerifier):
    """Placeholder that admits everyone as a fixed identity

    Mirrors the stand-in authorizer of the first deployment. Swap for
    CognitoJWTVerifier (AUTHORIZER_MODE=cognito) before exposing the API.
    """

    PRINCIPAL_ID = "user"
    CONTEXT = {"user": "test-user"}

    def __init__(self):
        logger.warning("Allow-all authorizer active (no credential verification)")

    def verify(self, credential: Optional[str], resource: Optional[str]) -> Identity:
        return Identity(principal_id=self.PRINCIPAL_ID, attributes=dict(self.CONTEXT))


class CognitoJWTVerifier(CredentialVerifier):
    """Validate Cognito-issued JWTs against the user pool's JWKS"""

    def __init__(self, issuer: str, audience: str, timeout: float = 5.0):
        self.issuer = issuer.rstrip("/")
        self.audience = audience
        self.timeout = timeout
        self._jwks: Optional[Dict[str, Any]] = None

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"

    def _load_jwks(self) -> Dict[str, Any]:
        if self._jwks is None:
            response = httpx.get(self.jwks_url, timeout=self.timeout)
            response.raise_for_status()
            self._jwks = response.json()
            logger.info("JWKS loaded", issuer=self.issuer, keys=len(self._jwks.get("keys", [])))
        return self._jwks

    def verify(self, credential: Optional[str], resource: Optional[str]) -> Identity:
        token = strip_bearer(credential)
        if not token:
            raise AuthorizationDenied("No token")

        try:
            claims = jwt.decode(
                token,
                self._load_jwks(),
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as e:
            logger.warning("JWT rejected", error=str(e), resource=resource)
            raise AuthorizationDenied("Invalid token") from e

        subject = claims.get("sub")
        if not subject:
            raise AuthorizationDenied("Token has no subject")

        attributes = {
            name: claims[name]
            for name in ("email", "cognito:username")
            if name in claims
        }
        logger.info("User validated", user_id=subject)
        return Identity(principal_id=subject, attributes=attributes)


def strip_bearer(credential: Optional[str]) -> Optional[str]:
    if not credential:
        return None
    parts = credential.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return credential.strip() or None


def build_policy(
    principal_id: str,
    effect: str,
    resource: Optional[str],
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Render an API Gateway IAM policy for one method ARN"""
    return {
        "principalId": principal_id,
        "policyDocument": {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Action": INVOKE_ACTION,
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
        "context": context or {},
    }


def authorize(event: Dict[str, Any], verifier: CredentialVerifier) -> Dict[str, Any]:
    """Turn a TOKEN authorizer event into an Allow or Deny policy"""
    resource = event.get("methodArn")
    try:
        identity = verifier.verify(event.get("authorizationToken"), resource)
    except AuthorizationDenied as e:
        logger.warning("Authorization denied", resource=resource, reason=str(e))
        return build_policy("anonymous", "Deny", resource)

    # API Gateway only forwards scalar context values
    context = {k: v for k, v in identity.attributes.items() if isinstance(v, (str, int, float, bool))}
    logger.info("Authorization granted", principal_id=identity.principal_id, resource=resource)
    return build_policy(identity.principal_id, "Allow", resource, context)


def handler(event, context):
    """Lambda entrypoint for the API Gateway authorizer"""
    from feedback_vault.bootstrap import get_verifier

    return authorize(event, get_verifier())


def require_identity(authorization: str = Header(None)) -> Identity:
    """FastAPI dependency applying the configured verifier to the Authorization header"""
    from feedback_vault.bootstrap import get_verifier

    try:
        return get_verifier().verify(authorization, "/feedback")
    except AuthorizationDenied as e:
        raise HTTPException(status_code=401, detail=str(e))
