"""Runtime Configuration - environment-provided settings

Self-Explanatory: Everything the service needs from its environment, read once.
Why: Table name and passphrase come from the deployment, never from code.
How: os.getenv into an immutable pydantic model; missing secrets fail fast.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr

STORE_BACKENDS = ("dynamodb", "memory")
AUTHORIZER_MODES = ("allow_all", "cognito")


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or invalid"""


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    table_name: Optional[str] = None
    passphrase: SecretStr
    store_backend: str = "dynamodb"
    aws_region: Optional[str] = None
    dynamodb_endpoint_url: Optional[str] = None
    authorizer_mode: str = "allow_all"
    cognito_issuer: Optional[str] = None
    cognito_audience: Optional[str] = None
    expose_error_details: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from environment variables

        Args:
            environ: Mapping to read instead of os.environ (tests)

        Raises:
            ConfigurationError if a required value is absent
        """
        env = os.environ if environ is None else environ

        passphrase = env.get("AES_SECRET_KEY")
        if not passphrase:
            raise ConfigurationError("AES_SECRET_KEY must be set")

        store_backend = env.get("STORE_BACKEND", "dynamodb").lower()
        if store_backend not in STORE_BACKENDS:
            raise ConfigurationError(f"Unknown STORE_BACKEND: {store_backend}")

        table_name = env.get("DYNAMODB_TABLE") or None
        if store_backend == "dynamodb" and not table_name:
            raise ConfigurationError("DYNAMODB_TABLE must be set for the dynamodb backend")

        authorizer_mode = env.get("AUTHORIZER_MODE", "allow_all").lower()
        if authorizer_mode not in AUTHORIZER_MODES:
            raise ConfigurationError(f"Unknown AUTHORIZER_MODE: {authorizer_mode}")

        cognito_issuer = env.get("COGNITO_ISSUER") or None
        cognito_audience = env.get("COGNITO_AUDIENCE") or None
        if authorizer_mode == "cognito" and not (cognito_issuer and cognito_audience):
            raise ConfigurationError("COGNITO_ISSUER and COGNITO_AUDIENCE are required in cognito mode")

        return cls(
            table_name=table_name,
            passphrase=SecretStr(passphrase),
            store_backend=store_backend,
            aws_region=env.get("AWS_REGION") or None,
            dynamodb_endpoint_url=env.get("DYNAMODB_ENDPOINT_URL") or None,
            authorizer_mode=authorizer_mode,
            cognito_issuer=cognito_issuer,
            cognito_audience=cognito_audience,
            expose_error_details=_as_bool(env.get("EXPOSE_ERROR_DETAILS"), True),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
