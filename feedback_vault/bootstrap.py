"""Process bootstrap - build the cipher, store, service and verifier once

Both Lambda entrypoints and the FastAPI app pull their collaborators from
here; warm invocations reuse the cached instances.
"""

from functools import lru_cache

import structlog

from feedback_vault.config import Settings
from feedback_vault.feedback.service import FeedbackService
from feedback_vault.governance.authorizer import (
    AllowAllVerifier,
    CognitoJWTVerifier,
    CredentialVerifier,
)
from feedback_vault.security.cipher import FieldCipher
from feedback_vault.store.backends import (
    DynamoFeedbackStore,
    FeedbackStore,
    InMemoryFeedbackStore,
)
from feedback_vault.utils.logging_setup import configure_logging

logger = structlog.get_logger()


def build_store(settings: Settings) -> FeedbackStore:
    if settings.store_backend == "memory":
        return InMemoryFeedbackStore()
    return DynamoFeedbackStore(
        settings.table_name,
        region_name=settings.aws_region,
        endpoint_url=settings.dynamodb_endpoint_url,
    )


def build_verifier(settings: Settings) -> CredentialVerifier:
    if settings.authorizer_mode == "cognito":
        return CognitoJWTVerifier(settings.cognito_issuer, settings.cognito_audience)
    return AllowAllVerifier()


def build_service(settings: Settings) -> FeedbackService:
    cipher = FieldCipher.from_passphrase(settings.passphrase.get_secret_value())
    return FeedbackService(
        cipher=cipher,
        store=build_store(settings),
        expose_error_details=settings.expose_error_details,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info(
        "Settings loaded",
        store_backend=settings.store_backend,
        table=settings.table_name,
        authorizer_mode=settings.authorizer_mode,
    )
    return settings


@lru_cache(maxsize=1)
def get_service() -> FeedbackService:
    return build_service(get_settings())


@lru_cache(maxsize=1)
def get_verifier() -> CredentialVerifier:
    return build_verifier(get_settings())
