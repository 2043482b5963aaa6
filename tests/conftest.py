"""Shared fixtures: an in-memory store, a real cipher and a service with a frozen clock"""
import json

import pytest

from feedback_vault.feedback.models import FeedbackRequest
from feedback_vault.feedback.service import FeedbackService
from feedback_vault.security.cipher import FieldCipher
from feedback_vault.store.backends import InMemoryFeedbackStore

FIXED_TIMESTAMP = "2026-01-22T10:15:30.123Z"


@pytest.fixture
def cipher():
    return FieldCipher.from_passphrase("test-passphrase")


@pytest.fixture
def store():
    return InMemoryFeedbackStore()


@pytest.fixture
def service(cipher, store):
    return FeedbackService(cipher=cipher, store=store, clock=lambda: FIXED_TIMESTAMP)


@pytest.fixture
def make_request():
    def _make(method, body=None, query=None, headers=None, identity=None):
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return FeedbackRequest(
            method=method,
            body=body,
            query=query or {},
            headers=headers or {},
            identity=identity,
        )
    return _make
