import logging
import pytest
from django.contrib.auth.models import User
from django.core.cache import cache

from courses.ledger import EvaluationLedger, reset_default_ledger


@pytest.fixture(autouse=True)
def silence_django_request_logger():
    """Reduce noise from expected 4xx in passing tests.

    Many tests intentionally exercise 403/404/409 paths. Django logs these
    at WARNING via 'django.request'. Lower that logger to ERROR during
    tests to avoid clutter.
    """
    logger = logging.getLogger("django.request")
    old = logger.level
    logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        logger.setLevel(old)


@pytest.fixture(autouse=True)
def fresh_ledger_state():
    """Drop the cached default ledger and throttle counters between tests."""
    reset_default_ledger()
    cache.clear()
    yield
    reset_default_ledger()


@pytest.fixture
def administrator(db):
    return User.objects.create_user(username="registrar", password="pw")


@pytest.fixture
def instructor(db):
    return User.objects.create_user(username="prof", password="pw")


@pytest.fixture
def student(db):
    return User.objects.create_user(username="stud", password="pw")


@pytest.fixture
def ledger(administrator):
    return EvaluationLedger(administrator=administrator)


@pytest.fixture
def configured_admin(administrator, settings):
    """Make `administrator` the administrator of the default ledger."""
    settings.COURSEVAL_ADMINISTRATOR = administrator.username
    return administrator
