import pytest
from django.core.cache import cache

from core.models import User


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    # throttle counters live in the cache and would leak between tests
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make(role='patient', *, name=None, language='ar', password='Cedar-Lantern-42'):
        counter['n'] += 1
        email = f"{role}{counter['n']}@example.org"
        return User.objects.create_user(
            username=email, email=email, password=password,
            first_name=name or f"{role.title()} {counter['n']}", role=role, language=language,
        )

    return _make
