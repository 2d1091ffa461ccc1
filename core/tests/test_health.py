import pytest
from rest_framework.test import APIClient

pytestmark = pytest.mark.django_db


def test_healthz_checks_database():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


def test_metrics_endpoint_is_exposed():
    r = APIClient().get('/metrics')
    assert r.status_code == 200
    assert b'django_http_requests' in r.content


def test_unknown_domain_errors_use_envelope():
    r = APIClient().get('/api/treatments/12345/transparency')
    assert r.status_code == 404
    assert r.json()['ok'] is False
    assert r.json()['error']['code'] == 'not_found'
