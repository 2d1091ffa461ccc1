import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import AuditEvent, User

pytestmark = pytest.mark.django_db

PASSWORD = 'Cedar-Lantern-42'


def register(client, **overrides):
    body = {'name': 'Rana Khalil', 'email': 'rana@example.org', 'password': PASSWORD,
            'role': 'patient', 'language': 'en', 'phone': '+970599000000'}
    body.update(overrides)
    return client.post(reverse('auth-register'), body, format='json')


def test_register_returns_user_and_tokens():
    client = APIClient()
    r = register(client)
    assert r.status_code == 201
    assert r.data['user']['email'] == 'rana@example.org'
    assert r.data['user']['name'] == 'Rana Khalil'
    assert r.data['user']['role'] == 'patient'
    assert r.data['tokens']['access'] and r.data['tokens']['refresh']
    u = User.objects.get(email='rana@example.org')
    assert u.check_password(PASSWORD)
    assert u.password != PASSWORD
    assert AuditEvent.objects.filter(action='register', user=u).exists()


def test_register_duplicate_email_is_conflict():
    client = APIClient()
    assert register(client).status_code == 201
    r = register(client, email='RANA@example.org')
    assert r.status_code == 409
    assert r.data['error']['code'] == 'conflict'


def test_register_as_admin_is_forbidden():
    r = register(APIClient(), role='admin')
    assert r.status_code == 403
    assert not User.objects.exists()


def test_register_rejects_weak_password():
    r = register(APIClient(), password='12345')
    assert r.status_code == 400
    assert r.data['error']['field'] == 'password'


def test_login_with_email_and_use_access_token():
    client = APIClient()
    register(client)
    r = client.post(reverse('auth-login'), {'email': 'rana@example.org', 'password': PASSWORD}, format='json')
    assert r.status_code == 200
    access = r.data['tokens']['access']

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    me = client.get(reverse('auth-me'))
    assert me.status_code == 200
    assert me.data['user']['email'] == 'rana@example.org'


def test_login_bad_credentials_is_401():
    client = APIClient()
    register(client)
    r = client.post(reverse('auth-login'), {'email': 'rana@example.org', 'password': 'wrong-password'}, format='json')
    assert r.status_code == 401
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_login_ignores_role_in_payload():
    client = APIClient()
    register(client)
    r = client.post(reverse('auth-login'),
                    {'email': 'rana@example.org', 'password': PASSWORD, 'role': 'admin'}, format='json')
    assert r.status_code == 200
    assert r.data['user']['role'] == 'patient'


def test_me_requires_authentication():
    assert APIClient().get(reverse('auth-me')).status_code == 401


def test_refresh_and_logout_blacklists_token():
    client = APIClient()
    tokens = register(client).data['tokens']

    r = client.post(reverse('auth-refresh'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['tokens']['access']
    new_refresh = r.data['tokens']['refresh']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['tokens']['access']}")
    out = client.post(reverse('auth-logout'), {'refresh': new_refresh}, format='json')
    assert out.status_code == 200
    assert out.data['blacklisted'] == 1

    again = client.post(reverse('auth-refresh'), {'refresh': new_refresh}, format='json')
    assert again.status_code == 401


def test_logout_without_token_blacklists_all_outstanding():
    client = APIClient()
    tokens = register(client).data['tokens']
    client.post(reverse('auth-login'), {'email': 'rana@example.org', 'password': PASSWORD}, format='json')
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
    out = client.post(reverse('auth-logout'), {}, format='json')
    assert out.status_code == 200
    assert out.data['blacklisted'] == 2
