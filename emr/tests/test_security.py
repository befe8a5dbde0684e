import pytest
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from emr.models import AuditEvent, User

PASSWORD = 'Str0ng!Passw0rd'

pytestmark = pytest.mark.django_db


def login(client, username, password=PASSWORD):
    r = client.post('/api/auth/login', {'username': username, 'password': password}, format='json')
    assert r.status_code in (200, 400, 401)
    return r


def test_login_returns_token_jwt_and_roles(reception):
    client = APIClient()
    r = login(client, 'desk')
    assert r.status_code == 200
    assert r.data['ok'] is True
    assert r.data['token'] and r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['roles'] == ['reception']
    assert r.data['user']['username'] == 'desk'
    assert AuditEvent.objects.filter(action='login', user=reception).exists()


def test_bad_login_is_401(reception):
    r = login(APIClient(), 'desk', 'wrong-password')
    assert r.status_code == 401
    assert r.data['ok'] is False
    assert 'token' not in r.data


def test_login_ignores_posted_role(reception):
    client = APIClient()
    r = client.post('/api/auth/login', {'username': 'desk', 'password': PASSWORD, 'roles': ['admin']},
                    format='json')
    assert r.status_code == 200
    assert r.data['roles'] == ['reception']
    reception.refresh_from_db()
    assert reception.role_names() == {'reception'}


def test_inactive_user_token_is_rejected(reception):
    client = APIClient()
    token = login(client, 'desk').data['token']
    User.objects.filter(id=reception.id).update(is_active=False)
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    assert client.get('/api/auth/me').status_code == 401


def test_drf_token_and_jwt_both_authenticate(reception):
    client = APIClient()
    data = login(client, 'desk').data

    client.credentials(HTTP_AUTHORIZATION=f"Token {data['token']}")
    r = client.get('/api/auth/me')
    assert r.status_code == 200
    assert r.data['user']['roles'] == ['reception']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['jwt_access']}")
    assert client.get('/api/patients').status_code == 200


def test_jwt_refresh_and_logout_blacklist(reception):
    client = APIClient()
    data = login(client, 'desk').data

    r = client.post('/api/auth/refresh', {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f"Token {data['token']}")
    r = client.post('/api/auth/logout', {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1
    assert not Token.objects.filter(user=reception).exists()

    client.credentials()
    r = client.post('/api/auth/refresh', {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_admin_creates_user_with_strong_password(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    r = client.post('/api/admin/users', {'username': 'newdesk', 'password': 'password', 'roles': ['reception']},
                    format='json')
    assert r.status_code == 400
    assert 'password' in r.data['error']['message']

    r = client.post('/api/admin/users', {'username': 'newdesk', 'password': PASSWORD, 'roles': ['reception']},
                    format='json')
    assert r.status_code == 201
    assert r.data['data']['roles'] == ['reception']

    r = client.post('/api/admin/users', {'username': 'newdesk', 'password': PASSWORD}, format='json')
    assert r.status_code == 409
    assert r.data['error']['code'] == 'conflict'


def test_roles_replace_and_self_demotion(admin_user, reception):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    r = client.post(f'/api/admin/users/{reception.id}/roles', {'roles': ['reception', 'billing']}, format='json')
    assert r.status_code == 200
    assert r.data['roles'] == ['billing', 'reception']

    r = client.post(f'/api/admin/users/{admin_user.id}/roles', {'roles': ['manager']}, format='json')
    assert r.status_code == 409
    assert admin_user.roles.filter(role='admin').exists()


def test_password_reset_and_audit_log(admin_user, reception):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    r = client.post(f'/api/admin/users/{reception.id}/reset-password', {'password': 'N3w!Passw0rd#'},
                    format='json')
    assert r.status_code == 200
    assert login(APIClient(), 'desk', 'N3w!Passw0rd#').status_code == 200

    r = client.get('/api/admin/audit-logs', {'action': 'password_reset'})
    assert r.status_code == 200
    assert r.data['data'][0]['resourceId'] == str(reception.id)


def test_non_admin_cannot_manage_users(manager, reception):
    client = APIClient()
    client.force_authenticate(user=manager)
    assert client.get('/api/admin/users').status_code == 403
    r = client.post(f'/api/admin/users/{reception.id}/roles', {'roles': ['admin']}, format='json')
    assert r.status_code == 403
    assert reception.role_names() == {'reception'}


def test_audit_log_rejects_malformed_paging(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    for params in ({'page': 'abc'}, {'pageSize': 'x'}, {'userId': 'me'}, {'page': '0'}):
        r = client.get('/api/admin/audit-logs', params)
        assert r.status_code == 400, params
        assert r.data['error']['code'] == 'invalid'

    r = client.get('/api/admin/audit-logs', {'page': '1', 'pageSize': '5'})
    assert r.status_code == 200
    assert r.data['pagination']['pageSize'] == 5
