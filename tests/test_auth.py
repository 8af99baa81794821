import re

import pytest

from chalicelib.constants.constants import INVALID_CREDENTIALS_MESSAGE, REGISTER_REQUIRED_FIELDS_MESSAGE
from chalicelib.constants.status_codes import http200, http400, http401, http409, http500
from chalicelib.utils import auth as utils_auth
from chalicelib.utils.exceptions import ConfigurationError
from tests.utils.fixtures import chalice_client, create_test_user
from tests.utils.request_utils import make_request


def register(chalice_client, name='pizza diner', email='d@jwt.com', password='diner', **extra):
    return make_request(chalice_client, endpoint='/api/auth', method='POST',
                        json_body={'name': name, 'email': email, 'password': password, **extra})


def test_register(chalice_client):
    response = register(chalice_client, email='New.Diner@JWT.com')

    assert response.status_code == http200
    user = response.json_body['user']
    assert user['name'] == 'pizza diner'
    assert user['email'] == 'new.diner@jwt.com'
    assert user['roles'] == [{'role': 'diner'}]
    assert 'password' not in user and 'password_hash' not in user
    assert response.json_body['token']


def test_register_ignores_roles_from_body(chalice_client):
    response = register(chalice_client, roles=[{'role': 'admin'}])

    assert response.status_code == http200
    assert response.json_body['user']['roles'] == [{'role': 'diner'}]


def test_register_missing_fields(chalice_client):
    response = make_request(chalice_client, endpoint='/api/auth', method='POST',
                            json_body={'name': 'pizza diner', 'email': 'd@jwt.com'})

    assert response.status_code == http400
    assert response.json_body['message'] == REGISTER_REQUIRED_FIELDS_MESSAGE


def test_register_duplicate_email(chalice_client):
    assert register(chalice_client).status_code == http200
    response = register(chalice_client, name='someone else', email='D@jwt.com')

    assert response.status_code == http409


def test_login(chalice_client):
    register(chalice_client, password='diner')
    response = make_request(chalice_client, endpoint='/api/auth', method='PUT',
                            json_body={'email': 'd@jwt.com', 'password': 'diner'})

    assert response.status_code == http200
    token = response.json_body['token']
    me = make_request(chalice_client, endpoint='/api/user/me', token=token)
    assert me.status_code == http200
    assert me.json_body['email'] == 'd@jwt.com'


def test_login_bad_credentials(chalice_client):
    register(chalice_client, password='diner')
    wrong_password = make_request(chalice_client, endpoint='/api/auth', method='PUT',
                                  json_body={'email': 'd@jwt.com', 'password': 'nope'})
    unknown_email = make_request(chalice_client, endpoint='/api/auth', method='PUT',
                                 json_body={'email': 'nobody@jwt.com', 'password': 'diner'})

    assert wrong_password.status_code == http401
    assert unknown_email.status_code == http401
    assert wrong_password.json_body['message'] == unknown_email.json_body['message'] == INVALID_CREDENTIALS_MESSAGE


def test_logout(chalice_client):
    _, token = create_test_user()
    response = make_request(chalice_client, endpoint='/api/auth', method='DELETE', token=token)

    assert response.status_code == http200
    assert response.json_body == {'message': 'logout successful'}
    assert make_request(chalice_client, endpoint='/api/user/me', token=token).status_code == http401


def test_logout_keeps_other_sessions(chalice_client):
    user, first_token = create_test_user()
    second_token = user.issue_token()

    make_request(chalice_client, endpoint='/api/auth', method='DELETE', token=first_token)

    assert make_request(chalice_client, endpoint='/api/user/me', token=second_token).status_code == http200


def test_logout_without_token(chalice_client):
    response = make_request(chalice_client, endpoint='/api/auth', method='DELETE')

    assert response.status_code == http401


def test_garbage_token(chalice_client):
    response = make_request(chalice_client, endpoint='/api/user/me', token='not.a.token')

    assert response.status_code == http401
    assert response.json_body['message'] == 'unauthorized'


def test_register_then_login_scenario(chalice_client):
    registered = register(chalice_client, name='a', email='x@test.com', password='a')
    assert registered.status_code == http200
    assert re.match(r'^[\w-]+\.[\w-]+\.[\w-]+$', registered.json_body['token'])

    login = make_request(chalice_client, endpoint='/api/auth', method='PUT',
                         json_body={'email': 'x@test.com', 'password': 'a'})
    assert login.status_code == http200
    assert re.match(r'^[\w-]+\.[\w-]+\.[\w-]+$', login.json_body['token'])
    assert {'role': 'diner'} in login.json_body['user']['roles']


def test_missing_jwt_secret_is_a_configuration_error(chalice_client, monkeypatch):
    register(chalice_client, password='diner')
    monkeypatch.delenv('JWT_SECRET')
    monkeypatch.delenv('ALLOW_EPHEMERAL_JWT_SECRET', raising=False)
    monkeypatch.setattr(utils_auth, '_fallback_secret', None)

    with pytest.raises(ConfigurationError):
        utils_auth.get_jwt_secret()
    response = make_request(chalice_client, endpoint='/api/auth', method='PUT',
                            json_body={'email': 'd@jwt.com', 'password': 'diner'})
    assert response.status_code == http500


def test_ephemeral_jwt_secret_is_stable_within_process(chalice_client, monkeypatch):
    monkeypatch.delenv('JWT_SECRET')
    monkeypatch.setenv('ALLOW_EPHEMERAL_JWT_SECRET', 'true')
    monkeypatch.setattr(utils_auth, '_fallback_secret', None)

    assert utils_auth.get_jwt_secret() == utils_auth.get_jwt_secret()
    token = register(chalice_client).json_body['token']
    assert make_request(chalice_client, endpoint='/api/user/me', token=token).status_code == http200
