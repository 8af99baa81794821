from uuid import uuid4

import pytest
from chalice.test import Client

from app import app
from chalicelib.users import User
from chalicelib.utils.factory import FactoryResult
from chalicelib.utils.permissions import Role, RoleAssignment
from tests.utils.request_utils import make_request

DEFAULT_PASSWORD = 'a'


@pytest.fixture
def chalice_client() -> Client:
    with Client(app, stage_name='test') as client:
        yield client


def create_test_user(name: str = 'pizza diner', password: str = DEFAULT_PASSWORD, roles=None):
    """
    Writes the user straight to the db, returns (user, token)
    """
    user = User.create(name=name, email=f'{uuid4().hex[:10]}@test.com', password=password, roles=roles)
    return user, user.issue_token()


@pytest.fixture
def admin():
    return create_test_user(name='pizza admin', roles=[RoleAssignment(Role.ADMIN)])


@pytest.fixture
def diner():
    return create_test_user()


class FakeFactory:

    def __init__(self, result: FactoryResult):
        self.result = result
        self.calls = []

    def fulfill(self, diner, order):
        self.calls.append({'diner': diner, 'order': order})
        return self.result


def create_test_franchise(chalice_client, admin_token, name=None, admin_emails=()):
    response = make_request(chalice_client, endpoint='/api/franchise', method='POST', token=admin_token, json_body={
        'name': name or f'pizzaPocket {uuid4().hex[:6]}',
        'admins': [{'email': email} for email in admin_emails]
    })
    assert response.status_code == 200, response.body
    return response.json_body


def create_test_store(chalice_client, token, franchise_id, name='SLC'):
    response = make_request(chalice_client, endpoint=f'/api/franchise/{franchise_id}/store', method='POST',
                            token=token, json_body={'name': name})
    assert response.status_code == 200, response.body
    return response.json_body


def create_test_menu_item(chalice_client, admin_token, title='Veggie', price=0.0038):
    response = make_request(chalice_client, endpoint='/api/order/menu', method='PUT', token=admin_token, json_body={
        'title': title,
        'description': 'A garden of delight',
        'image': 'pizza1.png',
        'price': price
    })
    assert response.status_code == 200, response.body
    return next(item for item in response.json_body if item['title'] == title)
