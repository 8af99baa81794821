import os
from typing import List, Dict

from chalice import Response

from chalicelib.constants.constants import SERVICE_NAME, DEFAULT_SERVICE_VERSION, DEFAULT_FACTORY_URL
from chalicelib.constants.status_codes import http200
from chalicelib.utils import app as utils_app
from chalicelib.utils.logger import log_request

ENDPOINTS = [
    ('POST', '/api/auth', False, 'Register a new user'),
    ('PUT', '/api/auth', False, 'Login existing user'),
    ('DELETE', '/api/auth', True, 'Logout a user'),
    ('GET', '/api/franchise', False, 'List franchises, supports page, limit and name'),
    ('GET', '/api/franchise/{userId}', True, "List a user's franchises"),
    ('POST', '/api/franchise', True, 'Create a new franchise'),
    ('DELETE', '/api/franchise/{franchiseId}', True, 'Delete a franchise'),
    ('POST', '/api/franchise/{franchiseId}/store', True, 'Create a new franchise store'),
    ('DELETE', '/api/franchise/{franchiseId}/store/{storeId}', True, 'Delete a store'),
    ('GET', '/api/order/menu', False, 'Get the pizza menu'),
    ('PUT', '/api/order/menu', True, 'Add an item to the menu'),
    ('GET', '/api/order', True, 'Get the orders for the authenticated user'),
    ('POST', '/api/order', True, 'Create an order for the authenticated user'),
    ('GET', '/api/user/me', True, 'Get authenticated user'),
    ('PUT', '/api/user/{userId}', True, 'Update user'),
    ('DELETE', '/api/user/{userId}', True, 'Delete user'),
    ('GET', '/api/user', True, 'List users, supports page, limit and name'),
]


def get_version() -> str:
    return os.environ.get('SERVICE_VERSION', DEFAULT_SERVICE_VERSION)


def get_endpoints() -> List[Dict]:
    return [
        {'method': method, 'path': path, 'requiresAuth': requires_auth, 'description': description}
        for method, path, requires_auth, description in ENDPOINTS
    ]


@utils_app.request_exception_handler
def endpoint_welcome(request) -> Response:
    log_request(request)
    return Response(status_code=http200, body={'message': f'welcome to {SERVICE_NAME}', 'version': get_version()})


@utils_app.request_exception_handler
def endpoint_docs(request) -> Response:
    log_request(request)
    return Response(status_code=http200, body={
        'version': get_version(),
        'endpoints': get_endpoints(),
        'config': {'factory': os.environ.get('FACTORY_URL', DEFAULT_FACTORY_URL)}
    })
