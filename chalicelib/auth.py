from chalice import Response

from chalicelib.constants.constants import INVALID_CREDENTIALS_MESSAGE, REGISTER_REQUIRED_FIELDS_MESSAGE
from chalicelib.constants.status_codes import http200
from chalicelib.users import User
from chalicelib.utils import app as utils_app, auth as utils_auth, data as utils_data, exceptions
from chalicelib.utils.logger import logger, log_request
from chalicelib.utils.permissions import Action, authorize, enforce


def _required_string(body: dict, field: str):
    value = body.get(field)
    if isinstance(value, str) and value.strip():
        return value
    return None


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_register(request) -> Response:
    """
    New users are always diners, any role sent in the body is ignored
    """
    log_request(request)
    enforce(authorize(None, Action.REGISTER))
    body = utils_data.parse_raw_body(request)
    name, email, password = (_required_string(body, field) for field in ('name', 'email', 'password'))
    if not (name and email and password):
        raise exceptions.MandatoryFieldsAreNotFilled(REGISTER_REQUIRED_FIELDS_MESSAGE)
    if '@' not in email:
        raise exceptions.ValidationException('email is not valid')

    user = User.create(name=name, email=email, password=password)
    token = user.issue_token()
    logger.info(f'endpoint_register ::: user {user.id_} registered')
    return Response(status_code=http200, body={'user': user.to_ui(), 'token': token})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_login(request) -> Response:
    """
    Unknown email and wrong password answer the same way
    """
    log_request(request)
    enforce(authorize(None, Action.LOGIN))
    body = utils_data.parse_raw_body(request)
    email, password = _required_string(body, 'email'), _required_string(body, 'password')
    if not (email and password):
        raise exceptions.NotAuthorizedException(INVALID_CREDENTIALS_MESSAGE)
    try:
        user = User.init_by_email(email)
    except exceptions.RecordNotFound:
        logger.info('endpoint_login ::: unknown email')
        raise exceptions.NotAuthorizedException(INVALID_CREDENTIALS_MESSAGE)
    if not user.check_password(password):
        logger.info(f'endpoint_login ::: wrong password for user {user.id_}')
        raise exceptions.NotAuthorizedException(INVALID_CREDENTIALS_MESSAGE)

    token = user.issue_token()
    logger.info(f'endpoint_login ::: user {user.id_} logged in')
    return Response(status_code=http200, body={'user': user.to_ui(), 'token': token})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_logout(request) -> Response:
    enforce(authorize(request.auth_result['identity'], Action.LOGOUT))
    utils_auth.invalidate_token(request.auth_result['token'])
    logger.info(f"endpoint_logout ::: user {request.auth_result['user_id']} logged out")
    return Response(status_code=http200, body={'message': 'logout successful'})
