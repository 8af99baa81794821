import functools
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, List, Optional

import bcrypt
import jwt
from boto3.dynamodb.conditions import Key, Attr
from chalice.app import Request

from chalicelib.constants import keys_structure
from chalicelib.constants.constants import JWT_ALGORITHM, DEFAULT_TOKEN_TTL_HOURS, UNAUTHORIZED_MESSAGE
from chalicelib.utils import exceptions as utils_exceptions, db as utils_db
from chalicelib.utils.logger import log_request, logger
from chalicelib.utils.permissions import RoleAssignment

_fallback_secret = None


class Identity(NamedTuple):
    id_: str
    name: str
    email: str
    roles: List[RoleAssignment]


def get_jwt_secret() -> str:
    """
    JWT_SECRET must be shared by every instance of a stage.
    A random per-process secret is only allowed with ALLOW_EPHEMERAL_JWT_SECRET for local runs
    """
    global _fallback_secret
    secret = os.environ.get('JWT_SECRET')
    if secret:
        return secret
    if os.environ.get('ALLOW_EPHEMERAL_JWT_SECRET', '').lower() not in ('1', 'true', 'yes'):
        logger.error('get_jwt_secret ::: JWT_SECRET is not set')
        raise utils_exceptions.ConfigurationError('JWT_SECRET is not set')
    if _fallback_secret is None:
        logger.warning('get_jwt_secret ::: using an ephemeral secret, tokens will not survive a restart')
        _fallback_secret = secrets.token_urlsafe(32)
    return _fallback_secret


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.warning('verify_password ::: stored password hash is malformed')
        return False


def token_signature(token: str) -> str:
    return token.rsplit('.', 1)[-1]


def create_token(user_id: str, name: str, email: str, roles: List[dict]) -> str:
    """
    Issues a signed token and registers it as active.
    The token stays valid until logout (or the defensive expiry)
    """
    now = datetime.now(timezone.utc)
    expires = now + timedelta(hours=int(os.environ.get('TOKEN_TTL_HOURS', DEFAULT_TOKEN_TTL_HOURS)))
    payload = {
        'sub': user_id,
        'name': name,
        'email': email,
        'roles': roles,
        'iat': now,
        'exp': expires,
        'jti': secrets.token_urlsafe(16)
    }
    token = jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)
    utils_db.put_db_record({
        'partkey': keys_structure.auth_tokens_pk,
        'sortkey': keys_structure.auth_tokens_sk.format(signature=token_signature(token)),
        'record_type': 'auth_token',
        'user_id': user_id,
        'date_created': now.isoformat(timespec='seconds'),
        'ttl_': int(expires.timestamp())
    })
    logger.info(f'create_token ::: token issued for {user_id=}')
    return token


def invalidate_token(token: str) -> None:
    utils_db.delete_db_record({
        'partkey': keys_structure.auth_tokens_pk,
        'sortkey': keys_structure.auth_tokens_sk.format(signature=token_signature(token))
    })
    logger.info('invalidate_token ::: token invalidated')


def invalidate_user_tokens(user_id: str) -> None:
    """
    Drops every active token of the user. Records left behind otherwise
    expire through the table TTL on ttl_
    """
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.auth_tokens_pk),
        filter_expression=Attr('user_id').eq(user_id)
    )
    for record in records:
        utils_db.delete_db_record({'partkey': record['partkey'], 'sortkey': record['sortkey']})
    logger.info(f'invalidate_user_tokens ::: {len(records)} tokens invalidated for {user_id=}')


def get_bearer_token(request: Request) -> str:
    header = (request.headers or {}).get('authorization') or ''
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise utils_exceptions.NotAuthorizedException(UNAUTHORIZED_MESSAGE)
    return token.strip()


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as error:
        logger.warning(f'decode_token ::: {error.__class__.__name__}')
        raise utils_exceptions.NotAuthorizedException(UNAUTHORIZED_MESSAGE)


def get_identity(token: str) -> Identity:
    """
    A token authenticates only while it is active and its user still exists
    """
    claims = decode_token(token)
    try:
        utils_db.get_db_item(
            partkey=keys_structure.auth_tokens_pk,
            sortkey=keys_structure.auth_tokens_sk.format(signature=token_signature(token))
        )
        user_item = utils_db.get_db_item(
            partkey=keys_structure.users_pk,
            sortkey=keys_structure.users_sk.format(user_id=claims['sub'])
        )
    except utils_exceptions.RecordNotFound:
        raise utils_exceptions.NotAuthorizedException(UNAUTHORIZED_MESSAGE)
    return Identity(
        id_=user_item['id_'],
        name=user_item.get('name_'),
        email=user_item.get('email'),
        roles=[RoleAssignment.from_dict(role) for role in user_item.get('roles', [])]
    )


def get_optional_identity(request: Request) -> Optional[Identity]:
    """
    For public endpoints which show more to authenticated callers
    """
    try:
        return get_identity(get_bearer_token(request))
    except utils_exceptions.NotAuthorizedException:
        return None


def authenticate(func):
    """
    Wrapper for functions which require user's authentication,
    the first positional argument must be the chalice request
    """

    @functools.wraps(func)
    def result_auth(*args, **kwargs):
        request = args[0]
        log_request(request)
        token = get_bearer_token(request)
        identity = get_identity(token)
        setattr(request, 'auth_result', {
            'user_id': identity.id_,
            'roles': [role.to_ui() for role in identity.roles],
            'token': token,
            'identity': identity
        })
        logger.info(f'authenticate ::: SUCCESS, user_id={identity.id_}, func.__name__ {func.__name__}')
        return func(*args, **kwargs)

    return result_auth
