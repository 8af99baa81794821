from datetime import datetime
from typing import Tuple, List, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import DEFAULT_PAGE_LIMIT
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.permissions import Action, Role, RoleAssignment, authorize, enforce


class User(EntityBase):
    pk = keys_structure.users_pk
    sk = keys_structure.users_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and bool(x.strip()),
        'email': lambda x: isinstance(x, str) and '@' in x,
        'password_hash': lambda x: isinstance(x, str),
        'roles': lambda x: isinstance(x, list),
        'date_updated': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.name_: str = kwargs.get('name_')
        self.email: str = normalize_email(kwargs.get('email'))
        self.password_hash: str = kwargs.get('password_hash')
        self.roles: List[RoleAssignment] = [
            role if isinstance(role, RoleAssignment) else RoleAssignment.from_dict(role)
            for role in kwargs.get('roles', [])
        ]
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec="seconds")
        self.date_updated: str = kwargs.get('date_updated') or datetime.now().isoformat(timespec="seconds")
        self.record_type = 'user'

    @classmethod
    def init_by_id(cls, id_):
        logger.info("init_by_id ::: started")
        return cls(id_)._load()

    @classmethod
    def init_by_email(cls, email):
        logger.info("init_by_email ::: started")
        index_item = utils_db.get_db_item(
            partkey=keys_structure.users_email_pk,
            sortkey=keys_structure.users_email_sk.format(email=normalize_email(email))
        )
        return cls.init_by_id(index_item['user_id'])

    @classmethod
    def create(cls, name: str, email: str, password: str, roles: Optional[List[RoleAssignment]] = None) -> 'User':
        """
        The email index record is written first with a conditional put,
        so two registrations with one email can not both succeed
        """
        user = cls(
            str(uuid4()),
            name_=name,
            email=email,
            password_hash=utils_auth.hash_password(password),
            roles=roles or [RoleAssignment(Role.DINER)]
        )
        user._put_email_index()
        try:
            user._create_db_record()
        except Exception:
            user._delete_email_index()
            raise
        return user

    def is_admin(self) -> bool:
        return any(role.role is Role.ADMIN for role in self.roles)

    def check_password(self, password: str) -> bool:
        return utils_auth.verify_password(password, self.password_hash)

    def issue_token(self) -> str:
        return utils_auth.create_token(self.id_, self.name_, self.email, [role.to_ui() for role in self.roles])

    def update(self, name: str = None, email: str = None, password: str = None) -> None:
        previous_email = self.email
        if name is not None:
            self.name_ = name
        if email is not None:
            self.email = normalize_email(email)
        if password is not None:
            self.password_hash = utils_auth.hash_password(password)

        if self.email != previous_email:
            self._put_email_index()
        self._update_db_record()
        if self.email != previous_email:
            utils_db.delete_db_record({
                'partkey': keys_structure.users_email_pk,
                'sortkey': keys_structure.users_email_sk.format(email=previous_email)
            })

    def add_role(self, role: RoleAssignment) -> None:
        if role in self.roles:
            return
        self.roles.append(role)
        self._update_db_record()

    def remove_role(self, role: RoleAssignment) -> None:
        if role not in self.roles:
            return
        self.roles = [assignment for assignment in self.roles if assignment != role]
        self._update_db_record()

    def delete(self) -> None:
        self._delete_db_record()
        self._delete_email_index()
        utils_auth.invalidate_user_tokens(self.id_)

    def _put_email_index(self):
        try:
            utils_db.put_db_record({
                'partkey': keys_structure.users_email_pk,
                'sortkey': keys_structure.users_email_sk.format(email=self.email),
                'record_type': 'user_email',
                'user_id': self.id_
            }, unique=True)
        except exceptions.RecordAlreadyExists:
            raise exceptions.RecordAlreadyExists('user with this email already exists')

    def _delete_email_index(self):
        utils_db.delete_db_record({
            'partkey': keys_structure.users_email_pk,
            'sortkey': keys_structure.users_email_sk.format(email=self.email)
        })

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name_': self.name_,
            'email': self.email,
            'password_hash': self.password_hash,
            'roles': [role.to_db() for role in self.roles],
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def _to_ui(self):
        item = super()._to_ui()
        item['roles'] = [role.to_ui() for role in self.roles]
        return item


def normalize_email(email):
    return email.strip().lower() if isinstance(email, str) else email


def get_all_users() -> List[User]:
    records = utils_db.query_items_paged(Key('partkey').eq(keys_structure.users_pk))
    return [User(**record) for record in records]


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_me(request) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.GET_USER, identity.id_))
    return Response(status_code=http200, body=User.init_by_id(identity.id_).to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_update_user(request, user_id) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.UPDATE_USER, user_id))
    request_body = utils_data.parse_raw_body(request)
    for field in ('name', 'email', 'password'):
        value = request_body.get(field)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise exceptions.ValidationException(f'{field} must be a non-empty string')
    if request_body.get('email') is not None and '@' not in request_body['email']:
        raise exceptions.ValidationException('email is not valid')

    user = User.init_by_id(user_id)
    user.update(name=request_body.get('name'), email=request_body.get('email'),
                password=request_body.get('password'))
    # a fresh token is handed out only to the user who owns the record
    token = user.issue_token() if user.id_ == identity.id_ else None
    logger.info(f'endpoint_update_user ::: user {user_id} updated by {identity.id_}')
    return Response(status_code=http200, body={'user': user.to_ui(), 'token': token})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_delete_user(request, user_id) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.DELETE_USER, user_id))
    user = User.init_by_id(user_id)
    user.delete()
    logger.info(f'endpoint_delete_user ::: user {user_id} deleted by {identity.id_}')
    return Response(status_code=http200, body={'message': 'user deleted'})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_list_users(request) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.LIST_USERS))
    qp = request.query_params or {}
    users = sorted(
        (user for user in get_all_users() if utils_data.matches_name_filter(user.name_, qp.get('name'))),
        key=lambda user: (user.date_created, user.id_)
    )
    page_users, more = utils_db.paginate(users, qp.get('page', 0), qp.get('limit', DEFAULT_PAGE_LIMIT))
    return Response(status_code=http200, body={'users': [user.to_ui() for user in page_users], 'more': more})
