from datetime import datetime
from typing import Tuple, List, Dict, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import DEFAULT_PAGE_LIMIT
from chalicelib.constants.status_codes import http200
from chalicelib.users import User
from chalicelib.utils import auth as utils_auth, data as utils_data, exceptions, db as utils_db, app as utils_app
from chalicelib.utils.logger import logger, log_request
from chalicelib.utils.permissions import Action, Role, RoleAssignment, authorize, enforce, has_role


class Store(EntityBase):
    pk = keys_structure.stores_pk
    sk = keys_structure.stores_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'franchise_id': lambda x: isinstance(x, str),
        'created_by': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and bool(x.strip())
    }

    def __init__(self, id_, franchise_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.franchise_id: str = franchise_id
        self.name_: str = kwargs.get('name_')
        self.created_by: str = kwargs.get('created_by')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec="seconds")
        self.record_type = 'store'

    @classmethod
    def init_get_by_id(cls, franchise_id, store_id):
        return cls(store_id, franchise_id)._load()

    @classmethod
    def get_franchise_stores(cls, franchise_id) -> List['Store']:
        records = utils_db.query_items_paged(
            Key('partkey').eq(cls.pk.format(franchise_id=franchise_id))
        )
        return sorted((cls(**record) for record in records), key=lambda store: (store.date_created, store.id_))

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(franchise_id=self.franchise_id), self.sk.format(store_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'franchise_id': self.franchise_id,
            'name_': self.name_,
            'created_by': self.created_by,
            'date_created': self.date_created
        }

    def to_ui(self, short: bool = False):
        if short:
            return {'id': self.id_, 'name': self.name_}
        return self._to_ui()


class Franchise(EntityBase):
    pk = keys_structure.franchises_pk
    sk = keys_structure.franchises_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'created_by': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and bool(x.strip()),
        'admins': lambda x: isinstance(x, list)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.name_: str = kwargs.get('name_')
        # user ids of the franchisee admins
        self.admins: List[str] = list(kwargs.get('admins', []))
        self.created_by: str = kwargs.get('created_by')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec="seconds")
        self.record_type = 'franchise'
        self._stores: Optional[List[Store]] = None

    @classmethod
    def init_get_by_id(cls, franchise_id):
        logger.info("init_get_by_id ::: started")
        return cls(franchise_id)._load()

    @classmethod
    def find_by_id(cls, franchise_id) -> Optional['Franchise']:
        try:
            return cls.init_get_by_id(franchise_id)
        except exceptions.RecordNotFound:
            return None

    @property
    def stores(self) -> List[Store]:
        if self._stores is None:
            self._stores = Store.get_franchise_stores(self.id_)
        return self._stores

    def admins_to_ui(self) -> List[Dict]:
        admins = []
        for user_id in self.admins:
            try:
                user = User.init_by_id(user_id)
            except exceptions.RecordNotFound:
                logger.warning(f'admins_to_ui ::: admin {user_id} of franchise {self.id_} no longer exists')
                continue
            admins.append({'id': user.id_, 'name': user.name_, 'email': user.email})
        return admins

    def delete(self):
        for store in self.stores:
            store._delete_db_record()
        for user_id in self.admins:
            try:
                User.init_by_id(user_id).remove_role(RoleAssignment(Role.FRANCHISEE, self.id_))
            except exceptions.RecordNotFound:
                continue
        self._delete_db_record()

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(franchise_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name_': self.name_,
            'admins': self.admins,
            'created_by': self.created_by,
            'date_created': self.date_created
        }

    def to_ui(self, with_admins: bool = True):
        item = {'id': self.id_, 'name': self.name_}
        if with_admins:
            item['admins'] = self.admins_to_ui()
        item['stores'] = [store.to_ui(short=True) for store in self.stores]
        return item


def get_all_franchises() -> List[Franchise]:
    records = utils_db.query_items_paged(Key('partkey').eq(keys_structure.franchises_pk))
    return sorted((Franchise(**record) for record in records),
                  key=lambda franchise: (franchise.date_created, franchise.id_))


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_franchises(request) -> Response:
    """
    Public list, admins of the service also see each franchise's admins
    """
    log_request(request)
    identity = utils_auth.get_optional_identity(request)
    enforce(authorize(identity, Action.LIST_FRANCHISES))
    qp = request.query_params or {}
    franchises = [franchise for franchise in get_all_franchises()
                  if utils_data.matches_name_filter(franchise.name_, qp.get('name'))]
    page_franchises, more = utils_db.paginate(franchises, qp.get('page', 0), qp.get('limit', DEFAULT_PAGE_LIMIT))
    with_admins = identity is not None and has_role(identity.roles, Role.ADMIN)
    logger.info(f"endpoint_get_franchises ::: returning franchises={[f.id_ for f in page_franchises]}")
    return Response(status_code=http200, body={
        'franchises': [franchise.to_ui(with_admins=with_admins) for franchise in page_franchises],
        'more': more
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_user_franchises(request, user_id) -> Response:
    """
    Someone else's franchises are not an error, the answer is just empty
    """
    decision = authorize(request.auth_result['identity'], Action.GET_USER_FRANCHISES, user_id)
    if not decision.allowed:
        logger.info(f'endpoint_get_user_franchises ::: {decision.reason}, returning empty list')
        return Response(status_code=http200, body=[])
    franchises = [franchise for franchise in get_all_franchises() if user_id in franchise.admins]
    return Response(status_code=http200, body=[franchise.to_ui() for franchise in franchises])


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_create_franchise(request) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.CREATE_FRANCHISE))
    body = utils_data.parse_raw_body(request)
    name = body.get('name')
    if not isinstance(name, str) or not name.strip():
        raise exceptions.MandatoryFieldsAreNotFilled('franchise name is required')
    admins_body = body.get('admins', [])
    if not isinstance(admins_body, list):
        raise exceptions.ValidationException('admins must be a list')

    admin_users = []
    for admin in admins_body:
        email = admin.get('email') if isinstance(admin, dict) else None
        try:
            admin_users.append(User.init_by_email(email or ''))
        except exceptions.RecordNotFound:
            raise exceptions.RecordNotFound(f'unknown user for franchise admin {email} provided')

    franchise = Franchise(
        str(uuid4()),
        name_=name.strip(),
        admins=list(dict.fromkeys(user.id_ for user in admin_users)),
        created_by=identity.id_
    )
    franchise._create_db_record()
    for user in admin_users:
        user.add_role(RoleAssignment(Role.FRANCHISEE, franchise.id_))
    logger.info(f'endpoint_create_franchise ::: franchise {franchise.id_} created by {identity.id_}')
    return Response(status_code=http200, body=franchise.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_delete_franchise(request, franchise_id) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.DELETE_FRANCHISE))
    franchise = Franchise.find_by_id(franchise_id)
    if franchise is not None:
        franchise.delete()
        logger.info(f'endpoint_delete_franchise ::: franchise {franchise_id} deleted by {identity.id_}')
    return Response(status_code=http200, body={'message': 'franchise deleted'})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_create_store(request, franchise_id) -> Response:
    identity = request.auth_result['identity']
    franchise = Franchise.find_by_id(franchise_id)
    enforce(authorize(identity, Action.CREATE_STORE, franchise))
    body = utils_data.parse_raw_body(request)
    name = body.get('name')
    if not isinstance(name, str) or not name.strip():
        raise exceptions.MandatoryFieldsAreNotFilled('store name is required')

    store = Store(str(uuid4()), franchise.id_, name_=name.strip(), created_by=identity.id_)
    store._create_db_record()
    logger.info(f'endpoint_create_store ::: store {store.id_} created in franchise {franchise.id_}')
    return Response(status_code=http200, body={'id': store.id_, 'franchiseId': franchise.id_, 'name': store.name_})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_delete_store(request, franchise_id, store_id) -> Response:
    identity = request.auth_result['identity']
    franchise = Franchise.find_by_id(franchise_id)
    enforce(authorize(identity, Action.DELETE_STORE, franchise))
    Store(store_id, franchise.id_)._delete_db_record()
    logger.info(f'endpoint_delete_store ::: store {store_id} of franchise {franchise.id_} deleted')
    return Response(status_code=http200, body={'message': 'store deleted'})
