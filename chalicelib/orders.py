from datetime import datetime
from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import DEFAULT_PAGE_LIMIT, FULFILLMENT_FAILED_MESSAGE
from chalicelib.constants.status_codes import http200
from chalicelib.franchises import Franchise, Store
from chalicelib.menu_items import MenuItem
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app, exceptions
from chalicelib.utils.factory import FactoryClient
from chalicelib.utils.logger import logger
from chalicelib.utils.permissions import Action, authorize, enforce

_factory_client = None


def get_factory_client():
    global _factory_client
    if _factory_client is None:
        _factory_client = FactoryClient()
    return _factory_client


def set_factory_client(client) -> None:
    """
    Swaps the client used for fulfillment, anything with fulfill(diner, order) works.
    None restores the default http client on next use
    """
    global _factory_client
    _factory_client = client


def _is_valid_item(item) -> bool:
    return isinstance(item, dict) \
        and isinstance(item.get('menu_id'), str) \
        and isinstance(item.get('description'), str) \
        and isinstance(item.get('price'), Decimal) and item['price'] >= 0


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'franchise_id': lambda x: isinstance(x, str),
        'store_id': lambda x: isinstance(x, str),
        'items': lambda x: isinstance(x, list) and len(x) > 0 and all(_is_valid_item(item) for item in x),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'fulfilled': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'report_url': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = user_id
        self.franchise_id: str = kwargs.get('franchise_id')
        self.store_id: str = kwargs.get('store_id')
        self.items: List[Dict] = kwargs.get('items', [])
        self.fulfilled: bool = kwargs.get('fulfilled', False)
        self.report_url: str = kwargs.get('report_url')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec="microseconds")
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'order'

    @classmethod
    def init_request_create_order(cls, request):
        logger.info("init_request_create_order ::: started")
        identity = request.auth_result['identity']
        body = utils_data.parse_raw_body(request)
        franchise_id, store_id, items = body.get('franchiseId'), body.get('storeId'), body.get('items')
        if franchise_id in (None, '') or store_id in (None, '') or not isinstance(items, list) or not items:
            raise exceptions.MandatoryFieldsAreNotFilled('franchiseId, storeId, and items are required')
        order = cls(
            str(uuid4()).split('-')[0],
            identity.id_,
            franchise_id=str(franchise_id),
            store_id=str(store_id),
            items=[
                {
                    'menu_id': str(item.get('menuId')) if item.get('menuId') is not None else None,
                    'description': item.get('description'),
                    'price': utils_data.to_decimal(item.get('price'))
                } if isinstance(item, dict) else item
                for item in items
            ]
        )
        if not all(_is_valid_item(item) for item in order.items):
            raise exceptions.ValidationException('each order item needs menuId, description and a non-negative price')
        return order

    @classmethod
    def get_user_orders(cls, user_id) -> List['Order']:
        records = utils_db.query_items_paged(Key('partkey').eq(cls.pk.format(user_id=user_id)))
        return sorted((cls(**record) for record in records),
                      key=lambda order: (order.date_created, order.id_), reverse=True)

    def check_references(self):
        """
        The franchise, the store and every ordered menu item must exist
        """
        if Franchise.find_by_id(self.franchise_id) is None:
            raise exceptions.RecordNotFound(f'unknown franchise {self.franchise_id}')
        try:
            Store.init_get_by_id(self.franchise_id, self.store_id)
        except exceptions.RecordNotFound:
            raise exceptions.RecordNotFound(f'unknown store {self.store_id}')
        for item in self.items:
            try:
                MenuItem.init_get_by_id(item['menu_id'])
            except exceptions.RecordNotFound:
                raise exceptions.RecordNotFound(f"unknown menu item {item['menu_id']}")

    def mark_fulfilled(self, report_url=None):
        self.fulfilled = True
        self.report_url = report_url
        self._update_db_record()

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(user_id=self.user_id), self.sk.format(order_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'franchise_id': self.franchise_id,
            'store_id': self.store_id,
            'items': self.items,
            'fulfilled': self.fulfilled,
            'report_url': self.report_url,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def _to_ui(self):
        return {
            'id': self.id_,
            'dinerId': self.user_id,
            'franchiseId': self.franchise_id,
            'storeId': self.store_id,
            'date': self.date_created,
            'items': [
                {'menuId': item.get('menu_id'), 'description': item.get('description'), 'price': item.get('price')}
                for item in self.items
            ],
            'fulfilled': self.fulfilled
        }


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_orders(request) -> Response:
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.GET_ORDERS))
    qp = request.query_params or {}
    page = qp.get('page', 0)
    orders, more = utils_db.paginate(Order.get_user_orders(identity.id_), page, qp.get('limit', DEFAULT_PAGE_LIMIT))
    return Response(status_code=http200, body={
        'dinerId': identity.id_,
        'orders': [order.to_ui() for order in orders],
        'page': int(page),
        'more': more
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_create_order(request) -> Response:
    """
    The order is stored before the factory is called and stays stored
    whatever the factory answers, a failed fulfillment is not retried
    """
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.CREATE_ORDER))
    order = Order.init_request_create_order(request)
    order.check_references()
    order._create_db_record()

    diner = {'id': identity.id_, 'name': identity.name, 'email': identity.email}
    result = get_factory_client().fulfill(diner, order.to_ui())
    if not result.ok:
        logger.error(f'endpoint_create_order ::: order {order.id_} was not fulfilled, status={result.status_code}')
        raise exceptions.FulfillmentFailed(FULFILLMENT_FAILED_MESSAGE, report_url=result.report_url)

    order.mark_fulfilled(result.report_url)
    logger.info(f'endpoint_create_order ::: order {order.id_} fulfilled')
    return Response(status_code=http200, body={
        'order': order.to_ui(),
        'jwt': result.jwt,
        'followLinkToEndChaos': result.report_url
    })
