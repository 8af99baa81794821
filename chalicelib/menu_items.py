from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Tuple
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app, exceptions
from chalicelib.utils.logger import logger, log_request
from chalicelib.utils.permissions import Action, authorize, enforce


class MenuItem(EntityBase):
    pk = keys_structure.menu_items_pk
    sk = keys_structure.menu_items_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'created_by': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'title': lambda x: isinstance(x, str) and bool(x.strip()),
        'description': lambda x: isinstance(x, str),
        'price': lambda x: isinstance(x, Decimal) and x >= 0
    }

    optional_fields_validation = {
        'image': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.title: str = kwargs.get('title')
        self.description: str = kwargs.get('description', '')
        self.image: str = kwargs.get('image')
        self.price: Decimal = utils_data.to_decimal(kwargs.get('price'))
        self.created_by: str = kwargs.get('created_by')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec="seconds")
        self.record_type = 'menu_item'

    @classmethod
    def init_get_by_id(cls, menu_item_id):
        logger.info("init_get_by_id ::: started")
        return cls(menu_item_id)._load()

    @classmethod
    def get_menu(cls) -> List['MenuItem']:
        records = utils_db.query_items_paged(Key('partkey').eq(cls.pk))
        return sorted((cls(**record) for record in records), key=lambda item: (item.date_created, item.id_))

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(menu_item_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'title': self.title,
            'description': self.description,
            'image': self.image,
            'price': self.price,
            'created_by': self.created_by,
            'date_created': self.date_created
        }

    def _to_ui(self):
        return {
            'id': self.id_,
            'title': self.title,
            'description': self.description,
            'image': self.image,
            'price': self.price
        }


def get_menu_ui() -> List[Dict]:
    return [item.to_ui() for item in MenuItem.get_menu()]


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_menu(request) -> Response:
    log_request(request)
    enforce(authorize(None, Action.GET_MENU))
    menu = get_menu_ui()
    logger.info(f"endpoint_get_menu ::: returning menu items={[item['id'] for item in menu]}")
    return Response(status_code=http200, body=menu)


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_add_menu_item(request) -> Response:
    """
    Admin operation, answers with the whole menu
    """
    identity = request.auth_result['identity']
    enforce(authorize(identity, Action.ADD_MENU_ITEM))
    body = utils_data.parse_raw_body(request)
    if not isinstance(body.get('title'), str) or not body['title'].strip():
        raise exceptions.MandatoryFieldsAreNotFilled('title and price are required')
    price = utils_data.to_decimal(body.get('price'))
    if price is None:
        raise exceptions.MandatoryFieldsAreNotFilled('title and price are required')
    if price < 0:
        raise exceptions.ValidationException('price must not be negative')

    menu_item = MenuItem(
        str(uuid4()),
        title=body['title'].strip(),
        description=body.get('description', ''),
        image=body.get('image'),
        price=price,
        created_by=identity.id_
    )
    menu_item._create_db_record()
    logger.info(f'endpoint_add_menu_item ::: menu item {menu_item.id_} created by {identity.id_}')
    return Response(status_code=http200, body=get_menu_ui())
