"""
Role based access rules for every endpoint.

authorize() only decides, it never touches the request or the db:
the caller loads the identity (authenticated user or None) and the target
(user id, franchise entity...) and then calls enforce() on the decision.
"""
from enum import Enum
from typing import NamedTuple, Optional, Any, Iterable

from chalicelib.constants import status_codes
from chalicelib.constants.constants import UNAUTHORIZED_MESSAGE
from chalicelib.utils.exceptions import NotAuthorizedException, AccessDenied, ValidationException


class Role(str, Enum):
    ADMIN = 'admin'
    DINER = 'diner'
    FRANCHISEE = 'franchisee'


class RoleAssignment(NamedTuple):
    role: Role
    object_id: Optional[str] = None

    @classmethod
    def from_dict(cls, item: dict) -> 'RoleAssignment':
        try:
            role = Role(item.get('role'))
        except ValueError:
            raise ValidationException(f"unknown role {item.get('role')}")
        object_id = item.get('object_id') or item.get('objectId')
        if role is Role.FRANCHISEE and not object_id:
            raise ValidationException('franchisee role requires a franchise id')
        return cls(role, str(object_id) if object_id else None)

    def to_db(self) -> dict:
        if self.object_id is None:
            return {'role': self.role.value}
        return {'role': self.role.value, 'object_id': self.object_id}

    def to_ui(self) -> dict:
        if self.object_id is None:
            return {'role': self.role.value}
        return {'role': self.role.value, 'objectId': self.object_id}


class Action(str, Enum):
    REGISTER = 'register'
    LOGIN = 'login'
    LOGOUT = 'logout'
    LIST_FRANCHISES = 'list_franchises'
    GET_USER_FRANCHISES = 'get_user_franchises'
    CREATE_FRANCHISE = 'create_franchise'
    DELETE_FRANCHISE = 'delete_franchise'
    CREATE_STORE = 'create_store'
    DELETE_STORE = 'delete_store'
    GET_MENU = 'get_menu'
    ADD_MENU_ITEM = 'add_menu_item'
    GET_ORDERS = 'get_orders'
    CREATE_ORDER = 'create_order'
    GET_USER = 'get_user'
    UPDATE_USER = 'update_user'
    DELETE_USER = 'delete_user'
    LIST_USERS = 'list_users'


PUBLIC_ACTIONS = frozenset({Action.REGISTER, Action.LOGIN, Action.LIST_FRANCHISES, Action.GET_MENU})
ADMIN_ACTIONS = frozenset({Action.CREATE_FRANCHISE, Action.DELETE_FRANCHISE, Action.ADD_MENU_ITEM})
SELF_OR_ADMIN_ACTIONS = frozenset({Action.GET_USER, Action.UPDATE_USER, Action.DELETE_USER})
FRANCHISE_ADMIN_ACTIONS = frozenset({Action.CREATE_STORE, Action.DELETE_STORE})
AUTHENTICATED_ACTIONS = frozenset({Action.LOGOUT, Action.GET_ORDERS, Action.CREATE_ORDER, Action.LIST_USERS})


class Decision(NamedTuple):
    allowed: bool
    reason: str = ''
    status_code: int = status_codes.http200


ALLOW = Decision(True)


def deny(reason: str = UNAUTHORIZED_MESSAGE, status_code: int = status_codes.http403) -> Decision:
    return Decision(False, reason, status_code)


def has_role(roles: Iterable[RoleAssignment], role: Role, object_id: Optional[str] = None) -> bool:
    return any(
        assignment.role is role and (object_id is None or assignment.object_id == str(object_id))
        for assignment in roles
    )


def authorize(identity, action: Action, target: Any = None) -> Decision:
    """
    identity: authenticated user (anything with id_ and roles) or None
    target: depends on action - a user id for user actions,
            a franchise (with id_ and admins) or None for store actions
    """
    if action in PUBLIC_ACTIONS:
        return ALLOW
    if identity is None:
        return deny(UNAUTHORIZED_MESSAGE, status_codes.http401)

    is_admin = has_role(identity.roles, Role.ADMIN)

    if action in AUTHENTICATED_ACTIONS:
        return ALLOW
    if action in ADMIN_ACTIONS:
        return ALLOW if is_admin else deny(f'unable to {action.value.replace("_", " ")}')
    if action in SELF_OR_ADMIN_ACTIONS or action is Action.GET_USER_FRANCHISES:
        if is_admin or str(target) == str(identity.id_):
            return ALLOW
        return deny(UNAUTHORIZED_MESSAGE)
    if action in FRANCHISE_ADMIN_ACTIONS:
        if target is None:
            return deny('unknown franchise')
        if is_admin or has_role(identity.roles, Role.FRANCHISEE, target.id_) \
                or identity.id_ in (target.admins or []):
            return ALLOW
        return deny(f'unable to {action.value.replace("_", " ")}')
    raise ValueError(f'No access rule for {action=}')


def enforce(decision: Decision) -> None:
    if decision.allowed:
        return
    if decision.status_code == status_codes.http401:
        raise NotAuthorizedException(decision.reason)
    raise AccessDenied(decision.reason)
