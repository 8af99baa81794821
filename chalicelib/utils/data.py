import json
from decimal import Decimal
from fnmatch import fnmatchcase

from chalicelib.utils.exceptions import ValidationException


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict, opt_dict=None):
    if opt_dict is None:
        opt_dict = {}
    all_keys = {**base_keys, **opt_dict}
    for key, val in all_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        elif key in dict_to_process.keys():
            dict_to_process.pop(key, None)


def parse_raw_body(chalice_request):
    request_raw_body = chalice_request.raw_body
    if not request_raw_body:
        return {}
    try:
        body = json.loads(request_raw_body)
    except ValueError:
        raise ValidationException('request body is not valid JSON')
    if not isinstance(body, dict):
        raise ValidationException('request body must be a JSON object')
    return fix_values_from_ui(item=body)


def fix_values_from_ui(item):
    """
    Remove keys with None values and transform float to Decimal
    """
    item = cleanup_dict(item, [None])
    result = json.dumps(item)
    return json.loads(result, parse_float=Decimal)


def cleanup_dict(item: dict, list_of_values: list):
    """ Remove None fields in dict with. Supports one nesting.  """

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def matches_name_filter(value, name_filter) -> bool:
    """
    Case-insensitive glob match, '*' is the wildcard. Empty filter matches everything
    """
    if not name_filter or name_filter == '*':
        return True
    return fnmatchcase(str(value or '').lower(), name_filter.lower())


def to_decimal(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
        # NaN and Infinity are not storable in DynamoDB
        return number if number.is_finite() else None
    return None
