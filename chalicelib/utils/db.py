import functools
import os
import time
from random import uniform

import boto3 as boto3
from botocore.exceptions import ClientError

from chalicelib.constants.constants import DEFAULT_TABLE_NAME
from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import get_dynamodb_resource
from chalicelib.utils.logger import logger, log_exception

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
need_return_capacity = ('put_item', 'get_item', 'update_item', 'delete_item')

_TABLES = {}


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put item in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={list(kwargs)}')
        max_retries = 15
        timeout_seed = uniform(0.1, 0.99)

        if func.__name__ not in need_return_capacity:
            raise RuntimeError("This decorator only for DynamoDB methods")
        kwargs.update({'ReturnConsumedCapacity': 'TOTAL'})

        for retries in range(max_retries):
            try:
                result = func(*args, **kwargs)
                logger.info(f'{func.__name__}:: SUCCESS, consumed={result.get("ConsumedCapacity")}')
                return result

            except ClientError as e:
                if e.response['Error']['Code'] not in RETRY_EXCEPTIONS:
                    log_exception(e, msg=f'Got exception while trying to {func.__name__}: ')
                    raise
                logger.warning(f'{func.__name__}:: throttled, retry {retries + 1} of {max_retries}')
                time.sleep(timeout_seed * 2 ** min(retries, 5) / 10)

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={max_retries} of DB retries has exceeded"
        )

    return wrapper


def get_table(table_name: str) -> boto3.session.Session.resource:
    gl_table = _TABLES.get(table_name)
    if gl_table is None:
        gl_table = get_dynamodb_resource().Table(table_name)

        gl_table.put_item = exp_db_backoff(gl_table.put_item)
        gl_table.get_item = exp_db_backoff(gl_table.get_item)
        gl_table.update_item = exp_db_backoff(gl_table.update_item)
        gl_table.delete_item = exp_db_backoff(gl_table.delete_item)
        _TABLES[table_name] = gl_table

    return gl_table


def reset_tables():
    _TABLES.clear()


def get_gen_table():
    return get_table(os.environ.get('GEN_TABLE_NAME', DEFAULT_TABLE_NAME))


def put_db_record(item: dict, table=get_gen_table, unique: bool = False):
    """
    unique=True refuses to overwrite an existing record with the same keys
    """
    kwargs = {'Item': item}
    if unique:
        kwargs['ConditionExpression'] = 'attribute_not_exists(partkey)'
    try:
        table().put_item(**kwargs)
    except ClientError as error:
        if error.response['Error']['Code'] == 'ConditionalCheckFailedException':
            raise exceptions.RecordAlreadyExists(
                f"record partkey={item['partkey']} sortkey={item['sortkey']} already exists")
        raise


def update_db_record(key: dict, update_body: dict, allowed_attrs_to_update: list, table=get_gen_table):
    set_expr, expr_attr_values, expr_attr_names = generate_update_expression(
        update_body=update_body,
        allowed_attrs_to_update=allowed_attrs_to_update
    )
    if not set_expr:
        logger.info(f"update_db_record ::: nothing to update for {key=}")
        return None

    return table().update_item(
        Key=key,
        ReturnValues="ALL_NEW",
        UpdateExpression=set_expr,
        ExpressionAttributeValues=expr_attr_values,
        ExpressionAttributeNames=expr_attr_names
    )


def generate_update_expression(update_body: dict, allowed_attrs_to_update: list):
    """
    SET expression for the allowed attributes present in update_body, None values are skipped.
    Attribute names always go through placeholders, many plain words are reserved in DynamoDB
    """
    expr_attr_values = {}
    expr_attr_names = {}
    set_parts = []
    for field in allowed_attrs_to_update:
        field_value = update_body.get(field)
        if field_value is None:
            continue
        expr_attr_names[f'#{field}'] = field
        expr_attr_values[f':{field}'] = field_value
        set_parts.append(f'#{field}=:{field}')

    set_expr = f'SET {", ".join(set_parts)}' if set_parts else None
    return set_expr, expr_attr_values, expr_attr_names


def get_db_item(partkey, sortkey, table=get_gen_table):
    result = table().get_item(
        Key={
            'partkey': partkey,
            'sortkey': sortkey
        }
    )

    if 'Item' in result:
        return result['Item']
    else:
        logger.warning(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
        raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')


def delete_db_record(key: dict, table=get_gen_table):
    table().delete_item(Key=key)
    logger.info(f"delete_db_record ::: record {key=} deleted")


def query_items_paginated(key_condition_expression, filter_expression=None, table=get_gen_table, start_key=None):
    kwargs = {'KeyConditionExpression': key_condition_expression}
    if filter_expression:
        kwargs['FilterExpression'] = filter_expression
    if start_key:
        kwargs['ExclusiveStartKey'] = start_key

    resp = table().query(**kwargs)
    return resp['Items'], resp.get('LastEvaluatedKey')


def query_items_paged(key_condition_expression, filter_expression=None, table=get_gen_table):
    """ Reads the whole partition, following LastEvaluatedKey
        since one query page stops at 1mb of data"""
    all_items, start_key = [], None
    while True:
        items, start_key = query_items_paginated(
            key_condition_expression,
            filter_expression=filter_expression,
            table=table,
            start_key=start_key
        )
        all_items.extend(items)
        if start_key is None:
            return all_items


def paginate(items: list, page, limit):
    """
    Slices an already filtered list, returns (page_items, more)
    """
    try:
        page, limit = int(page or 0), int(limit or 0)
    except ValueError:
        raise exceptions.ValidationException('page and limit must be integers')
    if limit <= 0:
        return items, False
    start = max(page, 0) * limit
    return items[start:start + limit], len(items) > start + limit
