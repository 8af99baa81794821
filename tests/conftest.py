import os

os.environ.update({
    'AWS_ACCESS_KEY_ID': 'testing',
    'AWS_SECRET_ACCESS_KEY': 'testing',
    'AWS_SECURITY_TOKEN': 'testing',
    'AWS_SESSION_TOKEN': 'testing',
    'AWS_DEFAULT_REGION': 'eu-central-1',
    'AWS_REGION': 'eu-central-1',
    'GEN_TABLE_NAME': 'pizza-service-test',
    'JWT_SECRET': 'test-secret-which-is-long-enough-for-hs256',
    'LOG_LEVEL': 'DEBUG',
})
os.environ.pop('ENDPOINT_URL', None)

import boto3
import pytest
from moto import mock_aws

from chalicelib import orders
from chalicelib.utils import db


@pytest.fixture(autouse=True)
def gen_table():
    """
    Every test gets its own empty in-memory table
    """
    with mock_aws():
        db.reset_tables()
        boto3.resource('dynamodb', region_name=os.environ['AWS_REGION']).create_table(
            TableName=os.environ['GEN_TABLE_NAME'],
            KeySchema=[
                {'AttributeName': 'partkey', 'KeyType': 'HASH'},
                {'AttributeName': 'sortkey', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'partkey', 'AttributeType': 'S'},
                {'AttributeName': 'sortkey', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )
        yield db.get_gen_table()
        db.reset_tables()


@pytest.fixture(autouse=True)
def reset_factory_client():
    yield
    orders.set_factory_client(None)
