SERVICE_NAME = 'JWT Pizza'
DEFAULT_SERVICE_VERSION = '20240101.000000'

DEFAULT_TABLE_NAME = 'pizza-service'

JWT_ALGORITHM = 'HS256'
DEFAULT_TOKEN_TTL_HOURS = 24

DEFAULT_FACTORY_URL = 'https://pizza-factory.cs329.click'
DEFAULT_FACTORY_TIMEOUT = 10

DEFAULT_PAGE_LIMIT = 10

UNAUTHORIZED_MESSAGE = 'unauthorized'
INVALID_CREDENTIALS_MESSAGE = 'invalid credentials'
REGISTER_REQUIRED_FIELDS_MESSAGE = 'name, email, and password are required'
FULFILLMENT_FAILED_MESSAGE = 'Failed to fulfill order at factory'
