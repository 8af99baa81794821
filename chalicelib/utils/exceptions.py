__all__ = ["NotAuthorizedException", "AccessDenied", "RecordNotFound", "RecordAlreadyExists",
           "NumberOfRetriesExceeded", "MandatoryFieldsAreNotFilled", "ValidationException",
           "FulfillmentFailed", "ConfigurationError"]


# Authentication / authorization
class NotAuthorizedException(Exception):
    LEVEL = 'warning'


class AccessDenied(Exception):
    LEVEL = 'warning'


# Generic Exceptions
class MandatoryFieldsAreNotFilled(Exception):
    LEVEL = 'warning'


# DynamoDB exceptions
class RecordNotFound(Exception):
    LEVEL = 'warning'


class RecordAlreadyExists(Exception):
    LEVEL = 'warning'


# DB Performance Exception
class NumberOfRetriesExceeded(Exception):
    pass


# Deployment
class ConfigurationError(Exception):
    LEVEL = 'error'


# Validations exceptions
class ValidationException(Exception):
    LEVEL = 'warning'


# Pizza factory
class FulfillmentFailed(Exception):
    LEVEL = 'error'

    def __init__(self, message, report_url=None):
        super().__init__(message)
        self.report_url = report_url
