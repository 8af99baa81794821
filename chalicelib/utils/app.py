import functools
from typing import Callable

from botocore.exceptions import ClientError
from chalice import Response

from chalicelib.constants import status_codes
from chalicelib.constants.constants import FULFILLMENT_FAILED_MESSAGE
from chalicelib.utils.exceptions import MandatoryFieldsAreNotFilled, ValidationException, NotAuthorizedException, \
    AccessDenied, RecordNotFound, RecordAlreadyExists, FulfillmentFailed
from chalicelib.utils.logger import logger, log_exception


def error_response(error: Exception, msg: str = "", status_code: int = 400, body: dict = None, *args, **kwargs):
    log_exception(error=error, msg=msg, status_code=status_code, *args, **kwargs)
    return Response(
        body={
            'error': str(error),
            'exception': error.__class__.__name__,
            'message': str(msg),
            'error_id': getattr(logger, 'current_request_id'),
            'level': getattr(error, 'LEVEL', 'exception'),
            **(body or {})
        },
        status_code=status_code,
        headers={'Content-Type': 'application/json'}
    )


def request_exception_handler(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            logger.info(f'Calling function {func.__name__}')
            return func(*args, **kwargs)
        except (MandatoryFieldsAreNotFilled, ValidationException) as validation_error:
            return error_response(error=validation_error, msg=str(validation_error),
                                  status_code=status_codes.http400)
        except NotAuthorizedException as not_authorized:
            return error_response(error=not_authorized, msg=str(not_authorized),
                                  status_code=status_codes.http401)
        except AccessDenied as access_denied:
            return error_response(error=access_denied, msg=str(access_denied),
                                  status_code=status_codes.http403)
        except RecordNotFound as not_found:
            return error_response(error=not_found, msg=str(not_found),
                                  status_code=status_codes.http404)
        except RecordAlreadyExists as already_exists:
            return error_response(error=already_exists, msg=str(already_exists),
                                  status_code=status_codes.http409)
        except FulfillmentFailed as fulfillment_failed:
            return error_response(error=fulfillment_failed, msg=FULFILLMENT_FAILED_MESSAGE,
                                  status_code=status_codes.http500,
                                  body={'followLinkToEndChaos': fulfillment_failed.report_url})
        except ClientError as client_error:
            return error_response(
                error=client_error,
                msg=f'function = {func.__name__}, storage error = {client_error.response["Error"]["Code"]}',
                status_code=status_codes.http500)
        except Exception as exception:
            return error_response(
                error=exception,
                msg=f'function = {func.__name__}, error = {exception}',
                status_code=status_codes.http500)
    return result


def log_start_finish(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        logger.info(f'{func.__name__} ::: started')
        response = func(*args, **kwargs)
        logger.info(f'{func.__name__} ::: finished')
        return response
    return result
