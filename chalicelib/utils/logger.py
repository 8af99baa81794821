import json
import os
import uuid
from datetime import datetime, date
from decimal import Decimal
from logging import setLoggerClass, Logger, NOTSET, getLogger, StreamHandler, Formatter
from time import mktime, struct_time

from chalice.app import Request

SENSITIVE_FIELDS = ('password', 'password_hash', 'token', 'jwt')


class CustomLogger(Logger):

    def __init__(self, name, level=NOTSET):
        self.current_request_id = None
        super(CustomLogger, self).__init__(name, level)

    def __change_msg(self, msg):
        return f'[{self.current_request_id}] : {msg}'

    def debug(self, msg, *args, **kwargs):
        super(CustomLogger, self).debug(self.__change_msg(msg), *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        super(CustomLogger, self).info(self.__change_msg(msg), *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        super(CustomLogger, self).warning(self.__change_msg(msg), *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        super(CustomLogger, self).error(self.__change_msg(msg), *args, **kwargs)

    def log(self, level, msg, *args, **kwargs):
        super(CustomLogger, self).log(level, self.__change_msg(msg), *args, **kwargs)

    def exception(self, msg, *args, exc_info=True, **kwargs):
        # Logger.exception goes through self.error, which adds the prefix
        super(CustomLogger, self).exception(msg, *args, exc_info=exc_info, **kwargs)


def conf_logger(level):
    setLoggerClass(CustomLogger)
    logger_ = getLogger(__name__)
    console_handler = StreamHandler()
    console_handler.setLevel(level)
    formatter = Formatter('%(asctime)s - %(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    if logger_.hasHandlers():
        logger_.handlers.clear()
    logger_.addHandler(console_handler)
    logger_.setLevel(level)
    return logger_


logger = conf_logger(os.environ.get('LOG_LEVEL', 'DEBUG').upper())


def bind_request_id(request: Request) -> str:
    """
    Stamps the short request id on every following log line
    and returns it
    """
    lambda_context = getattr(request, 'lambda_context', None)
    request_id = getattr(lambda_context, 'aws_request_id', None) or str(uuid.uuid4())
    logger.current_request_id = request_id.split('-')[-1]
    return logger.current_request_id


def mask_sensitive(item):
    if isinstance(item, dict):
        return {
            key: '***' if key in SENSITIVE_FIELDS else mask_sensitive(value)
            for key, value in item.items()
        }
    if isinstance(item, list):
        return [mask_sensitive(value) for value in item]
    return item


def log_request(request: Request):
    bind_request_id(request)
    headers = dict(request.headers or {})
    headers.pop('authorization', None)
    request_dict = {
        'method': request.method,
        'resource_path': (request.context or {}).get('resourcePath'),
        'uri_params': request.uri_params,
        'query_params': dict(request.query_params or {}),
        'headers': headers
    }
    logger.info(f"Request: {json.dumps(request_dict, cls=CustomJSONEncoder)}")
    if headers.get('content-type', '') == 'application/json' and request.raw_body:
        try:
            body = mask_sensitive(json.loads(request.raw_body))
        except ValueError:
            body = '<malformed json>'
        logger.debug(f"Request body: {json.dumps(body, cls=CustomJSONEncoder)}")


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, value):
        if isinstance(value, datetime):
            return str(value)
        if isinstance(value, date):
            return str(value)
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, struct_time):
            return str(datetime.fromtimestamp(mktime(value)))
        # Any other serializer if needed
        return super(CustomJSONEncoder, self).default(value)


def log_exception(error: Exception, status_code: int = 400, msg: str = "", *args, **kwargs):
    allowed_log_levels = {
        'info': logger.info,
        'warning': logger.warning,
        'debug': logger.debug,
        'error': logger.error,
        'exception': logger.exception,
    }
    level = getattr(error, 'LEVEL', 'exception')
    log_level = 'exception' if level not in allowed_log_levels.keys() else level
    allowed_log_levels[log_level](msg=json.dumps({
        'error': str(error),
        'exception': error.__class__.__name__,
        'message': str(msg),
        'level': log_level,
        'status_code': status_code,
        'args': args,
        'kwargs': kwargs
    }, cls=CustomJSONEncoder))
