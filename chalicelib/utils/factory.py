"""
Client of the pizza factory, the external service which accepts placed orders
and returns a signed order token plus a report link.

One synchronous attempt per order, bounded by FACTORY_TIMEOUT. Every failure
(non 2xx answer, transport error, timeout) comes back as FactoryResult(ok=False)
so the caller decides how to report it.
"""
import json
import os
from typing import NamedTuple, Optional

import httpx

from chalicelib.constants.constants import DEFAULT_FACTORY_URL, DEFAULT_FACTORY_TIMEOUT
from chalicelib.utils.logger import logger, CustomJSONEncoder


class FactoryResult(NamedTuple):
    ok: bool
    jwt: Optional[str] = None
    report_url: Optional[str] = None
    status_code: Optional[int] = None


class FactoryClient:

    def __init__(self, url: str = None, api_key: str = None, timeout: float = None, transport=None):
        self.url = (url or os.environ.get('FACTORY_URL', DEFAULT_FACTORY_URL)).rstrip('/')
        self.api_key = api_key if api_key is not None else os.environ.get('FACTORY_API_KEY', '')
        self.timeout = float(timeout or os.environ.get('FACTORY_TIMEOUT', DEFAULT_FACTORY_TIMEOUT))
        # httpx.MockTransport in tests
        self.transport = transport

    def fulfill(self, diner: dict, order: dict) -> FactoryResult:
        logger.info(f"fulfill ::: sending order {order.get('id')} to factory {self.url}")
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    f'{self.url}/api/order',
                    content=json.dumps({'diner': diner, 'order': order}, cls=CustomJSONEncoder),
                    headers={'Authorization': f'Bearer {self.api_key}', 'Content-Type': 'application/json'}
                )
        except httpx.TimeoutException as error:
            logger.error(f'fulfill ::: factory timed out after {self.timeout}s, {error=}')
            return FactoryResult(ok=False)
        except httpx.RequestError as error:
            logger.error(f'fulfill ::: factory unreachable, {error=}')
            return FactoryResult(ok=False)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        result = FactoryResult(
            ok=response.is_success,
            jwt=body.get('jwt'),
            report_url=body.get('reportUrl'),
            status_code=response.status_code
        )
        if result.ok:
            logger.info(f"fulfill ::: order {order.get('id')} accepted by factory")
        else:
            logger.error(f"fulfill ::: factory refused order {order.get('id')}, status={response.status_code}")
        return result
