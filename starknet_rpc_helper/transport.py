import json
from typing import Any, Dict, List, Optional, Tuple

import httpx

from starknet_rpc_helper.errors import INVALID_PARAMS
from starknet_rpc_helper.errors import INVALID_REQUEST
from starknet_rpc_helper.errors import METHOD_NOT_FOUND
from starknet_rpc_helper.errors import PARSE_ERROR
from starknet_rpc_helper.fixtures import FixtureProvider
from starknet_rpc_helper.methods import Operation
from starknet_rpc_helper.utils.default_logger import default_logger
from starknet_rpc_helper.utils.exceptions import RPCError
from starknet_rpc_helper.utils.models.settings_model import Environment


logger = default_logger.bind(module='FixtureTransport')

# Placeholder node url for the in-process transport, never resolved
FIXTURE_RPC_URL = 'http://fixture.starknet.invalid/rpc'


def route_key(method: str, params: Any) -> Tuple[str, str]:
    return method, json.dumps(params, sort_keys=True, separators=(',', ':'))


class FixtureTransport(httpx.MockTransport):
    """
    In-process httpx transport that answers JSON-RPC calls from a route table.

    Each route maps (method, params) to either a raw `result` or an error
    object, so responses go through the same HTTP/JSON path as a live node.
    """

    def __init__(self):
        self._routes: Dict[Tuple[str, str], Dict[str, Any]] = {}
        super().__init__(self._handle)

    @classmethod
    def from_provider(cls, provider: FixtureProvider, environment: Environment = Environment.MOCK) -> 'FixtureTransport':
        """Build a transport serving every case the provider defines for `environment`."""
        transport = cls()
        for operation in Operation:
            for case in provider.cases_for(environment, operation):
                if case.expects_error:
                    transport.register(operation.value, case.params(), error=case.expected_error)
                else:
                    transport.register(operation.value, case.params(), result=case.raw_result)
        logger.debug('Fixture transport serving {} routes', len(transport._routes))
        return transport

    def register(self, method: str, params: List[Any], result: Any = None, error: Optional[RPCError] = None):
        if (result is None) == (error is None):
            raise ValueError('route needs exactly one of result or error')
        if error is not None:
            self._routes[route_key(method, params)] = {'error': error.to_dict()}
        else:
            self._routes[route_key(method, params)] = {'result': result}

    @property
    def methods(self):
        return {method for method, _ in self._routes}

    def _answer(self, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict) or not isinstance(payload.get('method'), str):
            return {'jsonrpc': '2.0', 'id': None, 'error': INVALID_REQUEST.to_dict()}
        request_id = payload.get('id')
        method = payload['method']
        route = self._routes.get(route_key(method, payload.get('params', [])))
        if route is None:
            error = INVALID_PARAMS if method in self.methods else METHOD_NOT_FOUND
            logger.trace('No fixture route for {} {}', method, payload.get('params'))
            route = {'error': error.to_dict()}
        return {'jsonrpc': '2.0', 'id': request_id, **route}

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        try:
            payload = json.loads(request.content)
        except ValueError:
            return httpx.Response(200, json={'jsonrpc': '2.0', 'id': None, 'error': PARSE_ERROR.to_dict()})
        if isinstance(payload, list):
            return httpx.Response(200, json=[self._answer(item) for item in payload])
        return httpx.Response(200, json=self._answer(payload))
