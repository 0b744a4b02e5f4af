import asyncio
from sys import stdout
from typing import Any
from typing import Iterable
from typing import List
from typing import Optional
from typing import Union

import httpx
import tenacity
from httpx import AsyncClient
from httpx import AsyncHTTPTransport
from httpx import Limits
from httpx import Timeout
from tenacity import retry
from tenacity import retry_if_exception_type
from tenacity import stop_after_attempt
from tenacity import wait_random_exponential

from starknet_rpc_helper.codec import decode
from starknet_rpc_helper.errors import normalize_rpc_error
from starknet_rpc_helper.fixtures import FixtureProvider
from starknet_rpc_helper.methods import build_params
from starknet_rpc_helper.methods import Operation
from starknet_rpc_helper.methods import RESULT_SHAPES
from starknet_rpc_helper.transport import FIXTURE_RPC_URL
from starknet_rpc_helper.transport import FixtureTransport
from starknet_rpc_helper.utils.default_logger import create_level_filter
from starknet_rpc_helper.utils.default_logger import default_logger
from starknet_rpc_helper.utils.default_logger import FORMAT
from starknet_rpc_helper.utils.exceptions import Cancelled
from starknet_rpc_helper.utils.exceptions import DeadlineExceeded
from starknet_rpc_helper.utils.exceptions import MalformedResponse
from starknet_rpc_helper.utils.exceptions import TransportFailure
from starknet_rpc_helper.utils.models.common_model import BlockID
from starknet_rpc_helper.utils.models.jsonrpc_model import JsonRpcRequest
from starknet_rpc_helper.utils.models.jsonrpc_model import JsonRpcResponse
from starknet_rpc_helper.utils.models.settings_model import Environment
from starknet_rpc_helper.utils.models.settings_model import RPCConfigBase
from starknet_rpc_helper.utils.models.simulation_model import SimulatedTransaction
from starknet_rpc_helper.utils.models.simulation_model import SimulateTransactionInput
from starknet_rpc_helper.utils.models.simulation_model import SimulationFlag
from starknet_rpc_helper.utils.models.trace_model import Trace
from starknet_rpc_helper.utils.models.trace_model import TxnTrace


logger = default_logger.bind(module='StarknetRpcHelper')


class StarknetRpcHelper(object):

    def __init__(
        self,
        rpc_settings: RPCConfigBase,
        debug_mode=False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        fixture_provider: Optional[FixtureProvider] = None,
    ):
        """
        Initializes an instance of the StarknetRpcHelper class.

        Args:
            rpc_settings (RPCConfigBase): The RPC configuration settings to use.
            debug_mode (bool, optional): Adds TRACE and DEBUG stdout sinks. Defaults to False.
            transport (httpx.AsyncBaseTransport, optional): Overrides the transport picked
                from the environment.
            fixture_provider (FixtureProvider, optional): Provider backing the mock
                environment's transport. Defaults to one reading `rpc_settings.fixture_dir`.
        """
        self._debug_mode = debug_mode
        self._rpc_settings = rpc_settings
        self._environment = rpc_settings.environment
        self._nodes = list()
        self._current_node_index = 0
        self._node_count = 0
        self._initialized = False
        self._logger = logger
        self._client = None
        self._transport_override = transport
        self._async_transport = transport
        self._fixture_provider = fixture_provider

        if self._debug_mode:
            self._logger.add(stdout, level='TRACE', format=FORMAT, filter=create_level_filter('TRACE'))
            self._logger.add(stdout, level='DEBUG', format=FORMAT, filter=create_level_filter('DEBUG'))

    @property
    def environment(self) -> Environment:
        return self._environment

    def _build_transport(self) -> httpx.AsyncBaseTransport:
        """
        Picks the transport for the configured environment.

        The mock environment is served in-process from fixture documents; every
        other environment talks HTTP to the configured nodes.
        """
        if self._environment is Environment.MOCK:
            if self._fixture_provider is None:
                self._fixture_provider = FixtureProvider(self._rpc_settings.fixture_dir)
            self._fixture_provider.load()
            return FixtureTransport.from_provider(self._fixture_provider, self._environment)
        return AsyncHTTPTransport(
            limits=Limits(
                max_connections=self._rpc_settings.connection_limits.max_connections,
                max_keepalive_connections=self._rpc_settings.connection_limits.max_keepalive_connections,
                keepalive_expiry=self._rpc_settings.connection_limits.keepalive_expiry,
            ),
        )

    async def _init_http_clients(self):
        """
        Initializes the HTTP client for making RPC requests.

        If the client has already been initialized, this function returns immediately.

        :return: None
        """
        if self._client is not None:
            return
        if self._async_transport is None:
            self._async_transport = self._build_transport()
        self._client = AsyncClient(
            timeout=Timeout(timeout=float(self._rpc_settings.request_time_out)),
            follow_redirects=False,
            transport=self._async_transport,
        )

    async def init(self):
        """
        Initializes the node list and the HTTP client.

        Returns:
            None
        """
        if not self._initialized:
            urls = [node.url for node in self._rpc_settings.full_nodes]
            if not urls and self._environment is Environment.MOCK:
                urls = [FIXTURE_RPC_URL]
            self._node_count = len(urls)
            await self._init_http_clients()
            for url in urls:
                self._nodes.append({'rpc_url': url})
                self._logger.debug('Loaded node {} for environment {}', url, self._environment.value)
            self._initialized = True
            self._logger.debug('RPC client initialized')

    async def close(self):
        """Closes the HTTP client. The helper can be initialized again afterwards."""
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self._async_transport = self._transport_override
        self._nodes = list()
        self._node_count = 0
        self._initialized = False

    async def __aenter__(self):
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def get_current_node(self):
        """
        Returns the current node to use for RPC calls.

        Returns:
            dict: The current node to use for RPC calls.

        Raises:
            Exception: If no full nodes are available.
        """
        if self._node_count == 0:
            raise Exception('No full nodes available')
        return self._nodes[self._current_node_index]

    def _on_node_exception(self, retry_state: tenacity.RetryCallState):
        """
        Callback run by tenacity before another attempt of a failed call.

        Moves the call onto the next node in the pool, wrapping around.

        Args:
            retry_state (tenacity.RetryCallState): The retry state object containing information about the retry.
        """
        exc_idx = retry_state.kwargs['node_idx']
        next_node_idx = (retry_state.kwargs.get('node_idx', 0) + 1) % self._node_count
        retry_state.kwargs['node_idx'] = next_node_idx

        self._logger.warning(
            'Found exception while performing RPC {} on node {} at idx {}. '
            'Injecting next node {} at idx {} | exception: {} ',
            retry_state.fn, self._nodes[exc_idx], exc_idx, self._nodes[next_node_idx],
            next_node_idx, retry_state.outcome.exception(),
        )

    async def _make_rpc_jsonrpc_call(self, rpc_query):
        """
        Posts a JSON-RPC query to a node in the pool and returns the parsed body.

        Only transport failures are attempted again, on the next node, and only
        when the settings allow more than one attempt.

        Args:
            rpc_query (dict): The JSON-RPC request.

        Returns:
            dict: The parsed JSON-RPC response body.

        Raises:
            TransportFailure: If the node could not be reached or answered non-200.
            DeadlineExceeded: If the HTTP request timed out.
            MalformedResponse: If the body is not JSON.
        """
        @retry(
            reraise=True,
            retry=retry_if_exception_type(TransportFailure),
            wait=wait_random_exponential(multiplier=1, max=10),
            stop=stop_after_attempt(self._rpc_settings.retry),
            before_sleep=self._on_node_exception,
        )
        async def f(node_idx):
            node = self._nodes[node_idx]
            rpc_url = node.get('rpc_url')
            try:
                response = await self._client.post(url=rpc_url, json=rpc_query)
            except httpx.TimeoutException as e:
                exc = DeadlineExceeded(
                    request=rpc_query,
                    response=None,
                    underlying_exception=e,
                    extra_info=f'RPC_DEADLINE_EXCEEDED: {rpc_url} | {e!r}',
                )
                self._logger.trace('Timeout in making jsonrpc call, error {}', str(exc))
                raise exc
            except httpx.HTTPError as e:
                exc = TransportFailure(
                    request=rpc_query,
                    response=None,
                    underlying_exception=e,
                    extra_info=f'RPC call error | REQUEST: {rpc_query} | Exception: {e!r}',
                )
                self._logger.trace('Error in making jsonrpc call, error {}', str(exc))
                raise exc

            if response.status_code != 200:
                raise TransportFailure(
                    request=rpc_query,
                    response=(response.status_code, response.text),
                    underlying_exception=None,
                    extra_info=f'RPC_CALL_ERROR: {response.text}',
                )

            try:
                return response.json()
            except ValueError as e:
                raise MalformedResponse(
                    request=rpc_query,
                    response=response.text,
                    underlying_exception=e,
                    extra_info=f'MALFORMED_RESPONSE: body is not JSON: {e}',
                ) from e

        return await f(node_idx=self._current_node_index)

    async def call(self, method: str, params: Union[List[Any], dict], timeout: Optional[float] = None):
        """
        Dispatches one JSON-RPC call and returns the raw `result`.

        Args:
            method (str): JSON-RPC method name.
            params (list or dict): JSON-RPC params.
            timeout (float, optional): Deadline for the whole call, in seconds.

        Returns:
            Any: The undecoded `result` member of the response.

        Raises:
            RPCError: If the node answered with an error object.
            TransportFailure: If the node could not be reached.
            MalformedResponse: If the response is not a JSON-RPC envelope.
            DeadlineExceeded: If `timeout` or the HTTP timeout elapsed.
            Cancelled: If the awaiting task was cancelled before the node answered.
        """
        if not self._initialized:
            await self.init()

        rpc_query = JsonRpcRequest(method=method, params=params).model_dump()
        self._logger.trace('Dispatching {} with params {}', method, params)
        try:
            if timeout is None:
                response_data = await self._make_rpc_jsonrpc_call(rpc_query)
            else:
                response_data = await asyncio.wait_for(self._make_rpc_jsonrpc_call(rpc_query), timeout)
        except asyncio.TimeoutError as e:
            raise DeadlineExceeded(
                request=rpc_query,
                response=None,
                underlying_exception=e,
                extra_info=f'RPC_DEADLINE_EXCEEDED: {method} did not complete within {timeout}s',
            ) from e
        except asyncio.CancelledError as e:
            if isinstance(e, Cancelled):
                raise
            self._logger.debug('Call {} cancelled before the node answered', method)
            raise Cancelled(
                request=rpc_query,
                response=None,
                underlying_exception=e,
                extra_info=f'RPC_CALL_CANCELLED: {method}',
            ) from e

        try:
            envelope = decode(response_data, JsonRpcResponse)
        except MalformedResponse as e:
            e.request = rpc_query
            self._logger.trace('Malformed envelope for {}, error {}', method, str(e))
            raise

        if envelope.is_error:
            error = normalize_rpc_error(envelope.error, request=rpc_query)
            self._logger.trace('Node rejected {}: {!r}', method, error)
            raise error
        return envelope.result

    async def _typed_call(self, operation: Operation, request: Any, timeout: Optional[float] = None):
        params = build_params(operation, request)
        raw_result = await self.call(operation.value, params, timeout=timeout)
        try:
            return decode(raw_result, RESULT_SHAPES[operation])
        except MalformedResponse as e:
            e.request = {'method': operation.value, 'params': params}
            self._logger.trace('Error decoding {} result, error {}', operation.value, str(e))
            raise

    async def trace_transaction(self, tx_hash: Union[str, int], timeout: Optional[float] = None) -> TxnTrace:
        """
        Fetches the execution trace of a transaction.

        Args:
            tx_hash (str or int): The transaction hash.
            timeout (float, optional): Deadline for the call, in seconds.

        Returns:
            TxnTrace: One of InvokeTxnTrace, DeclareTxnTrace, DeployAccountTxnTrace
            or L1HandlerTxnTrace, picked by the trace's `type`.

        Raises:
            RPCError: e.g. HASH_NOT_FOUND or NO_TRACE_AVAILABLE.
        """
        return await self._typed_call(Operation.TRACE_TRANSACTION, tx_hash, timeout)

    async def trace_block_transactions(self, block_id: Union[BlockID, str, dict], timeout: Optional[float] = None) -> List[Trace]:
        """
        Fetches the traces of every transaction in a block.

        Raises:
            RPCError: e.g. BLOCK_NOT_FOUND.
        """
        return await self._typed_call(Operation.TRACE_BLOCK_TRANSACTIONS, block_id, timeout)

    async def simulate_transactions(
        self,
        block_id: Union[BlockID, str, dict],
        transactions: Iterable[Any],
        simulation_flags: Iterable[Union[SimulationFlag, str]] = (),
        timeout: Optional[float] = None,
    ) -> List[SimulatedTransaction]:
        """
        Simulates transactions on top of a block without committing them.

        Args:
            block_id: Block whose state the simulation runs against.
            transactions: Broadcast transactions, as models or wire dicts.
            simulation_flags: SKIP_VALIDATE and/or SKIP_FEE_CHARGE.
            timeout (float, optional): Deadline for the call, in seconds.

        Returns:
            List[SimulatedTransaction]: One trace and fee estimate per transaction.
        """
        simulation = SimulateTransactionInput(
            block_id=block_id,
            transactions=list(transactions),
            simulation_flags=list(simulation_flags),
        )
        return await self._typed_call(Operation.SIMULATE_TRANSACTIONS, simulation, timeout)

