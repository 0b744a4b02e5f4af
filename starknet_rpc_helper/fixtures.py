"""
Environment-selected fixture cases for the trace API.

Every (environment, operation) pair is listed explicitly in ``CASE_MATRIX``.
A pair mapped to ``NO_CASES`` is supported-as-empty: running it dispatches
nothing and reports nothing. Documents are read from a fixture directory once
per provider; any read or decode failure raises :class:`FixtureSetupError`.
"""
import json
from dataclasses import dataclass
from dataclasses import field
from itertools import product
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from starknet_rpc_helper.codec import decode
from starknet_rpc_helper.errors import BLOCK_NOT_FOUND
from starknet_rpc_helper.errors import HASH_NOT_FOUND
from starknet_rpc_helper.methods import build_params
from starknet_rpc_helper.methods import Operation
from starknet_rpc_helper.methods import RESULT_SHAPES
from starknet_rpc_helper.utils.default_logger import default_logger
from starknet_rpc_helper.utils.exceptions import FixtureSetupError
from starknet_rpc_helper.utils.exceptions import MalformedResponse
from starknet_rpc_helper.utils.exceptions import RPCError
from starknet_rpc_helper.utils.models.common_model import BlockID
from starknet_rpc_helper.utils.models.settings_model import Environment
from starknet_rpc_helper.utils.models.simulation_model import SimulateTransactionInput
from starknet_rpc_helper.utils.models.simulation_model import SimulateTransactionOutput


logger = default_logger.bind(module='FixtureProvider')

INVOKE_TRACE_TX_HASH = '0x6a4a9c4f1a530f7d6dd7bba9b71f090a70d1e3bbde80998fde11a08aab8b282'
TRACED_BLOCK_HASH = '0x42a4c6a4c3dffee2cce78f04259b499437049b0084c3296da9fbbec7eda79b2'

INVOKE_TRACE_FILE = f'sepoliaInvokeTrace_{INVOKE_TRACE_TX_HASH}.json'
BLOCK_TRACE_FILE = f'sepoliaBlockTrace_{TRACED_BLOCK_HASH}.json'
SIMULATE_INPUT_FILE = 'simulateInvokeTx.json'
SIMULATE_RESULT_FILE = 'simulateInvokeTxResp.json'


@dataclass(frozen=True)
class FixtureCase:
    """One request with either its expected decoded result or its expected error."""

    name: str
    operation: Operation
    request: Any
    expected_result: Any = None
    expected_error: Optional[RPCError] = None
    # undecoded `result` as stored on disk, served by the fixture transport
    raw_result: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if (self.expected_result is None) == (self.expected_error is None):
            raise ValueError(f'case {self.name!r} needs exactly one of expected_result or expected_error')

    @property
    def expects_error(self) -> bool:
        return self.expected_error is not None

    def params(self) -> List[Any]:
        return build_params(self.operation, self.request)


NO_CASES: Tuple[FixtureCase, ...] = ()

# Builder method name per pair, or None for an explicit empty case set
CASE_MATRIX: Dict[Tuple[Environment, Operation], Optional[str]] = {
    (Environment.MOCK, Operation.TRACE_TRANSACTION): '_mock_trace_transaction_cases',
    (Environment.MOCK, Operation.TRACE_BLOCK_TRANSACTIONS): '_mock_trace_block_transactions_cases',
    (Environment.MOCK, Operation.SIMULATE_TRANSACTIONS): '_simulate_invoke_cases',
    (Environment.DEVNET, Operation.TRACE_TRANSACTION): None,
    # devnet has no block trace API
    (Environment.DEVNET, Operation.TRACE_BLOCK_TRANSACTIONS): None,
    (Environment.DEVNET, Operation.SIMULATE_TRANSACTIONS): None,
    (Environment.TESTNET, Operation.TRACE_TRANSACTION): None,
    (Environment.TESTNET, Operation.TRACE_BLOCK_TRANSACTIONS): None,
    (Environment.TESTNET, Operation.SIMULATE_TRANSACTIONS): None,
    (Environment.MAINNET, Operation.TRACE_TRANSACTION): None,
    (Environment.MAINNET, Operation.TRACE_BLOCK_TRANSACTIONS): None,
    (Environment.MAINNET, Operation.SIMULATE_TRANSACTIONS): '_simulate_invoke_cases',
}

_missing_pairs = [pair for pair in product(Environment, Operation) if pair not in CASE_MATRIX]
if _missing_pairs:
    raise RuntimeError(f'CASE_MATRIX does not cover {_missing_pairs}')


def is_supported(environment: Environment, operation: Operation) -> bool:
    """Whether any cases are defined for the pair."""
    return CASE_MATRIX[(environment, operation)] is not None


@dataclass(frozen=True)
class CaseFailure:
    case: FixtureCase
    reason: str


async def run_cases(helper, cases) -> List[CaseFailure]:
    """
    Dispatch each case through `helper` in order and compare the outcome.

    An RPCError is a modeled outcome and is compared against the expected
    error; any other exception (transport, malformed response, cancellation)
    propagates and stops the run.

    Args:
        helper: An initialized StarknetRpcHelper, or anything with its `call`.
        cases: The cases to run, possibly empty.

    Returns:
        List[CaseFailure]: One entry per case whose outcome did not match.
    """
    failures = []
    for case in cases:
        try:
            raw_result = await helper.call(case.operation.value, case.params())
        except RPCError as e:
            if not case.expects_error:
                failures.append(CaseFailure(case, f'unexpected error {e!r}'))
            elif e != case.expected_error:
                failures.append(CaseFailure(case, f'expected {case.expected_error!r}, got {e!r}'))
            continue
        if case.expects_error:
            failures.append(CaseFailure(case, f'expected {case.expected_error!r}, got a result'))
            continue
        result = decode(raw_result, RESULT_SHAPES[case.operation])
        if result != case.expected_result:
            failures.append(CaseFailure(case, 'decoded result differs from the fixture'))
    logger.debug('Ran {} cases, {} failed', len(cases), len(failures))
    return failures


class FixtureProvider:
    """
    Supplies fixture cases per environment and operation.

    Documents are loaded lazily on first use and cached; call :meth:`load` to
    read and validate all of them up front.
    """

    def __init__(self, fixture_dir: Union[str, Path]):
        self._fixture_dir = Path(fixture_dir)
        self._documents: Dict[str, Any] = {}
        self._decoded: Dict[str, Any] = {}

    @property
    def fixture_dir(self) -> Path:
        return self._fixture_dir

    def load(self) -> 'FixtureProvider':
        """
        Read and decode every document referenced by the case matrix.

        Raises:
            FixtureSetupError: If any document is missing or malformed.
        """
        for (environment, operation), builder in CASE_MATRIX.items():
            if builder is not None:
                self.cases_for(environment, operation)
        logger.debug('Loaded {} fixture documents from {}', len(self._documents), self._fixture_dir)
        return self

    def cases_for(self, environment: Environment, operation: Operation) -> Tuple[FixtureCase, ...]:
        """
        Ordered cases for the pair, possibly empty.

        Raises:
            FixtureSetupError: If a document behind the cases cannot be loaded.
        """
        builder = CASE_MATRIX[(Environment(environment), Operation(operation))]
        if builder is None:
            return NO_CASES
        return tuple(getattr(self, builder)())

    def _read_document(self, file_name: str) -> Any:
        if file_name not in self._documents:
            path = self._fixture_dir / file_name
            try:
                with path.open('rb') as f:
                    self._documents[file_name] = json.load(f)
            except (OSError, ValueError) as e:
                raise FixtureSetupError(f'Cannot read fixture {path}: {e}') from e
        return self._documents[file_name]

    def _decode_document(self, file_name: str, shape, key: Optional[str] = None) -> Tuple[Any, Any]:
        """Decode a document (or its `key` member) into `shape`, returning (decoded, raw)."""
        document = self._read_document(file_name)
        if key is not None:
            if not isinstance(document, dict) or key not in document:
                raise FixtureSetupError(f'Fixture {file_name} has no top-level {key!r}')
            raw = document[key]
        else:
            raw = document
        cache_key = f'{file_name}:{key}'
        if cache_key not in self._decoded:
            try:
                self._decoded[cache_key] = decode(raw, shape)
            except MalformedResponse as e:
                raise FixtureSetupError(f'Fixture {file_name} does not decode: {e.underlying_exception}') from e
        return self._decoded[cache_key], raw

    def _mock_trace_transaction_cases(self) -> List[FixtureCase]:
        expected, raw = self._decode_document(
            INVOKE_TRACE_FILE, RESULT_SHAPES[Operation.TRACE_TRANSACTION], key='result',
        )
        return [
            FixtureCase(
                name='invoke trace',
                operation=Operation.TRACE_TRANSACTION,
                request=INVOKE_TRACE_TX_HASH,
                expected_result=expected,
                raw_result=raw,
            ),
            FixtureCase(
                name='unknown transaction hash',
                operation=Operation.TRACE_TRANSACTION,
                request='0xc0ffee',
                expected_error=HASH_NOT_FOUND,
            ),
            FixtureCase(
                name='rejected transaction',
                operation=Operation.TRACE_TRANSACTION,
                request='0xf00d',
                expected_error=RPCError(10, 'No trace available for transaction', 'REJECTED'),
            ),
        ]

    def _mock_trace_block_transactions_cases(self) -> List[FixtureCase]:
        expected, raw = self._decode_document(
            BLOCK_TRACE_FILE, RESULT_SHAPES[Operation.TRACE_BLOCK_TRANSACTIONS], key='result',
        )
        return [
            FixtureCase(
                name='block trace',
                operation=Operation.TRACE_BLOCK_TRANSACTIONS,
                request=BlockID(hash=TRACED_BLOCK_HASH),
                expected_result=expected,
                raw_result=raw,
            ),
            FixtureCase(
                name='unknown block',
                operation=Operation.TRACE_BLOCK_TRANSACTIONS,
                request=BlockID(hash='0x0'),
                expected_error=BLOCK_NOT_FOUND,
            ),
        ]

    def _simulate_invoke_cases(self) -> List[FixtureCase]:
        simulation, _ = self._decode_document(SIMULATE_INPUT_FILE, SimulateTransactionInput)
        output, document = self._decode_document(SIMULATE_RESULT_FILE, SimulateTransactionOutput)
        return [
            FixtureCase(
                name='invoke simulation',
                operation=Operation.SIMULATE_TRANSACTIONS,
                request=simulation,
                expected_result=output.result,
                raw_result=document['result'],
            ),
        ]
