from enum import Enum
from typing import Any, List

from starknet_rpc_helper.utils.models.common_model import BlockID
from starknet_rpc_helper.utils.models.common_model import to_felt
from starknet_rpc_helper.utils.models.simulation_model import SimulatedTransactions
from starknet_rpc_helper.utils.models.simulation_model import SimulateTransactionInput
from starknet_rpc_helper.utils.models.trace_model import BlockTraces
from starknet_rpc_helper.utils.models.trace_model import TxnTrace


class Operation(str, Enum):
    """Trace API methods, valued by their JSON-RPC method name."""

    TRACE_TRANSACTION = 'starknet_traceTransaction'
    TRACE_BLOCK_TRANSACTIONS = 'starknet_traceBlockTransactions'
    SIMULATE_TRANSACTIONS = 'starknet_simulateTransactions'


# What the `result` member of each method's response decodes into
RESULT_SHAPES = {
    Operation.TRACE_TRANSACTION: TxnTrace,
    Operation.TRACE_BLOCK_TRANSACTIONS: BlockTraces,
    Operation.SIMULATE_TRANSACTIONS: SimulatedTransactions,
}


def build_params(operation: Operation, request: Any) -> List[Any]:
    """
    Positional JSON-RPC params for `operation`.

    `request` is a transaction hash for TRACE_TRANSACTION, a BlockID (or its
    wire form) for TRACE_BLOCK_TRANSACTIONS and a SimulateTransactionInput
    (or its dict form) for SIMULATE_TRANSACTIONS.
    """
    if operation is Operation.TRACE_TRANSACTION:
        return [to_felt(request)]
    if operation is Operation.TRACE_BLOCK_TRANSACTIONS:
        return [BlockID.model_validate(request).model_dump(mode='json')]
    if operation is Operation.SIMULATE_TRANSACTIONS:
        return SimulateTransactionInput.model_validate(request).to_params()
    raise ValueError(f'Unknown operation {operation!r}')
