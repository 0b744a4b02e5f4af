from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Discriminator
from pydantic import Tag

from starknet_rpc_helper.utils.models.common_model import Felt
from starknet_rpc_helper.utils.models.common_model import StarknetModel


class EntryPointType(str, Enum):
    EXTERNAL = 'EXTERNAL'
    L1_HANDLER = 'L1_HANDLER'
    CONSTRUCTOR = 'CONSTRUCTOR'


class CallType(str, Enum):
    LIBRARY_CALL = 'LIBRARY_CALL'
    CALL = 'CALL'
    DELEGATE = 'DELEGATE'


class TransactionType(str, Enum):
    INVOKE = 'INVOKE'
    DECLARE = 'DECLARE'
    DEPLOY_ACCOUNT = 'DEPLOY_ACCOUNT'
    L1_HANDLER = 'L1_HANDLER'


class OrderedEvent(StarknetModel):
    order: int
    keys: List[Felt]
    data: List[Felt]


class OrderedMessage(StarknetModel):
    order: int
    from_address: Optional[Felt] = None
    to_address: Felt
    payload: List[Felt]


class ComputationResources(StarknetModel):
    steps: int
    memory_holes: Optional[int] = None
    range_check_builtin_applications: Optional[int] = None
    pedersen_builtin_applications: Optional[int] = None
    poseidon_builtin_applications: Optional[int] = None
    ec_op_builtin_applications: Optional[int] = None
    ecdsa_builtin_applications: Optional[int] = None
    bitwise_builtin_applications: Optional[int] = None
    keccak_builtin_applications: Optional[int] = None
    segment_arena_builtin: Optional[int] = None


class DataAvailability(StarknetModel):
    l1_gas: int
    l1_data_gas: int


class ExecutionResources(ComputationResources):
    data_availability: Optional[DataAvailability] = None


class FunctionInvocation(StarknetModel):
    """A single call frame of a trace, with its nested calls."""

    contract_address: Felt
    entry_point_selector: Felt
    calldata: List[Felt]
    caller_address: Felt
    class_hash: Felt
    entry_point_type: EntryPointType
    call_type: CallType
    result: List[Felt]
    calls: List['FunctionInvocation']
    events: List[OrderedEvent]
    messages: List[OrderedMessage]
    execution_resources: Optional[ComputationResources] = None


class RevertedInvocation(StarknetModel):
    revert_reason: str


def _execute_invocation_tag(value: Any) -> str:
    if isinstance(value, dict):
        return 'reverted' if 'revert_reason' in value else 'invocation'
    return 'reverted' if isinstance(value, RevertedInvocation) else 'invocation'


ExecuteInvocation = Annotated[
    Union[
        Annotated[FunctionInvocation, Tag('invocation')],
        Annotated[RevertedInvocation, Tag('reverted')],
    ],
    Discriminator(_execute_invocation_tag),
]


class StorageEntry(StarknetModel):
    key: Felt
    value: Felt


class ContractStorageDiffItem(StarknetModel):
    address: Felt
    storage_entries: List[StorageEntry]


class DeclaredClassItem(StarknetModel):
    class_hash: Felt
    compiled_class_hash: Felt


class DeployedContractItem(StarknetModel):
    address: Felt
    class_hash: Felt


class ReplacedClassItem(StarknetModel):
    contract_address: Felt
    class_hash: Felt


class ContractNonceItem(StarknetModel):
    contract_address: Felt
    nonce: Felt


class StateDiff(StarknetModel):
    storage_diffs: List[ContractStorageDiffItem]
    deprecated_declared_classes: List[Felt]
    declared_classes: List[DeclaredClassItem]
    deployed_contracts: List[DeployedContractItem]
    replaced_classes: List[ReplacedClassItem]
    nonces: List[ContractNonceItem]


class InvokeTxnTrace(StarknetModel):
    type: Literal['INVOKE'] = 'INVOKE'
    validate_invocation: Optional[FunctionInvocation] = None
    execute_invocation: ExecuteInvocation
    fee_transfer_invocation: Optional[FunctionInvocation] = None
    state_diff: Optional[StateDiff] = None
    execution_resources: Optional[ExecutionResources] = None


class DeclareTxnTrace(StarknetModel):
    type: Literal['DECLARE'] = 'DECLARE'
    validate_invocation: Optional[FunctionInvocation] = None
    fee_transfer_invocation: Optional[FunctionInvocation] = None
    state_diff: Optional[StateDiff] = None
    execution_resources: Optional[ExecutionResources] = None


class DeployAccountTxnTrace(StarknetModel):
    type: Literal['DEPLOY_ACCOUNT'] = 'DEPLOY_ACCOUNT'
    validate_invocation: Optional[FunctionInvocation] = None
    constructor_invocation: FunctionInvocation
    fee_transfer_invocation: Optional[FunctionInvocation] = None
    state_diff: Optional[StateDiff] = None
    execution_resources: Optional[ExecutionResources] = None


class L1HandlerTxnTrace(StarknetModel):
    type: Literal['L1_HANDLER'] = 'L1_HANDLER'
    function_invocation: FunctionInvocation
    state_diff: Optional[StateDiff] = None
    execution_resources: Optional[ExecutionResources] = None


# Resolved on the `type` field at decode time
TxnTrace = Annotated[
    Union[InvokeTxnTrace, DeclareTxnTrace, DeployAccountTxnTrace, L1HandlerTxnTrace],
    Discriminator('type'),
]


class Trace(StarknetModel):
    """One entry of a block trace."""

    transaction_hash: Felt
    trace_root: TxnTrace


BlockTraces = List[Trace]
