from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Discriminator
from pydantic import Tag

from starknet_rpc_helper.utils.models.common_model import BlockID
from starknet_rpc_helper.utils.models.common_model import Felt
from starknet_rpc_helper.utils.models.common_model import StarknetModel
from starknet_rpc_helper.utils.models.common_model import to_felt
from starknet_rpc_helper.utils.models.trace_model import TransactionType
from starknet_rpc_helper.utils.models.trace_model import TxnTrace


# Query-only versions have bit 128 set on top of the real version
QUERY_VERSION_OFFSET = 1 << 128


class SimulationFlag(str, Enum):
    SKIP_VALIDATE = 'SKIP_VALIDATE'
    SKIP_FEE_CHARGE = 'SKIP_FEE_CHARGE'


class PriceUnit(str, Enum):
    WEI = 'WEI'
    FRI = 'FRI'


class DataAvailabilityMode(str, Enum):
    L1 = 'L1'
    L2 = 'L2'


class ResourceBounds(StarknetModel):
    max_amount: Felt
    max_price_per_unit: Felt


class ResourceBoundsMapping(StarknetModel):
    l1_gas: ResourceBounds
    l2_gas: ResourceBounds


class _V3Fields(StarknetModel):
    resource_bounds: ResourceBoundsMapping
    tip: Felt
    paymaster_data: List[Felt]
    nonce_data_availability_mode: DataAvailabilityMode
    fee_data_availability_mode: DataAvailabilityMode


class BroadcastInvokeTxnV1(StarknetModel):
    type: Literal['INVOKE'] = 'INVOKE'
    version: Felt
    sender_address: Felt
    calldata: List[Felt]
    max_fee: Felt
    signature: List[Felt]
    nonce: Felt


class BroadcastInvokeTxnV3(_V3Fields):
    type: Literal['INVOKE'] = 'INVOKE'
    version: Felt
    sender_address: Felt
    calldata: List[Felt]
    signature: List[Felt]
    nonce: Felt
    account_deployment_data: List[Felt]


class BroadcastDeployAccountTxnV1(StarknetModel):
    type: Literal['DEPLOY_ACCOUNT'] = 'DEPLOY_ACCOUNT'
    version: Felt
    max_fee: Felt
    signature: List[Felt]
    nonce: Felt
    contract_address_salt: Felt
    constructor_calldata: List[Felt]
    class_hash: Felt


class BroadcastDeployAccountTxnV3(_V3Fields):
    type: Literal['DEPLOY_ACCOUNT'] = 'DEPLOY_ACCOUNT'
    version: Felt
    signature: List[Felt]
    nonce: Felt
    contract_address_salt: Felt
    constructor_calldata: List[Felt]
    class_hash: Felt


class BroadcastDeclareTxnV2(StarknetModel):
    type: Literal['DECLARE'] = 'DECLARE'
    version: Felt
    sender_address: Felt
    compiled_class_hash: Felt
    max_fee: Felt
    signature: List[Felt]
    nonce: Felt
    # Sierra class is passed through untouched
    contract_class: Dict[str, Any]


class BroadcastDeclareTxnV3(_V3Fields):
    type: Literal['DECLARE'] = 'DECLARE'
    version: Felt
    sender_address: Felt
    compiled_class_hash: Felt
    signature: List[Felt]
    nonce: Felt
    account_deployment_data: List[Felt]
    contract_class: Dict[str, Any]


def transaction_version(version: Union[str, int]) -> int:
    """Real version number of a transaction, ignoring the query bit."""
    number = int(to_felt(version), 16)
    if number >= QUERY_VERSION_OFFSET:
        number -= QUERY_VERSION_OFFSET
    return number


def _broadcast_txn_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        txn_type, version = value.get('type'), value.get('version')
    else:
        txn_type, version = getattr(value, 'type', None), getattr(value, 'version', None)
    if txn_type is None or version is None:
        return None
    try:
        return f'{txn_type}_V{transaction_version(version)}'
    except ValueError:
        return None


BroadcastTxn = Annotated[
    Union[
        Annotated[BroadcastInvokeTxnV1, Tag(f'{TransactionType.INVOKE.value}_V1')],
        Annotated[BroadcastInvokeTxnV3, Tag(f'{TransactionType.INVOKE.value}_V3')],
        Annotated[BroadcastDeployAccountTxnV1, Tag(f'{TransactionType.DEPLOY_ACCOUNT.value}_V1')],
        Annotated[BroadcastDeployAccountTxnV3, Tag(f'{TransactionType.DEPLOY_ACCOUNT.value}_V3')],
        Annotated[BroadcastDeclareTxnV2, Tag(f'{TransactionType.DECLARE.value}_V2')],
        Annotated[BroadcastDeclareTxnV3, Tag(f'{TransactionType.DECLARE.value}_V3')],
    ],
    Discriminator(_broadcast_txn_tag),
]


class FeeEstimate(StarknetModel):
    gas_consumed: Felt
    gas_price: Felt
    data_gas_consumed: Optional[Felt] = None
    data_gas_price: Optional[Felt] = None
    overall_fee: Felt
    unit: PriceUnit


class SimulatedTransaction(StarknetModel):
    transaction_trace: TxnTrace
    fee_estimation: FeeEstimate


SimulatedTransactions = List[SimulatedTransaction]


class SimulateTransactionInput(StarknetModel):
    """Parameters of a starknet_simulateTransactions call."""

    block_id: BlockID
    transactions: List[BroadcastTxn]
    simulation_flags: List[SimulationFlag] = []

    def to_params(self) -> List[Any]:
        return [
            self.block_id.model_dump(mode='json'),
            [txn.model_dump(mode='json', exclude_none=True) for txn in self.transactions],
            [flag.value for flag in self.simulation_flags],
        ]


class SimulateTransactionOutput(StarknetModel):
    """Recorded response of a starknet_simulateTransactions call."""

    result: SimulatedTransactions
