"""
Known node errors and normalization of raw JSON-RPC error objects.

Sentinels are plain :class:`RPCError` values. A raw error that matches one
by code and message, and carries no data, normalizes to the sentinel object
itself, so both ``is`` and ``==`` work for callers.
"""
from typing import Any, Dict, Tuple

from pydantic import ValidationError

from starknet_rpc_helper.utils.default_logger import default_logger
from starknet_rpc_helper.utils.exceptions import MalformedResponse
from starknet_rpc_helper.utils.exceptions import RPCError
from starknet_rpc_helper.utils.models.jsonrpc_model import JsonRpcErrorObject


logger = default_logger.bind(module='RpcErrors')

# JSON-RPC 2.0
PARSE_ERROR = RPCError(-32700, 'Parse error')
INVALID_REQUEST = RPCError(-32600, 'Invalid Request')
METHOD_NOT_FOUND = RPCError(-32601, 'Method not found')
INVALID_PARAMS = RPCError(-32602, 'Invalid params')
INTERNAL_ERROR = RPCError(-32603, 'Internal error')

# Starknet node API
FAILED_TO_RECEIVE_TXN = RPCError(1, 'Failed to write transaction')
NO_TRACE_AVAILABLE = RPCError(10, 'No trace available for transaction')
CONTRACT_NOT_FOUND = RPCError(20, 'Contract not found')
BLOCK_NOT_FOUND = RPCError(24, 'Block not found')
INVALID_TXN_HASH = RPCError(25, 'Invalid transaction hash')
INVALID_BLOCK_HASH = RPCError(26, 'Invalid block hash')
INVALID_TXN_INDEX = RPCError(27, 'Invalid transaction index in a block')
CLASS_HASH_NOT_FOUND = RPCError(28, 'Class hash not found')
HASH_NOT_FOUND = RPCError(29, 'Transaction hash not found')
PAGE_SIZE_TOO_BIG = RPCError(31, 'Requested page size is too big')
NO_BLOCKS = RPCError(32, 'There are no blocks')
INVALID_CONTINUATION_TOKEN = RPCError(33, 'The supplied continuation token is invalid or unknown')
TOO_MANY_KEYS_IN_FILTER = RPCError(34, 'Too many keys provided in a filter')
CONTRACT_ERROR = RPCError(40, 'Contract error')
TXN_EXECUTION_ERROR = RPCError(41, 'Transaction execution error')
UNEXPECTED_ERROR = RPCError(63, 'An unexpected error occurred')

KNOWN_ERRORS: Dict[Tuple[int, str], RPCError] = {
    (err.code, err.message): err
    for err in (
        PARSE_ERROR,
        INVALID_REQUEST,
        METHOD_NOT_FOUND,
        INVALID_PARAMS,
        INTERNAL_ERROR,
        FAILED_TO_RECEIVE_TXN,
        NO_TRACE_AVAILABLE,
        CONTRACT_NOT_FOUND,
        BLOCK_NOT_FOUND,
        INVALID_TXN_HASH,
        INVALID_BLOCK_HASH,
        INVALID_TXN_INDEX,
        CLASS_HASH_NOT_FOUND,
        HASH_NOT_FOUND,
        PAGE_SIZE_TOO_BIG,
        NO_BLOCKS,
        INVALID_CONTINUATION_TOKEN,
        TOO_MANY_KEYS_IN_FILTER,
        CONTRACT_ERROR,
        TXN_EXECUTION_ERROR,
        UNEXPECTED_ERROR,
    )
}


def normalize_rpc_error(raw: Any, request=None) -> RPCError:
    """
    Turn the `error` member of a JSON-RPC response into an :class:`RPCError`.

    Args:
        raw: A dict with `code`, `message` and optional `data`, or an
            already validated :class:`JsonRpcErrorObject`.
        request: The request being answered, kept on generic errors for context.

    Returns:
        RPCError: The matching sentinel when code, message and data line up,
        otherwise a new error carrying the raw values.

    Raises:
        MalformedResponse: If `raw` is not a well-formed error object.
    """
    if isinstance(raw, JsonRpcErrorObject):
        error_object = raw
    else:
        try:
            error_object = JsonRpcErrorObject.model_validate(raw)
        except ValidationError as e:
            raise MalformedResponse(
                request=request,
                response=raw,
                underlying_exception=e,
                extra_info=f'MALFORMED_RESPONSE: invalid error object {raw!r}',
            ) from e

    known = KNOWN_ERRORS.get((error_object.code, error_object.message))
    if known is not None:
        if error_object.data is None:
            return known
        return known.with_data(error_object.data)

    logger.trace('Unrecognized RPC error code {}: {}', error_object.code, error_object.message)
    return RPCError(error_object.code, error_object.message, error_object.data, request=request)


def is_known_error(error: RPCError) -> bool:
    return (error.code, error.message) in KNOWN_ERRORS
