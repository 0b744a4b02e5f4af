"""
Typed encode/decode of JSON-RPC payloads.

Every shape the helper talks about (traces, simulation results, response
envelopes) goes through a cached pydantic ``TypeAdapter``. Anything that does
not fit the expected shape surfaces as :class:`MalformedResponse`.
"""
from functools import lru_cache
from typing import Any, Union

from pydantic import TypeAdapter
from pydantic import ValidationError

from starknet_rpc_helper.utils.exceptions import MalformedResponse


@lru_cache(maxsize=None)
def _adapter(shape) -> TypeAdapter:
    return TypeAdapter(shape)


def decode(raw: Union[bytes, str, Any], shape):
    """
    Decode raw JSON into a value of `shape`.

    Args:
        raw: JSON bytes/str, or an already parsed JSON value (dict, list...).
        shape: Any type pydantic can validate, e.g. ``TxnTrace``.

    Returns:
        The decoded value.

    Raises:
        MalformedResponse: If `raw` is not valid JSON or does not conform to
            `shape`.
    """
    adapter = _adapter(shape)
    try:
        if isinstance(raw, (bytes, bytearray, str)):
            return adapter.validate_json(raw)
        return adapter.validate_python(raw)
    except ValidationError as e:
        raise MalformedResponse(
            request=None,
            response=raw if not isinstance(raw, (bytes, bytearray)) else raw.decode('utf-8', 'replace'),
            underlying_exception=e,
            extra_info=f'MALFORMED_RESPONSE: does not decode into {getattr(shape, "__name__", shape)}: '
                       f'{e.error_count()} error(s)',
        ) from e


def encode(value, shape=None) -> bytes:
    """
    Encode a decoded value back to wire JSON.

    Null optional fields are dropped so that the output matches what nodes
    send. If `shape` is omitted the value's own type is used.
    """
    adapter = _adapter(shape if shape is not None else type(value))
    return adapter.dump_json(value, by_alias=True, exclude_none=True)


def to_jsonable(value, shape=None):
    """Like :func:`encode` but returns plain JSON-compatible python objects."""
    adapter = _adapter(shape if shape is not None else type(value))
    return adapter.dump_python(value, mode='json', by_alias=True, exclude_none=True)
