import asyncio
import json
from typing import Any


class RPCException(Exception):
    """
    Base class for every failure raised by the helper.

    Carries the request that was being served, whatever response was
    received (if any), the exception that caused it and a human readable
    summary.
    """

    def __init__(self, request=None, response=None, underlying_exception=None, extra_info=None):
        super().__init__(extra_info)
        self.request = request
        self.response = response
        self.underlying_exception = underlying_exception
        self.extra_info = extra_info

    def to_dict(self):
        return {
            'request': self.request,
            'response': self.response,
            'extra_info': self.extra_info,
            'exception': str(self.underlying_exception) if self.underlying_exception is not None else None,
        }

    def __str__(self):
        return json.dumps(self.to_dict(), default=str)


class TransportFailure(RPCException):
    """The node could not be reached or answered with a non-200 HTTP status."""


class MalformedResponse(RPCException):
    """The node answered, but the payload does not decode into the expected shape."""


class DeadlineExceeded(RPCException):
    """The call did not complete within its deadline."""


class Cancelled(RPCException, asyncio.CancelledError):
    """
    The awaiting task was cancelled before the transport returned.

    Also an ``asyncio.CancelledError`` so that cancellation keeps
    propagating through code that only knows about asyncio.
    """


class ConfigurationError(ValueError):
    """Settings or environment selection are invalid."""


class FixtureSetupError(RuntimeError):
    """A fixture document could not be read or parsed; the run must stop."""


class RPCError(RPCException):
    """
    A JSON-RPC error object returned by the node.

    Instances are immutable and compare by value over ``(code, message, data)``,
    so a decoded error can be checked against an expected one directly.
    Well-known errors are exposed as module-level sentinels in
    :mod:`starknet_rpc_helper.errors`.
    """

    def __init__(self, code: int, message: str, data: Any = None, request=None):
        super().__init__(
            request=request,
            response={'code': code, 'message': message, 'data': data},
            underlying_exception=None,
            extra_info=f'RPC_ERROR {code}: {message}',
        )
        self._code = code
        self._message = message
        self._data = data

    @property
    def code(self) -> int:
        return self._code

    @property
    def message(self) -> str:
        return self._message

    @property
    def data(self) -> Any:
        return self._data

    def to_dict(self):
        error = {'code': self._code, 'message': self._message}
        if self._data is not None:
            error['data'] = self._data
        return error

    def with_data(self, data: Any) -> 'RPCError':
        return RPCError(self._code, self._message, data)

    def __eq__(self, other):
        if not isinstance(other, RPCError):
            return NotImplemented
        return (self._code, self._message, self._data) == (other._code, other._message, other._data)

    def __hash__(self):
        # data is left out: it may be unhashable
        return hash((self._code, self._message))

    def __repr__(self):
        return f'RPCError(code={self._code!r}, message={self._message!r}, data={self._data!r})'

    def __str__(self):
        if self._data is None:
            return f'{self._code}: {self._message}'
        return f'{self._code}: {self._message} ({self._data})'


RemoteRejected = RPCError
