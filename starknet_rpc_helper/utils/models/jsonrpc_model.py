from typing import Any, List, Optional, Union

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import model_validator
from pydantic import StrictInt
from pydantic import StrictStr


class JsonRpcErrorObject(BaseModel):
    """Raw error member of a JSON-RPC response."""

    model_config = ConfigDict(frozen=True)

    code: StrictInt
    message: StrictStr
    data: Any = None


class JsonRpcRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    jsonrpc: str = '2.0'
    method: str
    params: Union[List[Any], dict] = []
    id: Union[int, str] = 1


class JsonRpcResponse(BaseModel):
    """
    A JSON-RPC 2.0 response envelope.

    Exactly one of `result` and `error` is present. `result` is kept as raw
    JSON here; typed decoding of it happens per method.
    """

    model_config = ConfigDict(frozen=True)

    jsonrpc: str = '2.0'
    id: Optional[Union[int, str]] = None
    result: Any = None
    error: Optional[JsonRpcErrorObject] = None

    @model_validator(mode='before')
    @classmethod
    def _one_of_result_or_error(cls, value: Any) -> Any:
        if isinstance(value, dict):
            has_result = 'result' in value
            has_error = 'error' in value and value['error'] is not None
            if has_result == has_error:
                raise ValueError('response must carry exactly one of result or error')
        return value

    @property
    def is_error(self) -> bool:
        return self.error is not None
