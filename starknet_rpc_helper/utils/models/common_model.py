from enum import Enum
from typing import Annotated, Any, Optional, Union

from eth_utils import is_hex
from eth_utils import to_int
from pydantic import BaseModel
from pydantic import BeforeValidator
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_serializer
from pydantic import model_validator


# 2**251 + 17 * 2**192 + 1
STARKNET_PRIME = 0x800000000000011000000000000000000000000000000000000000000000001


def to_felt(value: Union[str, int]) -> str:
    """
    Normalize a field element to its canonical wire form.

    Accepts an int or a 0x-prefixed hex string and returns lowercase hex with
    no leading zeros, so equal elements compare equal as strings.

    Raises:
        ValueError: If the value is not hex, is negative or is not below the
            Starknet prime.
    """
    if isinstance(value, bool):
        raise ValueError(f'not a felt: {value!r}')
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value[:2].lower() == '0x' and len(value) > 2 and is_hex(value):
        number = to_int(hexstr=value)
    else:
        raise ValueError(f'not a felt: {value!r}')
    if number < 0 or number >= STARKNET_PRIME:
        raise ValueError(f'felt out of range: {value!r}')
    return hex(number)


Felt = Annotated[str, BeforeValidator(to_felt)]


class StarknetModel(BaseModel):
    """Base for all wire models. Instances are immutable; unknown fields are ignored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class BlockTag(str, Enum):
    LATEST = 'latest'
    PENDING = 'pending'


class BlockID(StarknetModel):
    """
    Reference to a block by exactly one of hash, number or tag.

    Serializes to the node's wire form: ``{"block_hash": ...}``,
    ``{"block_number": ...}`` or the bare tag string.
    """

    hash: Optional[Felt] = None
    number: Optional[int] = Field(default=None, ge=0)
    tag: Optional[BlockTag] = None

    @model_validator(mode='before')
    @classmethod
    def _from_wire(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {'tag': value}
        if isinstance(value, dict):
            if 'block_hash' in value or 'block_number' in value:
                return {
                    'hash': value.get('block_hash'),
                    'number': value.get('block_number'),
                }
        return value

    @model_validator(mode='after')
    def _exactly_one(self) -> 'BlockID':
        populated = [v for v in (self.hash, self.number, self.tag) if v is not None]
        if len(populated) != 1:
            raise ValueError('BlockID needs exactly one of hash, number or tag')
        return self

    @model_serializer
    def _to_wire(self) -> Union[str, dict]:
        if self.hash is not None:
            return {'block_hash': self.hash}
        if self.number is not None:
            return {'block_number': self.number}
        return self.tag.value

    @classmethod
    def latest(cls) -> 'BlockID':
        return cls(tag=BlockTag.LATEST)

    @classmethod
    def pending(cls) -> 'BlockID':
        return cls(tag=BlockTag.PENDING)
