import os
from enum import Enum
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, field_validator, model_validator

from starknet_rpc_helper.utils.exceptions import ConfigurationError


ENV_VAR_ENVIRONMENT = 'STARKNET_ENV'
ENV_VAR_RPC_URL = 'STARKNET_RPC_URL'
ENV_VAR_FIXTURE_DIR = 'STARKNET_FIXTURE_DIR'


class Environment(str, Enum):
    """Where calls are dispatched to."""

    MOCK = 'mock'
    DEVNET = 'devnet'
    TESTNET = 'testnet'
    MAINNET = 'mainnet'

    @property
    def is_live(self) -> bool:
        return self is not Environment.MOCK

    @classmethod
    def from_value(cls, value: Optional[str]) -> 'Environment':
        """
        Parse an environment name, failing fast on absent or unknown values.

        Raises:
            ConfigurationError: If `value` is empty or not a known environment.
        """
        if value is None or not str(value).strip():
            raise ConfigurationError('No environment configured, expected one of: {}'.format(
                ', '.join(e.value for e in cls),
            ))
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError('Unknown environment {!r}, expected one of: {}'.format(
                value, ', '.join(e.value for e in cls),
            )) from None


class RPCNodeConfig(BaseModel):
    """RPC node configuration model."""

    url: str


class ConnectionLimits(BaseModel):
    """Connection limits configuration model."""

    max_connections: int = 100
    max_keepalive_connections: int = 50
    keepalive_expiry: int = 300


class RPCConfigBase(BaseModel):
    """Base RPC configuration model."""

    environment: Environment
    full_nodes: List[RPCNodeConfig] = []
    # number of attempts per call, 1 means a single shot with no failover
    retry: int = 1
    request_time_out: int = 15
    connection_limits: ConnectionLimits = ConnectionLimits()
    fixture_dir: Optional[str] = None

    @field_validator('environment', mode='before')
    @classmethod
    def _parse_environment(cls, value):
        if isinstance(value, Environment):
            return value
        return Environment.from_value(value)

    @field_validator('retry')
    @classmethod
    def _check_retry(cls, value):
        if value < 1:
            raise ValueError('retry must allow at least one attempt')
        return value

    @model_validator(mode='after')
    def _check_transport_inputs(self):
        if self.environment is Environment.MOCK and not self.fixture_dir:
            raise ValueError('mock environment requires fixture_dir')
        if self.environment.is_live and not self.full_nodes:
            raise ValueError(f'{self.environment.value} environment requires at least one full node')
        return self


class LoggingConfig(BaseModel):
    """Logging configuration for the library-scoped logger."""

    log_dir: Optional[str] = None
    file_levels: Dict[str, bool] = {
        'INFO': True,
        'WARNING': True,
        'ERROR': True,
        'CRITICAL': True,
    }
    enable_console_logging: bool = False
    console_levels: Dict[str, str] = {
        'INFO': 'stdout',
        'WARNING': 'stderr',
        'ERROR': 'stderr',
    }
    format: str = '{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]} | {message}'
    rotation: str = '100 MB'
    retention: str = '7 days'
    compression: str = 'zip'


def settings_from_env(environ: Optional[Mapping[str, str]] = None, **overrides) -> RPCConfigBase:
    """
    Build settings from environment variables.

    Reads STARKNET_ENV (required), STARKNET_RPC_URL and STARKNET_FIXTURE_DIR.
    Keyword overrides win over the environment.

    Raises:
        ConfigurationError: If STARKNET_ENV is missing or unknown, or the
            resulting settings are invalid.
    """
    if environ is None:
        environ = os.environ
    environment = Environment.from_value(environ.get(ENV_VAR_ENVIRONMENT))
    values = {'environment': environment}
    rpc_url = environ.get(ENV_VAR_RPC_URL)
    if rpc_url:
        values['full_nodes'] = [{'url': rpc_url}]
    fixture_dir = environ.get(ENV_VAR_FIXTURE_DIR)
    if fixture_dir:
        values['fixture_dir'] = fixture_dir
    values.update(overrides)
    try:
        return RPCConfigBase(**values)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
