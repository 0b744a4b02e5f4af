"""
Pytest configuration and shared fixtures for the Starknet RPC Helper test suite.
This module provides common test fixtures, fake transports, and configuration
used across the test suite.
"""
import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio

from starknet_rpc_helper.fixtures import FixtureProvider
from starknet_rpc_helper.rpc import StarknetRpcHelper
from starknet_rpc_helper.utils.exceptions import ConfigurationError
from starknet_rpc_helper.utils.exceptions import FixtureSetupError
from starknet_rpc_helper.utils.models.settings_model import ConnectionLimits
from starknet_rpc_helper.utils.models.settings_model import Environment
from starknet_rpc_helper.utils.models.settings_model import RPCConfigBase
from starknet_rpc_helper.utils.models.settings_model import RPCNodeConfig


# Directory holding the recorded trace and simulation documents
TRACE_FIXTURE_DIR = Path(__file__).parent / "trace"

# Test configuration
TEST_NODE_URL = "http://node-a.starknet.test/rpc"
TEST_BACKUP_NODE_URL = "http://node-b.starknet.test/rpc"

# Exit status when the run cannot start: bad --env or unreadable fixture documents
SETUP_FAILURE_EXIT_CODE = pytest.ExitCode.USAGE_ERROR

environment_key = pytest.StashKey[Environment]()
fixture_provider_key = pytest.StashKey[FixtureProvider]()


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="mock",
        help="Environment to run fixture cases against: mock, devnet, testnet or mainnet",
    )
    parser.addoption(
        "--fixture-dir",
        action="store",
        default=str(TRACE_FIXTURE_DIR),
        help="Directory holding the recorded fixture documents",
    )


def pytest_sessionstart(session):
    """
    Resolve the environment and load every fixture document before any test runs.

    A bad environment or an unreadable document ends the run here, so no case
    executes against a partial fixture set.
    """
    config = session.config
    try:
        config.stash[environment_key] = Environment.from_value(config.getoption("--env"))
        config.stash[fixture_provider_key] = FixtureProvider(config.getoption("--fixture-dir")).load()
    except (ConfigurationError, FixtureSetupError) as e:
        pytest.exit(f"Test setup failed: {e}", returncode=SETUP_FAILURE_EXIT_CODE)


def load_trace_document(file_name: str) -> Any:
    """Read one of the recorded JSON documents."""
    with (TRACE_FIXTURE_DIR / file_name).open() as f:
        return json.load(f)


def jsonrpc_result(result: Any, request_id: int = 1) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def jsonrpc_error(code: int, message: str, data: Any = None, request_id: int = 1) -> Dict[str, Any]:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable):
        self.requests: List[httpx.Request] = []
        self._inner = handler

        async def _record(request):
            self.requests.append(request)
            response = self._inner(request)
            if asyncio.iscoroutine(response):
                response = await response
            return response

        super().__init__(_record)

    @property
    def payloads(self) -> List[Any]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture(scope="session")
def selected_environment(request) -> Environment:
    """Environment picked with --env, defaults to mock."""
    return request.config.stash[environment_key]


@pytest.fixture(scope="session")
def fixture_provider(request) -> FixtureProvider:
    """Fixture provider loaded once at session start."""
    return request.config.stash[fixture_provider_key]


@pytest.fixture(scope="session")
def fixture_dir(fixture_provider) -> Path:
    return fixture_provider.fixture_dir


@pytest.fixture
def rpc_config(fixture_dir) -> RPCConfigBase:
    """Fixture providing a mock-environment RPC configuration for testing."""
    return RPCConfigBase(
        environment="mock",
        fixture_dir=str(fixture_dir),
        retry=1,
        request_time_out=10,
    )


@pytest.fixture
def live_rpc_config() -> RPCConfigBase:
    """Fixture providing a mainnet configuration with two nodes, never contacted."""
    return RPCConfigBase(
        environment="mainnet",
        full_nodes=[RPCNodeConfig(url=TEST_NODE_URL), RPCNodeConfig(url=TEST_BACKUP_NODE_URL)],
        retry=1,
        request_time_out=10,
        connection_limits=ConnectionLimits(
            max_connections=10,
            max_keepalive_connections=5,
            keepalive_expiry=60,
        ),
    )


@pytest_asyncio.fixture
async def rpc_helper_instance(rpc_config, fixture_provider):
    """Fixture providing an initialized helper served by the fixture transport."""
    helper = StarknetRpcHelper(rpc_config, fixture_provider=fixture_provider)
    await helper.init()
    yield helper
    await helper.close()


@pytest.fixture
def make_live_helper(live_rpc_config):
    """
    Factory for helpers talking to the test nodes through a fake transport.

    The handler receives the httpx.Request and returns an httpx.Response (or a
    coroutine resolving to one), or raises an httpx exception.
    """
    def _make(handler: Callable, **settings_overrides) -> StarknetRpcHelper:
        settings = live_rpc_config.model_copy(update=settings_overrides)
        transport = RecordingTransport(handler)
        helper = StarknetRpcHelper(settings, transport=transport)
        return helper

    return _make


@pytest.fixture
def mock_httpx_response():
    """Fixture providing mock HTTPX responses."""
    def _create_mock_response(status_code=200, json_data=None, text=None):
        mock_response = MagicMock(spec=httpx.Response)
        mock_response.status_code = status_code
        mock_response.json = MagicMock(return_value=json_data or {})
        mock_response.text = text or ""
        return mock_response
    return _create_mock_response
