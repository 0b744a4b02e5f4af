"""
Integration tests running every fixture case for the selected environment.

The environment comes from the --env pytest option (default: mock). The mock
environment runs in-process against the recorded documents. Live environments
need a node URL in STARKNET_RPC_URL and are marked as 'network' tests so they
can be skipped when network access is unavailable:

    STARKNET_RPC_URL=https://... pytest tests/integration --env mainnet
"""

import asyncio
import os

import pytest

from starknet_rpc_helper.fixtures import is_supported
from starknet_rpc_helper.fixtures import run_cases
from starknet_rpc_helper.methods import Operation
from starknet_rpc_helper.rpc import StarknetRpcHelper
from starknet_rpc_helper.utils.models.settings_model import ENV_VAR_RPC_URL
from starknet_rpc_helper.utils.models.settings_model import Environment
from starknet_rpc_helper.utils.models.settings_model import RPCConfigBase
from starknet_rpc_helper.utils.models.settings_model import RPCNodeConfig


class TestEnvironmentCases:
    """Integration tests for the trace API in one environment."""

    @pytest.fixture
    def integration_config(self, request, selected_environment, fixture_dir):
        """Provide configuration for the selected environment."""
        if selected_environment is Environment.MOCK:
            return RPCConfigBase(environment=selected_environment, fixture_dir=str(fixture_dir))

        request.node.add_marker(pytest.mark.network)
        # Use environment variables for RPC URLs to avoid hardcoding
        rpc_url = os.getenv(ENV_VAR_RPC_URL)
        if not rpc_url:
            pytest.skip(f"{ENV_VAR_RPC_URL} is not set for {selected_environment.value}")

        return RPCConfigBase(
            environment=selected_environment,
            full_nodes=[RPCNodeConfig(url=rpc_url)],
            retry=2,
            request_time_out=30,
            connection_limits={
                "max_connections": 10,
                "max_keepalive_connections": 5,
                "keepalive_expiry": 60,
            },
        )

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", list(Operation))
    async def test_cases_for_operation(self, integration_config, fixture_provider, operation):
        """Every case defined for (environment, operation) passes; empty sets trivially pass."""
        environment = integration_config.environment
        cases = fixture_provider.cases_for(environment, operation)
        if not is_supported(environment, operation):
            assert cases == ()

        async with StarknetRpcHelper(integration_config, fixture_provider=fixture_provider) as helper:
            failures = await run_cases(helper, cases)

        assert failures == [], "\n".join(f"{f.case.name}: {f.reason}" for f in failures)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_helper(self, selected_environment, fixture_dir, fixture_provider):
        """Independent calls can be gathered on one initialized helper."""
        if selected_environment is not Environment.MOCK:
            pytest.skip("recorded responses only exist for the mock environment")
        config = RPCConfigBase(environment=Environment.MOCK, fixture_dir=str(fixture_dir))
        cases = [
            case
            for operation in Operation
            for case in fixture_provider.cases_for(Environment.MOCK, operation)
        ]

        async with StarknetRpcHelper(config, fixture_provider=fixture_provider) as helper:
            failures = await asyncio.gather(*(run_cases(helper, [case]) for case in cases))

        assert all(f == [] for f in failures)
        assert len(failures) == 6
