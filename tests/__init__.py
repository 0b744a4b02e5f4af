"""
Starknet RPC Helper Test Suite

Test Structure:
- unit/: Unit tests for individual components, served by in-process transports
- integration/: Fixture cases run against the environment picked with --env
- trace/: Recorded trace and simulation documents backing the mock environment

Usage:
    # Run all tests against the mock environment
    pytest

    # Run only unit tests
    pytest -m unit

    # Run the fixture cases against a live node
    STARKNET_RPC_URL=https://... pytest tests/integration --env mainnet
"""
