"""
Unit tests for RPC error values and their normalization.
"""
import pytest

from starknet_rpc_helper import errors
from starknet_rpc_helper.errors import BLOCK_NOT_FOUND
from starknet_rpc_helper.errors import HASH_NOT_FOUND
from starknet_rpc_helper.errors import is_known_error
from starknet_rpc_helper.errors import KNOWN_ERRORS
from starknet_rpc_helper.errors import NO_TRACE_AVAILABLE
from starknet_rpc_helper.errors import normalize_rpc_error
from starknet_rpc_helper.utils.exceptions import MalformedResponse
from starknet_rpc_helper.utils.exceptions import RemoteRejected
from starknet_rpc_helper.utils.exceptions import RPCError
from starknet_rpc_helper.utils.exceptions import RPCException
from starknet_rpc_helper.utils.models.jsonrpc_model import JsonRpcErrorObject


class TestRPCError:
    """Test cases for RPCError value semantics."""

    @pytest.mark.unit
    def test_equal_when_all_fields_match(self):
        assert RPCError(10, "No trace available for transaction", "REJECTED") == RPCError(
            10, "No trace available for transaction", "REJECTED"
        )
        assert RPCError(24, "Block not found") == BLOCK_NOT_FOUND

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "other",
        [
            RPCError(11, "No trace available for transaction", "REJECTED"),
            RPCError(10, "No trace", "REJECTED"),
            RPCError(10, "No trace available for transaction", "RECEIVED"),
            RPCError(10, "No trace available for transaction"),
        ],
    )
    def test_not_equal_when_any_field_differs(self, other):
        assert RPCError(10, "No trace available for transaction", "REJECTED") != other

    @pytest.mark.unit
    def test_not_equal_to_other_types(self):
        assert BLOCK_NOT_FOUND != {"code": 24, "message": "Block not found"}
        assert BLOCK_NOT_FOUND != "24: Block not found"

    @pytest.mark.unit
    def test_hashable(self):
        seen = {BLOCK_NOT_FOUND, RPCError(24, "Block not found"), RPCError(41, "Transaction execution error", {"a": 1})}

        assert len(seen) == 2

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "data,equal_data",
        [
            (1, 1.0),
            (True, 1),
            ({"gas": 1}, {"gas": 1.0}),
        ],
    )
    def test_equal_errors_hash_equal(self, data, equal_data):
        first = RPCError(41, "Transaction execution error", data)
        second = RPCError(41, "Transaction execution error", equal_data)

        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    @pytest.mark.unit
    def test_fields_are_read_only(self):
        with pytest.raises(AttributeError):
            BLOCK_NOT_FOUND.code = 25

    @pytest.mark.unit
    def test_is_an_rpc_exception(self):
        assert isinstance(BLOCK_NOT_FOUND, RPCException)
        assert RemoteRejected is RPCError
        with pytest.raises(RPCError):
            raise HASH_NOT_FOUND

    @pytest.mark.unit
    def test_wire_form(self):
        assert BLOCK_NOT_FOUND.to_dict() == {"code": 24, "message": "Block not found"}
        assert NO_TRACE_AVAILABLE.with_data("REJECTED").to_dict() == {
            "code": 10,
            "message": "No trace available for transaction",
            "data": "REJECTED",
        }

    @pytest.mark.unit
    def test_str_and_repr(self):
        assert str(BLOCK_NOT_FOUND) == "24: Block not found"
        assert str(NO_TRACE_AVAILABLE.with_data("REJECTED")) == "10: No trace available for transaction (REJECTED)"
        assert repr(HASH_NOT_FOUND) == "RPCError(code=29, message='Transaction hash not found', data=None)"

    @pytest.mark.unit
    def test_with_data_leaves_sentinel_untouched(self):
        rejected = NO_TRACE_AVAILABLE.with_data("REJECTED")

        assert rejected is not NO_TRACE_AVAILABLE
        assert NO_TRACE_AVAILABLE.data is None


class TestNormalizeRpcError:
    """Test cases for normalize_rpc_error."""

    @pytest.mark.unit
    def test_known_error_returns_sentinel(self):
        error = normalize_rpc_error({"code": 29, "message": "Transaction hash not found"})

        assert error is HASH_NOT_FOUND

    @pytest.mark.unit
    def test_validated_error_object(self):
        error = normalize_rpc_error(JsonRpcErrorObject(code=24, message="Block not found"))

        assert error is BLOCK_NOT_FOUND

    @pytest.mark.unit
    def test_known_error_with_data_keeps_data(self):
        error = normalize_rpc_error(
            {"code": 10, "message": "No trace available for transaction", "data": "REJECTED"}
        )

        assert error == RPCError(10, "No trace available for transaction", "REJECTED")
        assert error != NO_TRACE_AVAILABLE
        assert is_known_error(error)

    @pytest.mark.unit
    def test_structured_data_is_passed_through(self):
        data = {"revert_error": "0x1", "transaction_index": 0}

        error = normalize_rpc_error({"code": 41, "message": "Transaction execution error", "data": data})

        assert error.data == data

    @pytest.mark.unit
    def test_unknown_error_is_generic(self):
        request = {"jsonrpc": "2.0", "method": "starknet_traceTransaction", "params": ["0x1"], "id": 1}

        error = normalize_rpc_error({"code": -32000, "message": "rate limited", "data": 12}, request=request)

        assert error == RPCError(-32000, "rate limited", 12)
        assert error.request == request
        assert not is_known_error(error)

    @pytest.mark.unit
    def test_known_code_with_other_message_is_generic(self):
        error = normalize_rpc_error({"code": 24, "message": "Block 0x0 not found"})

        assert error is not BLOCK_NOT_FOUND
        assert error != BLOCK_NOT_FOUND
        assert error.code == 24

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        [
            {"message": "no code"},
            {"code": 24},
            {"code": "24", "message": "Block not found"},
            {"code": 24.5, "message": "Block not found"},
            "Block not found",
            None,
        ],
    )
    def test_malformed_error_objects(self, raw):
        with pytest.raises(MalformedResponse):
            normalize_rpc_error(raw)

    @pytest.mark.unit
    def test_every_sentinel_is_registered(self):
        sentinels = [value for value in vars(errors).values() if isinstance(value, RPCError)]

        assert len(sentinels) == len(KNOWN_ERRORS)
        for sentinel in sentinels:
            assert normalize_rpc_error(sentinel.to_dict()) is sentinel
