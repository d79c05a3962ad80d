"""
Schema model tests.
"""
import pytest
from pydantic import ValidationError

from payment_mocks import MOCK_TOKEN_ADDRESS, MOCK_TX_HASH

from argo_payment.adapters.evm.abis import get_erc20_abi
from argo_payment.adapters.evm.signatures import split_signature
from argo_payment.schemas.bases import ContractRef, SignatureParams, TransactionStatus, TxResult


class TestSignatureParams:

    def test_packed_hex_round_trip(self):
        signature = "0x" + "ab" * 32 + "cd" * 32 + "1c"
        assert split_signature(signature).to_packed_hex() == signature

    def test_frozen(self):
        rsv = SignatureParams(r="0x" + "11" * 32, s="0x" + "22" * 32, v=27)
        with pytest.raises(ValidationError):
            rsv.v = 28

    @pytest.mark.parametrize("v", [0, 1, 29])
    def test_v_range(self, v):
        with pytest.raises(ValidationError):
            SignatureParams(r="0x" + "11" * 32, s="0x" + "22" * 32, v=v)


class TestTxResult:

    def test_defaults_to_pending(self):
        tx = TxResult(tx_hash=MOCK_TX_HASH)
        assert tx.is_pending()
        assert not tx.is_success()

    def test_canonical_json_is_sorted_and_compact(self):
        tx = TxResult(tx_hash=MOCK_TX_HASH, status=TransactionStatus.SUCCESS, gas_used=21000)
        text = tx.to_canonical_json()

        assert text.startswith('{"block_number":null,"error_message":null,"from_address":null,"gas_used":21000')
        assert " " not in text
        assert '"status":"success"' in text


class TestContractRef:

    @pytest.fixture
    def erc20(self):
        return ContractRef(name="erc20", address=MOCK_TOKEN_ADDRESS, abi=get_erc20_abi())

    def test_function_abi(self, erc20):
        assert erc20.function_abi("approve")["inputs"][0]["type"] == "address"

    def test_missing_function(self, erc20):
        with pytest.raises(ValueError, match="erc20"):
            erc20.function_abi("mint")

    @pytest.mark.parametrize("name, expected", [
        ("balanceOf", True),
        ("allowance", True),
        ("getNonce", True),
        ("approve", False),
        ("executeMetaTransaction", False),
    ])
    def test_is_read_only(self, erc20, name, expected):
        assert erc20.is_read_only(name) is expected
