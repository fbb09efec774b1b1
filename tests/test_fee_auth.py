"""Tests for order and performance fee authorizations."""

import time

import pytest

from dome_escrow.escrow import (
    ESCROW_CONTRACT_POLYGON,
    MAX_FEE_ABSOLUTE,
    ExpiredDeadline,
    FeeType,
    InvalidAddress,
    InvalidInput,
    OrderFeeAuthorization,
    PerformanceFeeAuthorization,
    SignedAuthorization,
    build_typed_data,
    create_order_fee_authorization,
    create_performance_fee_authorization,
    sign_authorization,
    sign_authorization_with_signer,
)

from conftest import ORDER_ID, TEST_ADDRESS, TEST_PRIVATE_KEY

ESCROW = ESCROW_CONTRACT_POLYGON

POSITION_ID = "0x" + "cd" * 32


class TestOrderFeeAuthorization:
    def test_create(self):
        auth = create_order_fee_authorization(
            order_id=ORDER_ID,
            payer=TEST_ADDRESS.lower(),
            dome_amount=200_000,
            affiliate_amount=50_000,
            chain_id=137,
        )

        assert isinstance(auth, OrderFeeAuthorization)
        assert auth.payer == TEST_ADDRESS
        assert auth.total_amount == 250_000
        assert auth.fee_type is FeeType.ORDER
        assert auth.deadline > int(time.time())

    def test_message_field_names(self):
        auth = create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 8_000, 2_000, 137)
        assert auth.to_message() == {
            "orderId": ORDER_ID,
            "payer": TEST_ADDRESS,
            "domeAmount": 8_000,
            "affiliateAmount": 2_000,
            "chainId": 137,
            "deadline": auth.deadline,
        }

    def test_rejects_zero_total(self):
        with pytest.raises(InvalidInput, match="cannot be zero"):
            create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 0, 0, 137)

    def test_rejects_below_minimum(self):
        with pytest.raises(InvalidInput, match="too low"):
            create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 5_000, 0, 137)

    def test_rejects_above_absolute_maximum(self):
        with pytest.raises(InvalidInput, match="too high"):
            create_order_fee_authorization(
                ORDER_ID, TEST_ADDRESS, MAX_FEE_ABSOLUTE, 1, 137
            )

    def test_rejects_invalid_payer(self):
        with pytest.raises(InvalidAddress):
            create_order_fee_authorization(ORDER_ID, "0x1234", 10_000, 0, 137)

    def test_rejects_expired_deadline(self):
        with pytest.raises(ExpiredDeadline):
            create_order_fee_authorization(
                ORDER_ID, TEST_ADDRESS, 10_000, 0, 137, deadline_seconds=0
            )

    def test_typed_data_uses_auth_chain_id(self):
        auth = create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 10_000, 0, 80002)
        typed_data = build_typed_data(auth, ESCROW)

        assert typed_data["primaryType"] == "OrderFeeAuthorization"
        assert typed_data["domain"]["chainId"] == 80002
        assert "EIP712Domain" in typed_data["types"]


class TestPerformanceFeeAuthorization:
    def test_create(self):
        auth = create_performance_fee_authorization(
            position_id=POSITION_ID,
            payer=TEST_ADDRESS,
            expected_winnings=50_000_000,
            dome_amount=4_000_000,
            affiliate_amount=1_000_000,
            chain_id=137,
        )

        assert isinstance(auth, PerformanceFeeAuthorization)
        assert auth.fee_type is FeeType.PERFORMANCE
        assert auth.total_amount == 5_000_000
        assert auth.to_message()["positionId"] == POSITION_ID

    def test_rejects_fee_above_winnings(self):
        with pytest.raises(InvalidInput, match="exceeds expected winnings"):
            create_performance_fee_authorization(
                POSITION_ID, TEST_ADDRESS, 150_000, 100_000, 100_000, 137
            )

    def test_rejects_below_performance_minimum(self):
        with pytest.raises(InvalidInput, match="too low"):
            create_performance_fee_authorization(
                POSITION_ID, TEST_ADDRESS, 50_000_000, 50_000, 0, 137
            )


class TestSignAuthorization:
    def test_sign_order_fee_authorization(self):
        auth = create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 8_000, 2_000, 137)
        signed = sign_authorization(TEST_PRIVATE_KEY, ESCROW, auth)

        assert isinstance(signed, SignedAuthorization)
        assert signed.auth is auth
        assert len(signed.signature) == 132

    def test_kinds_produce_different_signatures(self):
        order_auth = create_order_fee_authorization(
            ORDER_ID, TEST_ADDRESS, 4_000_000, 1_000_000, 137
        )
        perf_auth = create_performance_fee_authorization(
            ORDER_ID, TEST_ADDRESS, 50_000_000, 4_000_000, 1_000_000, 137
        )

        order_sig = sign_authorization(TEST_PRIVATE_KEY, ESCROW, order_auth).signature
        perf_sig = sign_authorization(TEST_PRIVATE_KEY, ESCROW, perf_auth).signature
        assert order_sig != perf_sig

    @pytest.mark.asyncio
    async def test_domain_chain_must_match_authorization(self, signer):
        auth = create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 8_000, 2_000, 137)

        with pytest.raises(InvalidInput, match="does not match"):
            sign_authorization(TEST_PRIVATE_KEY, ESCROW, auth, chain_id=80002)
        with pytest.raises(InvalidInput, match="does not match"):
            await sign_authorization_with_signer(signer, ESCROW, auth, chain_id=80002)

        # Agreeing explicit chain id is accepted
        sign_authorization(TEST_PRIVATE_KEY, ESCROW, auth, chain_id=137)

    @pytest.mark.asyncio
    async def test_signer_and_key_agree(self, signer):
        auth = create_performance_fee_authorization(
            POSITION_ID, TEST_ADDRESS, 50_000_000, 4_000_000, 0, 137
        )

        via_signer = await sign_authorization_with_signer(signer, ESCROW, auth)
        via_key = sign_authorization(TEST_PRIVATE_KEY, ESCROW, auth)

        assert via_signer == via_key
