"""Tests for order ids, fee authorizations and signing."""

import dataclasses
import math
import time
from decimal import Decimal

import pytest
from eth_account import Account

from dome_escrow.escrow import (
    ESCROW_CONTRACT_POLYGON,
    ExpiredDeadline,
    FeeAuthorization,
    InvalidAddress,
    InvalidPrice,
    OrderParams,
    SignedFeeAuthorization,
    SigningFailed,
    calculate_order_fees,
    calculate_order_size_usdc,
    create_fee_authorization,
    format_bps,
    format_usdc,
    generate_order_id,
    parse_usdc,
    sign_fee_authorization,
    sign_fee_authorization_with_signer,
    verify_fee_authorization_signature,
    verify_order_id,
)
from dome_escrow.escrow.signing import build_typed_data, create_eip712_domain

from conftest import ORDER_ID, TEST_ADDRESS, TEST_PRIVATE_KEY

ESCROW = ESCROW_CONTRACT_POLYGON

BASE_PARAMS = OrderParams(
    user_address=TEST_ADDRESS,
    market_id="12345",
    side="buy",
    size=1_000_000,  # $1 USDC
    price=0.65,
    timestamp=1700000000000,
    chain_id=137,
)


class TestOrderId:
    """Tests for order ID generation."""

    def test_generate_order_id_basic(self):
        order_id = generate_order_id(BASE_PARAMS)

        assert order_id.startswith("0x")
        assert len(order_id) == 66  # 0x + 64 hex chars

    def test_generate_order_id_deterministic(self):
        assert generate_order_id(BASE_PARAMS) == generate_order_id(BASE_PARAMS)

    def test_address_case_does_not_matter(self):
        lower = dataclasses.replace(BASE_PARAMS, user_address=TEST_ADDRESS.lower())
        assert generate_order_id(lower) == generate_order_id(BASE_PARAMS)

    @pytest.mark.parametrize(
        "changes",
        [
            {"timestamp": 1700000000001},  # 1ms different
            {"user_address": "0x" + "11" * 20},
            {"market_id": "12346"},
            {"side": "sell"},
            {"size": 1_000_001},
            {"price": 0.66},
            {"chain_id": 80002},
        ],
    )
    def test_any_field_changes_the_id(self, changes):
        changed = dataclasses.replace(BASE_PARAMS, **changes)
        assert generate_order_id(changed) != generate_order_id(BASE_PARAMS)

    def test_price_bounds_are_inclusive(self):
        generate_order_id(dataclasses.replace(BASE_PARAMS, price=0))
        generate_order_id(dataclasses.replace(BASE_PARAMS, price=1))

    @pytest.mark.parametrize(
        "price", [1.5, -0.01, math.nan, Decimal("NaN"), Decimal("1.01")]
    )
    def test_generate_order_id_invalid_price(self, price):
        with pytest.raises(InvalidPrice, match="Invalid price"):
            generate_order_id(dataclasses.replace(BASE_PARAMS, price=price))

    def test_generate_order_id_invalid_address(self):
        with pytest.raises(InvalidAddress, match="Invalid user_address"):
            generate_order_id(dataclasses.replace(BASE_PARAMS, user_address="invalid"))

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            generate_order_id(dataclasses.replace(BASE_PARAMS, side="hold"))

    def test_verify_order_id(self):
        order_id = generate_order_id(BASE_PARAMS)
        assert verify_order_id(order_id, BASE_PARAMS) is True
        assert verify_order_id(
            order_id.upper().replace("0X", "0x"), BASE_PARAMS
        ) is True

        tampered = dataclasses.replace(BASE_PARAMS, timestamp=1700000000001)
        assert verify_order_id(order_id, tampered) is False

    def test_verify_order_id_with_invalid_params(self):
        order_id = generate_order_id(BASE_PARAMS)
        assert verify_order_id(
            order_id, dataclasses.replace(BASE_PARAMS, price=2)
        ) is False
        assert verify_order_id(
            order_id, dataclasses.replace(BASE_PARAMS, price=math.nan)
        ) is False

    def test_decimal_price_matches_float(self):
        as_decimal = dataclasses.replace(BASE_PARAMS, price=Decimal("0.65"))
        assert generate_order_id(as_decimal) == generate_order_id(BASE_PARAMS)


class TestFeeAuthorization:
    """Tests for fee authorization creation."""

    def test_create_fee_authorization(self):
        fee_auth = create_fee_authorization(
            order_id=ORDER_ID,
            payer=TEST_ADDRESS,
            fee_amount=2500,  # $0.0025
            deadline_seconds=3600,
        )

        assert fee_auth.order_id == ORDER_ID
        assert fee_auth.payer == TEST_ADDRESS
        assert fee_auth.fee_amount == 2500
        assert int(time.time()) < fee_auth.deadline <= int(time.time()) + 3600

    def test_payer_is_checksummed(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS.lower(), 2500)
        assert fee_auth.payer == TEST_ADDRESS

    def test_create_fee_authorization_invalid_payer(self):
        with pytest.raises(InvalidAddress, match="Invalid payer"):
            create_fee_authorization(
                order_id=ORDER_ID, payer="invalid", fee_amount=2500
            )

    def test_create_fee_authorization_invalid_order_id(self):
        with pytest.raises(ValueError, match="Invalid order_id"):
            create_fee_authorization(
                order_id="0x1234", payer=TEST_ADDRESS, fee_amount=2500
            )

    def test_create_fee_authorization_deadline_too_short(self):
        with pytest.raises(ValueError, match="Deadline too short"):
            create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500, deadline_seconds=30)

    def test_create_fee_authorization_deadline_too_long(self):
        with pytest.raises(ValueError, match="Deadline too long"):
            create_fee_authorization(
                ORDER_ID, TEST_ADDRESS, 2500, deadline_seconds=100000
            )

    @pytest.mark.parametrize("deadline_seconds", [0, -10])
    def test_create_fee_authorization_non_positive_deadline(self, deadline_seconds):
        with pytest.raises(ExpiredDeadline):
            create_fee_authorization(
                ORDER_ID, TEST_ADDRESS, 2500, deadline_seconds=deadline_seconds
            )


class TestSigning:
    """Tests for EIP-712 signing."""

    def test_domain(self):
        domain = create_eip712_domain(ESCROW.lower(), 137)
        assert domain == {
            "name": "DomeFeeEscrow",
            "version": "1",
            "chainId": 137,
            "verifyingContract": ESCROW,
        }

    def test_typed_data_requires_chain_id_for_fee_authorization(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        with pytest.raises(ValueError, match="chain_id is required"):
            build_typed_data(fee_auth, ESCROW)

    def test_sign_fee_authorization(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)

        signed = sign_fee_authorization(
            private_key=TEST_PRIVATE_KEY,
            escrow_address=ESCROW,
            fee_auth=fee_auth,
            chain_id=137,
        )

        assert isinstance(signed, SignedFeeAuthorization)
        assert signed.signature.startswith("0x")
        assert len(signed.signature) == 2 + 65 * 2
        assert signed.unsigned() == fee_auth

    def test_signing_is_deterministic(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        first = sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, fee_auth)
        second = sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, fee_auth)
        assert first.signature == second.signature

    def test_refuses_to_sign_expired_authorization(self):
        expired = FeeAuthorization(
            ORDER_ID, TEST_ADDRESS, 2500, deadline=int(time.time()) - 1
        )
        with pytest.raises(ExpiredDeadline):
            sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, expired)

    def test_verify_fee_authorization_signature(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        signed = sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, fee_auth, 137)

        assert verify_fee_authorization_signature(
            signed_auth=signed,
            escrow_address=ESCROW,
            chain_id=137,
            expected_signer=TEST_ADDRESS,
        ) is True

        # Verify with wrong signer
        assert verify_fee_authorization_signature(
            signed_auth=signed,
            escrow_address=ESCROW,
            chain_id=137,
            expected_signer=Account.create().address,
        ) is False

    def test_signature_is_bound_to_chain(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        signed = sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, fee_auth, 137)

        assert verify_fee_authorization_signature(
            signed, ESCROW, 80002, TEST_ADDRESS
        ) is False


class TestSignerSigning:
    """Tests for signing through a TypedDataSigner."""

    @pytest.mark.asyncio
    async def test_local_signer_matches_private_key_signing(self, signer):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)

        via_signer = await sign_fee_authorization_with_signer(signer, ESCROW, fee_auth)
        via_key = sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, fee_auth)

        assert via_signer.signature == via_key.signature

    @pytest.mark.asyncio
    async def test_wire_params_stringify_integers(self):
        seen = {}

        class RecordingSigner:
            async def get_address(self):
                return TEST_ADDRESS

            async def sign_typed_data(self, params):
                seen.update(params)
                return "ab" * 65

        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        signed = await sign_fee_authorization_with_signer(
            RecordingSigner(), ESCROW, fee_auth
        )

        assert signed.signature == "0x" + "ab" * 65
        assert seen["primaryType"] == "FeeAuthorization"
        assert "EIP712Domain" not in seen["types"]
        assert seen["message"]["feeAmount"] == "2500"
        assert seen["message"]["deadline"] == str(fee_auth.deadline)

    @pytest.mark.asyncio
    async def test_signer_error_becomes_signing_failed(self):
        class BrokenSigner:
            async def get_address(self):
                return TEST_ADDRESS

            async def sign_typed_data(self, params):
                raise RuntimeError("wallet locked")

        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        with pytest.raises(SigningFailed, match="wallet locked"):
            await sign_fee_authorization_with_signer(BrokenSigner(), ESCROW, fee_auth)

    @pytest.mark.asyncio
    async def test_empty_signature_becomes_signing_failed(self):
        class EmptySigner:
            async def get_address(self):
                return TEST_ADDRESS

            async def sign_typed_data(self, params):
                return ""

        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 2500)
        with pytest.raises(SigningFailed):
            await sign_fee_authorization_with_signer(EmptySigner(), ESCROW, fee_auth)


class TestUtils:
    """Tests for utility functions."""

    def test_format_usdc(self):
        assert format_usdc(1_000_000) == "1"
        assert format_usdc(1_500_000) == "1.5"
        assert format_usdc(1_234_567) == "1.234567"
        assert format_usdc(100) == "0.0001"

    def test_parse_usdc(self):
        assert parse_usdc(1.0) == 1_000_000
        assert parse_usdc(1.5) == 1_500_000
        assert parse_usdc(0.01) == 10_000
        assert parse_usdc(100) == 100_000_000
        assert parse_usdc("0.0000019") == 1  # truncated

    def test_format_bps(self):
        assert format_bps(25) == "0.25%"

    def test_calculate_order_size_usdc(self):
        # 10 shares at $0.50 = $5
        assert calculate_order_size_usdc(10, 0.50) == 5_000_000

        # 100 shares at $0.65 = $65
        assert calculate_order_size_usdc(100, 0.65) == 65_000_000


class TestIntegration:
    """Integration tests for the full flow."""

    def test_full_escrow_flow(self):
        """Generate ID -> calculate fee -> create auth -> sign -> verify."""
        params = OrderParams(
            user_address=TEST_ADDRESS,
            market_id="12345678901234567890",
            side="buy",
            size=calculate_order_size_usdc(10, 0.65),  # 10 shares @ $0.65
            price=0.65,
            timestamp=int(time.time() * 1000),
            chain_id=137,
        )
        order_id = generate_order_id(params)

        fees = calculate_order_fees(params.size, dome_fee_bps=25)
        assert fees.total_fee == 16_250  # 0.25% of $6.50

        fee_auth = create_fee_authorization(
            order_id=order_id,
            payer=TEST_ADDRESS,
            fee_amount=fees.total_fee,
            deadline_seconds=3600,
        )

        signed = sign_fee_authorization(
            private_key=TEST_PRIVATE_KEY,
            escrow_address=ESCROW,
            fee_auth=fee_auth,
            chain_id=137,
        )

        assert verify_order_id(order_id, params)
        assert verify_fee_authorization_signature(
            signed_auth=signed,
            escrow_address=ESCROW,
            chain_id=137,
            expected_signer=TEST_ADDRESS,
        )
