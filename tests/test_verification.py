"""Tests for signature verification."""

import dataclasses

import pytest
from eth_account import Account

from dome_escrow.escrow import (
    ESCROW_CONTRACT_POLYGON,
    ChainReadError,
    ContractCallReverted,
    DirectKeyAccount,
    InvalidInput,
    SignedAuthorization,
    SmartContractAccount,
    VerificationFailed,
    create_fee_authorization,
    create_order_fee_authorization,
    recover_fee_auth_signer,
    require_valid_fee_auth,
    sign_authorization,
    sign_fee_authorization,
    verify_fee_auth_signature,
    verify_smart_account_signature,
)
from dome_escrow.escrow.verification import (
    EIP1271_MAGIC_VALUE,
    IS_VALID_SIGNATURE_SELECTOR,
    fee_auth_digest,
)

from conftest import ORDER_ID, OTHER_ADDRESS, TEST_ADDRESS, TEST_PRIVATE_KEY

ESCROW = ESCROW_CONTRACT_POLYGON

SAFE_ADDRESS = "0x" + "5a" * 20


@pytest.fixture
def signed_order_auth():
    auth = create_order_fee_authorization(ORDER_ID, TEST_ADDRESS, 8_000, 2_000, 137)
    return sign_authorization(TEST_PRIVATE_KEY, ESCROW, auth)


class TestDirectKeyVerification:
    @pytest.mark.asyncio
    async def test_round_trip(self, signed_order_auth):
        assert await verify_fee_auth_signature(
            signed_order_auth, TEST_ADDRESS, ESCROW
        ) is True
        assert recover_fee_auth_signer(signed_order_auth, ESCROW) == TEST_ADDRESS

    @pytest.mark.asyncio
    async def test_case_insensitive_address(self, signed_order_auth):
        assert await verify_fee_auth_signature(
            signed_order_auth, TEST_ADDRESS.lower(), ESCROW
        ) is True

    @pytest.mark.asyncio
    async def test_explicit_direct_key_account(self, signed_order_auth):
        account = DirectKeyAccount(address=TEST_ADDRESS)
        assert await verify_fee_auth_signature(
            signed_order_auth, account, ESCROW
        ) is True

    @pytest.mark.asyncio
    async def test_wrong_signer(self, signed_order_auth):
        assert await verify_fee_auth_signature(
            signed_order_auth, OTHER_ADDRESS, ESCROW
        ) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {"dome_amount": 9_000},
            {"affiliate_amount": 0},
            {"chain_id": 80002},
            {"deadline": 1},
            {"payer": OTHER_ADDRESS},
        ],
    )
    async def test_tampered_authorization(self, signed_order_auth, changes):
        tampered = SignedAuthorization(
            auth=dataclasses.replace(signed_order_auth.auth, **changes),
            signature=signed_order_auth.signature,
        )
        assert await verify_fee_auth_signature(tampered, TEST_ADDRESS, ESCROW) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {"payer": "0x1234"},
            {"payer": "not-an-address"},
            {"order_id": "0xnothex"},
            {"dome_amount": -1},
        ],
    )
    async def test_malformed_authorization_is_rejected(
        self, signed_order_auth, changes
    ):
        tampered = SignedAuthorization(
            auth=dataclasses.replace(signed_order_auth.auth, **changes),
            signature=signed_order_auth.signature,
        )
        assert await verify_fee_auth_signature(tampered, TEST_ADDRESS, ESCROW) is False

        with pytest.raises(VerificationFailed, match="Malformed"):
            recover_fee_auth_signer(tampered, ESCROW)

    @pytest.mark.asyncio
    async def test_domain_chain_must_match_authorization(self, signed_order_auth):
        result = await verify_fee_auth_signature(
            signed_order_auth, TEST_ADDRESS, ESCROW, chain_id=80002
        )
        assert result is False

    @pytest.mark.asyncio
    async def test_other_escrow_contract(self, signed_order_auth):
        assert await verify_fee_auth_signature(
            signed_order_auth, TEST_ADDRESS, OTHER_ADDRESS
        ) is False

    @pytest.mark.asyncio
    async def test_malformed_signature(self, signed_order_auth):
        broken = dataclasses.replace(signed_order_auth, signature="0xnothex")
        assert await verify_fee_auth_signature(broken, TEST_ADDRESS, ESCROW) is False

        with pytest.raises(VerificationFailed):
            recover_fee_auth_signer(broken, ESCROW)

    @pytest.mark.asyncio
    async def test_signed_fee_authorization(self):
        fee_auth = create_fee_authorization(ORDER_ID, TEST_ADDRESS, 10_000)
        signed = sign_fee_authorization(TEST_PRIVATE_KEY, ESCROW, fee_auth, 137)

        assert await verify_fee_auth_signature(
            signed, TEST_ADDRESS, ESCROW, chain_id=137
        ) is True

    @pytest.mark.asyncio
    async def test_require_valid_fee_auth(self, signed_order_auth):
        await require_valid_fee_auth(signed_order_auth, TEST_ADDRESS, ESCROW)

        with pytest.raises(VerificationFailed, match="direct_key"):
            await require_valid_fee_auth(
                signed_order_auth, Account.create().address, ESCROW
            )


class TestSmartAccountVerification:
    def _answer(self, chain, result):
        chain.set_code(SAFE_ADDRESS, b"\x60\x80")
        chain.on_call(SAFE_ADDRESS, IS_VALID_SIGNATURE_SELECTOR, result)

    @pytest.mark.asyncio
    async def test_magic_value_accepts(self, chain, signed_order_auth):
        self._answer(chain, EIP1271_MAGIC_VALUE + b"\x00" * 28)

        account = SmartContractAccount(address=SAFE_ADDRESS)
        assert await verify_fee_auth_signature(
            signed_order_auth, account, ESCROW, chain=chain
        ) is True

    @pytest.mark.asyncio
    async def test_sends_digest_and_signature(self, chain, signed_order_auth):
        self._answer(chain, EIP1271_MAGIC_VALUE + b"\x00" * 28)

        await verify_smart_account_signature(
            chain, signed_order_auth, SAFE_ADDRESS, ESCROW
        )

        _, calldata = chain.calls[0]
        digest = fee_auth_digest(signed_order_auth.auth, ESCROW)
        assert calldata[:4] == IS_VALID_SIGNATURE_SELECTOR
        assert calldata[4:36] == digest

    @pytest.mark.asyncio
    async def test_other_value_rejects(self, chain, signed_order_auth):
        self._answer(chain, b"\xff\xff\xff\xff" + b"\x00" * 28)

        assert await verify_smart_account_signature(
            chain, signed_order_auth, SAFE_ADDRESS, ESCROW
        ) is False

    @pytest.mark.asyncio
    async def test_revert_rejects(self, chain, signed_order_auth):
        self._answer(chain, ContractCallReverted("GS026"))

        assert await verify_smart_account_signature(
            chain, signed_order_auth, SAFE_ADDRESS, ESCROW
        ) is False

    @pytest.mark.asyncio
    async def test_malformed_authorization_rejects(self, chain, signed_order_auth):
        self._answer(chain, EIP1271_MAGIC_VALUE + b"\x00" * 28)
        tampered = SignedAuthorization(
            auth=dataclasses.replace(signed_order_auth.auth, payer="not-an-address"),
            signature=signed_order_auth.signature,
        )

        assert await verify_smart_account_signature(
            chain, tampered, SAFE_ADDRESS, ESCROW
        ) is False
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_undeployed_account_rejects(self, chain, signed_order_auth):
        assert await verify_smart_account_signature(
            chain, signed_order_auth, SAFE_ADDRESS, ESCROW
        ) is False
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_chain_errors_propagate(self, chain, signed_order_auth):
        self._answer(chain, ChainReadError("connection reset"))

        with pytest.raises(ChainReadError):
            await verify_smart_account_signature(
                chain, signed_order_auth, SAFE_ADDRESS, ESCROW
            )

    @pytest.mark.asyncio
    async def test_requires_chain_reader(self, signed_order_auth):
        with pytest.raises(InvalidInput, match="chain reader"):
            await verify_fee_auth_signature(
                signed_order_auth, SmartContractAccount(address=SAFE_ADDRESS), ESCROW
            )
