"""EOA + Polymarket with Fee Escrow Example.

This example demonstrates placing an order with fee escrow using a local
private key. The fee is collected upfront and:
- Distributed to Dome + affiliate on fill
- Refunded to user on cancel

Prerequisites:
1. pip install "dome-fee-escrow[examples]"
2. Set DOME_API_KEY, PRIVATE_KEY and the POLY_* credentials (a .env file works)
3. Approve USDC for the escrow and Polymarket contracts
4. Build and sign the CLOB order with your Polymarket client and save it
   as signed_order.json

Usage:
    python eoa_with_escrow.py
"""

import asyncio
import json
import logging
import os

from dotenv import load_dotenv

from dome_escrow import (
    JsonRpcChainReader,
    LocalAccountSigner,
    PolymarketCredentials,
    PolymarketRouterWithEscrow,
)
from dome_escrow.escrow import (
    build_all_approval_txs,
    check_allowances,
    contracts_to_approve,
    format_usdc,
    load_escrow_config_from_env,
)

load_dotenv()


async def main():
    required = [
        "DOME_API_KEY",
        "PRIVATE_KEY",
        "POLY_API_KEY",
        "POLY_API_SECRET",
        "POLY_API_PASSPHRASE",
    ]
    missing = [var for var in required if not os.environ.get(var)]
    if missing:
        print(f"Missing required environment variables: {', '.join(missing)}")
        return

    print("=" * 60)
    print("  EOA + POLYMARKET WITH FEE ESCROW")
    print("=" * 60)

    signer = LocalAccountSigner(os.environ["PRIVATE_KEY"])
    print(f"\n[1] Wallet: {signer.address}")

    async with PolymarketRouterWithEscrow({
        "api_key": os.environ["DOME_API_KEY"],
        "escrow": load_escrow_config_from_env(),
    }) as router:
        config = router.get_escrow_config()
        contracts = contracts_to_approve(config.escrow_address)

        print("\n[2] Checking USDC approvals...")
        async with JsonRpcChainReader(config.rpc_url) as chain:
            statuses = await check_allowances(
                chain, signer.address, contracts, usdc_address=config.usdc_address
            )
        for name, status in statuses.items():
            print(f"    {name}: {'ok' if status.has_allowance else 'missing'}")
        if not all(status.has_allowance for status in statuses.values()):
            print("    Send these approvals first:")
            txs = build_all_approval_txs(contracts, usdc_address=config.usdc_address)
            for tx in txs:
                print(f"      to={tx['to']} data={tx['data'][:18]}...")
            return

        router.set_user_credentials("escrow-demo-user", PolymarketCredentials(
            api_key=os.environ["POLY_API_KEY"],
            api_secret=os.environ["POLY_API_SECRET"],
            api_passphrase=os.environ["POLY_API_PASSPHRASE"],
        ))

        # Calculate fee preview
        size = 10  # shares
        price = 0.50  # $0.50 per share
        fee = router.calculate_order_fee(size, price)
        print("\n[3] Order preview:")
        print(f"    Size: {size} shares @ ${price}")
        print(f"    Cost: ${size * price:.2f} USDC")
        print(f"    Fee:  ${format_usdc(fee)} USDC")

        with open("signed_order.json") as f:
            signed_order = json.load(f)

        print("\n[4] Placing order with fee escrow...")
        result = await router.place_order({
            "user_id": "escrow-demo-user",
            "market_id": signed_order["tokenId"],
            "side": "buy",
            "size": size,
            "price": price,
            "signer": signer,
            "signed_order": signed_order,
        })

        print("\n[5] Order placed successfully!")
        print(f"    Order ID: {result.get('orderID', result.get('id', 'N/A'))}")
        if result.get("pullFeeTxHash"):
            print(f"    Fee TX: https://polygonscan.com/tx/{result['pullFeeTxHash']}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
