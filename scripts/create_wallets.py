# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Generate a buyer wallet and a receiving address for the paywall demo
and write them to .env (BUYER_PRIVATE_KEY, PAY_TO_ADDRESS).

    python scripts/create_wallets.py          # create, keeps existing unless confirmed
    python scripts/create_wallets.py --show   # print configured addresses
"""

import os
import sys

from dotenv import load_dotenv, set_key
from eth_account import Account

ENV_FILE = ".env"

load_dotenv(ENV_FILE)


def create_wallets(env_file: str = ENV_FILE) -> None:
    if os.getenv("BUYER_PRIVATE_KEY") or os.getenv("PAY_TO_ADDRESS"):
        show_wallets()
        if input("\nReplace the configured wallets? (y/n): ").lower() != "y":
            print("Keeping existing wallet configuration")
            return

    buyer = Account.create()
    seller = Account.create()
    if not os.path.exists(env_file):
        open(env_file, "a").close()
    set_key(env_file, "BUYER_PRIVATE_KEY", "0x" + bytes(buyer.key).hex())
    set_key(env_file, "PAY_TO_ADDRESS", seller.address)

    print(f"Buyer address:  {buyer.address}")
    print(f"PAY_TO_ADDRESS: {seller.address}")
    print(f"\n✅ Saved to {env_file}")
    print("\nNext steps:")
    print("  1. Fund the buyer with Base Sepolia USDC: https://faucet.circle.com/")
    print("  2. python run_paywall_server.py")
    print("  3. python packages/x402-paywall/examples/buyer_basic.py")


def show_wallets() -> None:
    key = os.getenv("BUYER_PRIVATE_KEY")
    if key:
        try:
            print(f"Buyer address:  {Account.from_key(key).address}")
        except ValueError:
            print("Buyer wallet:   invalid BUYER_PRIVATE_KEY")
    else:
        print("Buyer wallet:   not configured")
    print(f"PAY_TO_ADDRESS: {os.getenv('PAY_TO_ADDRESS') or 'not configured'}")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--show":
        show_wallets()
    else:
        create_wallets()
