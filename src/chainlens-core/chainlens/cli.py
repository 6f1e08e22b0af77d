import argparse
import asyncio
import getpass
import json
import sys
from typing import Optional

from .config import load_config
from .logging_config import setup_logging
from .service import Web3Service


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Decode EVM call data and receipts, query chains, and verify wallet signatures.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    decode_parser = subparsers.add_parser("decode-input", help="Decode raw transaction input data")
    decode_parser.add_argument("--data", required=True, help="Hex call data (0x prefix optional).")

    tx_parser = subparsers.add_parser("decode-tx", help="Fetch a transaction and decode its input")
    tx_parser.add_argument("--tx-hash", required=True, help="Transaction hash (0x-prefixed).")
    tx_parser.add_argument("--chain-id", type=int, default=1, help="Chain id. Defaults to 1.")

    receipt_parser = subparsers.add_parser("receipt", help="Fetch and parse a transaction receipt")
    receipt_parser.add_argument("--tx-hash", required=True, help="Transaction hash (0x-prefixed).")
    receipt_parser.add_argument("--chain-id", type=int, default=1, help="Chain id. Defaults to 1.")

    balance_parser = subparsers.add_parser("balance", help="Native balance of an address")
    balance_parser.add_argument("--address", required=True, help="Account address (0x-prefixed).")
    balance_parser.add_argument("--chain-id", type=int, default=1, help="Chain id. Defaults to 1.")

    token_parser = subparsers.add_parser("token-balance", help="ERC20 balance of an address")
    token_parser.add_argument("--token", required=True, help="Token contract address.")
    token_parser.add_argument("--address", required=True, help="Holder address.")
    token_parser.add_argument("--chain-id", type=int, default=1, help="Chain id. Defaults to 1.")

    gas_parser = subparsers.add_parser("gas-price", help="Current gas price (cached)")
    gas_parser.add_argument("--chain-id", type=int, default=1, help="Chain id. Defaults to 1.")

    price_parser = subparsers.add_parser("price", help="Token USD price (cached)")
    price_parser.add_argument("--symbol", required=True, help="Token symbol, e.g. ETH.")

    sign_parser = subparsers.add_parser("sign-message", help="Build the wallet login message for a nonce")
    sign_parser.add_argument("--nonce", required=True, help="Server-issued nonce.")

    verify_parser = subparsers.add_parser("verify", help="Verify an EIP-191 signature")
    verify_parser.add_argument("--message", required=True, help="The exact message that was signed.")
    verify_parser.add_argument("--signature", required=True, help="65-byte hex signature.")
    verify_parser.add_argument("--address", required=True, help="Expected signer address.")

    subparsers.add_parser("encrypt-key", help="Encrypt a private key (prompts for key and passphrase)")

    unlock_parser = subparsers.add_parser("key-address", help="Decrypt a stored key file and print its address")
    unlock_parser.add_argument("--file", required=True, help="Path to the JSON written by encrypt-key.")

    subparsers.add_parser("chains", help="List registered chains")

    return parser


async def _run(service: Web3Service, args: argparse.Namespace):
    if args.command == "decode-input":
        return service.decode_input(args.data)
    if args.command == "decode-tx":
        return await service.decode_transaction(args.tx_hash, args.chain_id)
    if args.command == "receipt":
        return await service.get_receipt(args.tx_hash, args.chain_id)
    if args.command == "balance":
        return await service.get_balance(args.address, args.chain_id)
    if args.command == "token-balance":
        return await service.get_token_balance(args.token, args.address, args.chain_id)
    if args.command == "gas-price":
        return await service.get_gas_price(args.chain_id)
    if args.command == "price":
        return await service.get_token_price(args.symbol)
    if args.command == "sign-message":
        return service.sign_message(args.nonce)
    if args.command == "verify":
        return service.verify_signature(args.message, args.signature, args.address)
    if args.command == "chains":
        return service.pool.list_chains()
    if args.command == "encrypt-key":
        private_key = getpass.getpass("Private key (hex): ")
        passphrase = getpass.getpass("Passphrase: ")
        return service.encrypt_private_key(private_key, passphrase)
    if args.command == "key-address":
        with open(args.file, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        passphrase = getpass.getpass("Passphrase: ")
        return service.unlock_address(payload.get("encrypted", payload), passphrase)
    raise ValueError(f"Unknown command '{args.command}'.")


def main(argv: Optional[list] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        setup_logging(config.log_level)
        service = Web3Service(config)
        result = asyncio.run(_run(service, args))
        print(json.dumps(result, indent=2, default=str))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
