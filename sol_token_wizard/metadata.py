"""Builder for the on-chain token metadata transaction.

The transaction carries two instructions: a system ``create_account`` sized to
:data:`METADATA_ACCOUNT_SPACE` and funded at the rent-exempt minimum, followed
by the token-metadata program's ``CreateMetadataAccountV3`` with fixed
defaults (no royalties, creators, collection or uses; mutable). Instruction
data is Borsh encoded by hand since only this one instruction is needed.
"""

from __future__ import annotations

import logging
import struct
from typing import Iterable, List, Sequence

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import CreateAccountParams, create_account
from solders.transaction import Transaction

from .rpc_client import RPCError, format_rpc_hint

logger = logging.getLogger(__name__)

METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
CREATE_METADATA_ACCOUNT_V3 = 33
# Edition account layout: key (1) + parent (32) + edition (8).
METADATA_ACCOUNT_SPACE = 41

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200


class MetadataError(RuntimeError):
    """Raised when the metadata transaction cannot be built or confirmed."""


def find_metadata_pda(mint: Pubkey) -> Pubkey:
    """Return the canonical metadata account address for ``mint``."""

    address, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(METADATA_PROGRAM_ID), bytes(mint)],
        METADATA_PROGRAM_ID,
    )
    return address


def _borsh_string(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return struct.pack("<I", len(encoded)) + encoded


def check_metadata_fields(name: str, symbol: str, uri: str) -> None:
    for label, value, limit in (
        ("name", name, MAX_NAME_LENGTH),
        ("symbol", symbol, MAX_SYMBOL_LENGTH),
        ("uri", uri, MAX_URI_LENGTH),
    ):
        if len(value.encode("utf-8")) > limit:
            raise MetadataError(f"Token {label} exceeds {limit} bytes: {value!r}")


def encode_create_metadata_v3_data(name: str, symbol: str, uri: str) -> bytes:
    """Borsh-encode ``CreateMetadataAccountV3`` arguments."""

    check_metadata_fields(name, symbol, uri)
    data = bytearray([CREATE_METADATA_ACCOUNT_V3])
    data += _borsh_string(name)
    data += _borsh_string(symbol)
    data += _borsh_string(uri)
    data += struct.pack("<H", 0)  # seller_fee_basis_points
    data += b"\x00"  # creators: None
    data += b"\x00"  # collection: None
    data += b"\x00"  # uses: None
    data += b"\x01"  # is_mutable
    data += b"\x00"  # collection_details: None
    return bytes(data)


def build_create_metadata_v3_instruction(
    *,
    metadata: Pubkey,
    mint: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    update_authority: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> Instruction:
    accounts = [
        AccountMeta(metadata, is_signer=False, is_writable=True),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(mint_authority, is_signer=True, is_writable=False),
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(update_authority, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        # Omitted optional rent sysvar is passed as the program id.
        AccountMeta(METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(
        METADATA_PROGRAM_ID,
        encode_create_metadata_v3_data(name, symbol, uri),
        accounts,
    )


def build_metadata_instructions(
    *,
    payer: Pubkey,
    mint: Pubkey,
    metadata: Pubkey,
    mint_authority: Pubkey,
    update_authority: Pubkey,
    rent_lamports: int,
    name: str,
    symbol: str,
    uri: str,
) -> List[Instruction]:
    """Return the create-account and create-metadata instructions in order."""

    fund = create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=metadata,
            lamports=rent_lamports,
            space=METADATA_ACCOUNT_SPACE,
            owner=METADATA_PROGRAM_ID,
        )
    )
    create = build_create_metadata_v3_instruction(
        metadata=metadata,
        mint=mint,
        mint_authority=mint_authority,
        payer=payer,
        update_authority=update_authority,
        name=name,
        symbol=symbol,
        uri=uri,
    )
    return [fund, create]


def _unique_signers(signers: Iterable[Keypair]) -> list[Keypair]:
    seen: set[bytes] = set()
    unique: list[Keypair] = []
    for signer in signers:
        key = bytes(signer.pubkey())
        if key in seen:
            continue
        seen.add(key)
        unique.append(signer)
    return unique


def sign_transaction(
    instructions: Sequence[Instruction],
    payer: Keypair,
    signers: Iterable[Keypair],
    blockhash: Hash,
) -> Transaction:
    message = Message.new_with_blockhash(list(instructions), payer.pubkey(), blockhash)
    transaction = Transaction.new_unsigned(message)
    transaction.partial_sign(_unique_signers([payer, *signers]), blockhash)
    return transaction


def attach_metadata(
    rpc,
    *,
    payer: Keypair,
    mint: Pubkey,
    metadata: Pubkey,
    name: str,
    symbol: str,
    uri: str,
    mint_authority: Keypair | None = None,
    metadata_signer: Keypair | None = None,
) -> str:
    """Build, sign, submit and confirm the metadata transaction.

    The payer doubles as update authority; ``mint_authority`` defaults to the
    payer as well. ``create_account`` needs a signature from the metadata
    account itself, so a transaction is only sent when ``metadata_signer``
    holds its key. Returns the transaction signature.
    """

    authority = mint_authority or payer
    signers = [authority]
    if metadata_signer is not None:
        if metadata_signer.pubkey() != metadata:
            raise MetadataError(
                f"Metadata signer {metadata_signer.pubkey()} does not match account {metadata}"
            )
        signers.append(metadata_signer)
    try:
        rent = rpc.get_minimum_balance_for_rent_exemption(METADATA_ACCOUNT_SPACE)
        instructions = build_metadata_instructions(
            payer=payer.pubkey(),
            mint=mint,
            metadata=metadata,
            mint_authority=authority.pubkey(),
            update_authority=payer.pubkey(),
            rent_lamports=rent,
            name=name,
            symbol=symbol,
            uri=uri,
        )
        blockhash = Hash.from_string(rpc.get_latest_blockhash())
        transaction = sign_transaction(instructions, payer, signers, blockhash)
        if not transaction.is_signed():
            raise MetadataError(
                f"Metadata account {metadata} must sign the transaction; "
                "pass a keypair address rather than a derived one"
            )
        signature = rpc.send_transaction(bytes(transaction))
        logger.info("Submitted metadata transaction %s for mint %s", signature, mint)
        rpc.confirm_transaction(signature)
    except RPCError as exc:
        hint = format_rpc_hint(exc)
        message = f"Metadata transaction failed: {exc}"
        if hint:
            message += f"\nHint: {hint}"
        raise MetadataError(message) from exc
    return signature
