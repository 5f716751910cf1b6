"""Solana source chain adapter.

Burn USDC on Solana with the ``deposit_for_burn`` instruction of
Circle's TokenMessengerMinterV2 program.

Solana has no allowances, the owner signs the burn directly. The instruction
needs a long list of program derived addresses (PDAs), all derived from fixed
seed strings, plus the ``RemoteTokenMessenger`` account of the destination
domain that we look up with ``getProgramAccounts``.

We build the instruction by hand:

- Account order comes from the program's Anchor IDL, read from chain
  or downloaded from GitHub
- Instruction data is the Anchor discriminator followed by Borsh encoded
  ``DepositForBurnParams``

A fresh keypair is generated for every burn to hold the ``MessageSent``
event data account, and it co-signs the transaction.

- `Solana CCTP contracts <https://github.com/circlefin/solana-cctp-contracts>`__
"""

import hashlib
import json
import logging
import re
import struct
import zlib
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

import base58
import httpx
import requests
from solana.rpc.api import Client
from solana.exceptions import SolanaRpcException
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import MemcmpOpts, TxOpts
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from cctp_bridge.cctp.adapter import SourceChainAdapter
from cctp_bridge.cctp.config import CCTPTransferConfig
from cctp_bridge.cctp.constants import SOLANA_DEVNET_RPC
from cctp_bridge.cctp.encoding import u32_to_le_bytes
from cctp_bridge.utils import get_url_domain

logger = logging.getLogger(__name__)

#: Size of an SPL token mint account
SPL_MINT_ACCOUNT_SIZE = 82

#: Instruction we call on TokenMessengerMinterV2
DEPOSIT_FOR_BURN_INSTRUCTION = "deposit_for_burn"

#: Seed of the Anchor IDL account
ANCHOR_IDL_SEED = "anchor:idl"

#: Seconds before IDL download times out
IDL_DOWNLOAD_TIMEOUT = 30

#: Borsh layout of ``DepositForBurnParams``:
#: amount u64, destination_domain u32, mint_recipient pubkey, destination_caller pubkey,
#: max_fee u64, min_finality_threshold u32
DEPOSIT_FOR_BURN_PARAMS_LAYOUT = struct.Struct("<QI32s32sQI")

#: Borsh layout of ``RemoteTokenMessenger`` after the discriminator: domain u32, token_messenger pubkey
REMOTE_TOKEN_MESSENGER_LAYOUT = struct.Struct("<I32s")


class SolanaTokenAccountError(Exception):
    """Token account to burn from is not a USDC token account."""


class RemoteTokenMessengerNotFound(Exception):
    """Destination domain is not registered on the Solana token messenger."""


class MissingAccountMapping(Exception):
    """IDL asks for an account we do not know how to fill."""


class IDLNotFound(Exception):
    """Could not load the program IDL from chain or HTTP."""


@dataclass(slots=True, frozen=True)
class DepositForBurnPDAs:
    """Program derived addresses needed by ``deposit_for_burn``."""

    message_transmitter: Pubkey
    token_messenger: Pubkey
    token_minter: Pubkey
    local_token: Pubkey
    sender_authority: Pubkey
    denylist_account: Pubkey
    event_authority: Pubkey


@dataclass(slots=True, frozen=True)
class RemoteTokenMessenger:
    """Decoded ``RemoteTokenMessenger`` account."""

    #: Public key of the account itself
    pubkey: Pubkey

    #: CCTP domain this account describes
    domain: int

    #: Token messenger on the remote chain as bytes32
    token_messenger: bytes


@dataclass(slots=True)
class SolanaBurnAccounts:
    """Everything ``deposit_for_burn`` touches, resolved."""

    owner: Pubkey
    burn_token_account: Pubkey
    burn_token_mint: Pubkey
    pdas: DepositForBurnPDAs
    remote_token_messenger: RemoteTokenMessenger

    #: Ephemeral account for the emitted message, signs the transaction
    message_sent_event_data: Keypair


@dataclass(slots=True)
class SolanaBurnCall:
    """Unsigned burn instruction and its extra signers."""

    instruction: Instruction

    #: Signers besides the owner
    extra_signers: list[Keypair] = field(default_factory=list)


def find_program_address(
    label: str,
    program_id: Pubkey,
    extra_seeds: Iterable[str | bytes | Pubkey] = (),
) -> tuple[Pubkey, int]:
    """Derive a PDA from a UTF-8 label and extra seeds.

    :param extra_seeds:
        Strings are UTF-8 encoded, public keys as their 32 bytes

    :return:
        Tuple (address, bump)
    """
    seeds = [label.encode("utf-8")]
    for seed in extra_seeds:
        match seed:
            case str():
                seeds.append(seed.encode("utf-8"))
            case Pubkey():
                seeds.append(bytes(seed))
            case bytes() | bytearray():
                seeds.append(bytes(seed))
            case _:
                raise TypeError(f"Unsupported seed type {type(seed)}: {seed}")
    return Pubkey.find_program_address(seeds, program_id)


def get_deposit_for_burn_pdas(
    usdc_mint: Pubkey,
    owner: Pubkey,
    token_messenger_minter_program_id: Pubkey,
    message_transmitter_program_id: Pubkey,
) -> DepositForBurnPDAs:
    """Derive all PDAs of a ``deposit_for_burn`` call.

    Deterministic, no network access.
    """
    return DepositForBurnPDAs(
        message_transmitter=find_program_address("message_transmitter", message_transmitter_program_id)[0],
        token_messenger=find_program_address("token_messenger", token_messenger_minter_program_id)[0],
        token_minter=find_program_address("token_minter", token_messenger_minter_program_id)[0],
        local_token=find_program_address("local_token", token_messenger_minter_program_id, [usdc_mint])[0],
        sender_authority=find_program_address("sender_authority", token_messenger_minter_program_id)[0],
        denylist_account=find_program_address("denylist_account", token_messenger_minter_program_id, [owner])[0],
        event_authority=find_program_address("__event_authority", token_messenger_minter_program_id)[0],
    )


def get_account_discriminator(account_name: str) -> bytes:
    """Anchor account discriminator, first 8 bytes of ``sha256("account:<Name>")``."""
    return hashlib.sha256(f"account:{account_name}".encode("utf-8")).digest()[:8]


def get_instruction_discriminator(instruction_name: str) -> bytes:
    """Anchor instruction discriminator, first 8 bytes of ``sha256("global:<name>")``."""
    return hashlib.sha256(f"global:{instruction_name}".encode("utf-8")).digest()[:8]


def _to_snake_case(name: str) -> str:
    # Legacy Anchor IDLs use camelCase names
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def get_idl_address(program_id: Pubkey) -> Pubkey:
    """Address of the Anchor IDL account of a program."""
    base, _ = Pubkey.find_program_address([], program_id)
    return Pubkey.create_with_seed(base, ANCHOR_IDL_SEED, program_id)


def decode_idl_account(data: bytes) -> dict:
    """Decode the Anchor IDL account.

    Layout: 8 bytes discriminator, 32 bytes authority, u32 length,
    zlib compressed JSON.
    """
    (length,) = struct.unpack_from("<I", data, 40)
    compressed = data[44 : 44 + length]
    return json.loads(zlib.decompress(compressed))


def fetch_idl_with_fallback(
    client: Client,
    program_id: Pubkey,
    url: str,
) -> dict:
    """Load an Anchor IDL from chain, or download it if it is not published on chain.

    :raise IDLNotFound:
        Neither source worked
    """
    try:
        resp = client.get_account_info(get_idl_address(program_id))
        if resp.value is not None:
            return decode_idl_account(bytes(resp.value.data))
        logger.info("On-chain IDL for %s not found; falling back to %s", program_id, url)
    except (zlib.error, ValueError, struct.error) as e:
        logger.info("Failed to read on-chain IDL for %s: %s; falling back to %s", program_id, e, url)
    except (SolanaRpcException, RPCException, httpx.HTTPError) as e:
        logger.warning("RPC failed reading on-chain IDL for %s: %s; falling back to %s", program_id, e, url)

    try:
        response = requests.get(url, timeout=IDL_DOWNLOAD_TIMEOUT)
        response.raise_for_status()
        idl = response.json()
    except (requests.RequestException, ValueError) as e:
        raise IDLNotFound(f"Unable to load IDL for {program_id} from {url}") from e

    if not idl:
        raise IDLNotFound(f"Empty IDL for {program_id} from {url}")
    return idl


def get_idl_instruction(idl: dict, name: str) -> dict:
    """Find an instruction definition from an IDL, accepting camelCase names."""
    for ix in idl.get("instructions", []):
        if _to_snake_case(ix["name"]) == name:
            return ix
    raise IDLNotFound(f"{name} instruction not found in IDL")


def _flatten_idl_accounts(accounts: list[dict]) -> Iterable[dict]:
    for acct in accounts:
        if "accounts" in acct:
            # Composite account group
            yield from _flatten_idl_accounts(acct["accounts"])
        else:
            yield acct


def build_account_metas(ix_def: dict, account_map: dict[str, Pubkey]) -> list[AccountMeta]:
    """Turn the IDL account list into account metas, in IDL order.

    Reads both legacy (``isMut``, ``isSigner``) and current (``writable``, ``signer``) flags.

    :raise MissingAccountMapping:
        An account in the IDL has no entry in ``account_map``
    """
    metas = []
    for acct in _flatten_idl_accounts(ix_def["accounts"]):
        name = _to_snake_case(acct["name"])
        pubkey = account_map.get(name)
        if pubkey is None:
            raise MissingAccountMapping(f"Missing account mapping for {name}")
        is_writable = acct.get("isMut", acct.get("writable", False))
        is_signer = acct.get("isSigner", acct.get("signer", False))
        metas.append(AccountMeta(pubkey=pubkey, is_signer=bool(is_signer), is_writable=bool(is_writable)))
    return metas


def encode_deposit_for_burn_data(
    discriminator: bytes,
    amount: int,
    destination_domain: int,
    mint_recipient: Pubkey,
    destination_caller: Pubkey,
    max_fee: int,
    min_finality_threshold: int,
) -> bytes:
    """Anchor instruction data for ``deposit_for_burn``."""
    assert len(discriminator) == 8, f"Bad discriminator {discriminator!r}"
    return discriminator + DEPOSIT_FOR_BURN_PARAMS_LAYOUT.pack(
        amount,
        destination_domain,
        bytes(mint_recipient),
        bytes(destination_caller),
        max_fee,
        min_finality_threshold,
    )


def build_deposit_for_burn_instruction(
    idl: dict,
    account_map: dict[str, Pubkey],
    program_id: Pubkey,
    amount: int,
    destination_domain: int,
    mint_recipient: Pubkey,
    destination_caller: Pubkey,
    max_fee: int,
    min_finality_threshold: int,
) -> Instruction:
    """Build the ``deposit_for_burn`` instruction by hand from the IDL."""
    ix_def = get_idl_instruction(idl, DEPOSIT_FOR_BURN_INSTRUCTION)

    if "discriminator" in ix_def:
        discriminator = bytes(ix_def["discriminator"])
    else:
        discriminator = get_instruction_discriminator(DEPOSIT_FOR_BURN_INSTRUCTION)

    data = encode_deposit_for_burn_data(
        discriminator,
        amount=amount,
        destination_domain=destination_domain,
        mint_recipient=mint_recipient,
        destination_caller=destination_caller,
        max_fee=max_fee,
        min_finality_threshold=min_finality_threshold,
    )

    return Instruction(
        program_id=program_id,
        data=data,
        accounts=build_account_metas(ix_def, account_map),
    )


def decode_remote_token_messenger(pubkey: Pubkey, data: bytes) -> RemoteTokenMessenger:
    """Decode a ``RemoteTokenMessenger`` account."""
    expected = get_account_discriminator("RemoteTokenMessenger")
    assert data[:8] == expected, f"Not a RemoteTokenMessenger account: {pubkey}"
    domain, token_messenger = REMOTE_TOKEN_MESSENGER_LAYOUT.unpack_from(data, 8)
    return RemoteTokenMessenger(pubkey=pubkey, domain=domain, token_messenger=token_messenger)


def get_rpc_candidates(rpc_url: str, public_rpc_url: str = SOLANA_DEVNET_RPC) -> list[str]:
    """RPC endpoints to try for ``getProgramAccounts``.

    Many private RPCs block the call, so the public endpoint is tried next.
    """
    if rpc_url == public_rpc_url:
        return [rpc_url]
    return [rpc_url, public_rpc_url]


def find_remote_token_messenger(
    rpc_urls: Sequence[str],
    program_id: Pubkey,
    domain: int,
    client_factory: Callable[[str], Client] = Client,
) -> RemoteTokenMessenger:
    """Look up the ``RemoteTokenMessenger`` account of a destination domain.

    Filters program accounts by the account discriminator and
    the little-endian domain right after it.

    :param rpc_urls:
        Endpoints tried in order. See :py:func:`get_rpc_candidates`.

    :raise RemoteTokenMessengerNotFound:
        No endpoint returned the account
    """
    filters = [
        MemcmpOpts(offset=0, bytes=base58.b58encode(get_account_discriminator("RemoteTokenMessenger")).decode("ascii")),
        MemcmpOpts(offset=8, bytes=base58.b58encode(u32_to_le_bytes(domain)).decode("ascii")),
    ]

    for url in rpc_urls:
        client = client_factory(url)
        try:
            resp = client.get_program_accounts(program_id, encoding="base64", filters=filters)
        except Exception as e:
            # solana-py raises a zoo of RPC and HTTP errors, try the next endpoint
            logger.warning("getProgramAccounts failed on %s: %s", get_url_domain(url), e)
            continue

        if resp.value:
            keyed_account = resp.value[0]
            return decode_remote_token_messenger(keyed_account.pubkey, bytes(keyed_account.account.data))

        logger.info("No RemoteTokenMessenger for domain %d on %s", domain, get_url_domain(url))

    raise RemoteTokenMessengerNotFound(f"RemoteTokenMessenger account for domain {domain} not found. Ensure destination domain is registered on Solana.")


def resolve_burn_token_account(
    client: Client,
    owner: Pubkey,
    usdc_mint: Pubkey,
    override: Pubkey | None = None,
) -> Pubkey:
    """Pick the token account USDC is burned from.

    - Use ``override`` if given
    - Fall back to the owner's associated token account if the override is unset
      or is actually the mint address
    - Check the account is an SPL token account of ``usdc_mint``

    :raise SolanaTokenAccountError:
        Account is not a USDC token account
    """
    derived_ata = get_associated_token_address(owner, usdc_mint)
    token_account = override or derived_ata

    if override is not None:
        info = client.get_account_info(override).value
        if info is not None and len(bytes(info.data)) == SPL_MINT_ACCOUNT_SIZE and info.owner == TOKEN_PROGRAM_ID:
            logger.info("Provided SOLANA_USDC_ACCOUNT %s is a mint; switching to ATA %s", override, derived_ata)
            token_account = derived_ata
    else:
        logger.info("No SOLANA_USDC_ACCOUNT provided; using derived ATA %s", derived_ata)

    parsed = client.get_account_info_json_parsed(token_account).value
    token_info = None
    if parsed is not None and isinstance(getattr(parsed.data, "parsed", None), dict):
        token_info = parsed.data.parsed.get("info")

    if not token_info:
        raise SolanaTokenAccountError(f"Token account {token_account} is not a parsed SPL token account.")

    if token_info.get("mint") != str(usdc_mint):
        raise SolanaTokenAccountError(f"Token account {token_account} mint {token_info.get('mint')} does not match USDC mint {usdc_mint}.")

    return token_account


class SolanaSourceAdapter(SourceChainAdapter):
    """Burn USDC on Solana."""

    def __init__(
        self,
        client: Client,
        keypair: Keypair,
        rpc_url: str,
        idl: dict,
        domain: int,
        destination_domain: int,
        amount: int,
        max_fee: int,
        min_finality_threshold: int,
        usdc_mint: Pubkey,
        token_messenger_minter_program_id: Pubkey,
        message_transmitter_program_id: Pubkey,
        usdc_account: Pubkey | None = None,
        destination_caller: Pubkey | None = None,
        client_factory: Callable[[str], Client] = Client,
    ):
        self.client = client
        self.keypair = keypair
        self.rpc_url = rpc_url
        self.idl = idl
        self.domain = domain
        self.destination_domain = destination_domain
        self.amount = amount
        self.max_fee = max_fee
        self.min_finality_threshold = min_finality_threshold
        self.usdc_mint = usdc_mint
        self.token_messenger_minter_program_id = token_messenger_minter_program_id
        self.message_transmitter_program_id = message_transmitter_program_id
        self.usdc_account = usdc_account
        self.destination_caller = destination_caller or Pubkey.default()
        self.client_factory = client_factory

    def __repr__(self):
        return f"<SolanaSourceAdapter owner:{self.owner} rpc:{get_url_domain(self.rpc_url)}>"

    @classmethod
    def create(cls, config: CCTPTransferConfig) -> "SolanaSourceAdapter":
        """Connect to Solana and load the token messenger IDL."""
        client = Client(config.solana_rpc, commitment=Confirmed)
        keypair = Keypair.from_base58_string(config.solana_private_key)
        program_id = Pubkey.from_string(config.token_messenger_minter_program_id)
        idl = fetch_idl_with_fallback(client, program_id, config.token_messenger_minter_idl_url)
        return cls(
            client=client,
            keypair=keypair,
            rpc_url=config.solana_rpc,
            idl=idl,
            domain=config.source_domain,
            destination_domain=config.destination_domain,
            amount=config.amount,
            max_fee=config.max_fee,
            min_finality_threshold=config.min_finality_threshold,
            usdc_mint=Pubkey.from_string(config.solana_usdc_mint),
            token_messenger_minter_program_id=program_id,
            message_transmitter_program_id=Pubkey.from_string(config.message_transmitter_program_id),
            usdc_account=Pubkey.from_string(config.solana_usdc_account) if config.solana_usdc_account else None,
            destination_caller=Pubkey.from_string(config.solana_destination_caller) if config.solana_destination_caller else None,
        )

    @property
    def owner(self) -> Pubkey:
        return self.keypair.pubkey()

    def derive_burn_accounts(self) -> SolanaBurnAccounts:
        burn_token_account = resolve_burn_token_account(
            self.client,
            self.owner,
            self.usdc_mint,
            self.usdc_account,
        )

        pdas = get_deposit_for_burn_pdas(
            self.usdc_mint,
            self.owner,
            self.token_messenger_minter_program_id,
            self.message_transmitter_program_id,
        )

        remote_token_messenger = find_remote_token_messenger(
            get_rpc_candidates(self.rpc_url),
            self.token_messenger_minter_program_id,
            self.destination_domain,
            client_factory=self.client_factory,
        )
        logger.info("Remote token messenger PDA: %s", remote_token_messenger.pubkey)

        return SolanaBurnAccounts(
            owner=self.owner,
            burn_token_account=burn_token_account,
            burn_token_mint=self.usdc_mint,
            pdas=pdas,
            remote_token_messenger=remote_token_messenger,
            message_sent_event_data=Keypair(),
        )

    def get_account_map(self, accounts: SolanaBurnAccounts) -> dict[str, Pubkey]:
        """Map IDL account names to resolved public keys."""
        pdas = accounts.pdas
        return {
            "owner": accounts.owner,
            "event_rent_payer": accounts.owner,
            "event_authority": pdas.event_authority,
            "sender_authority_pda": pdas.sender_authority,
            "burn_token_account": accounts.burn_token_account,
            "denylist_account": pdas.denylist_account,
            "message_transmitter": pdas.message_transmitter,
            "token_messenger": pdas.token_messenger,
            "remote_token_messenger": accounts.remote_token_messenger.pubkey,
            "token_minter": pdas.token_minter,
            "local_token": pdas.local_token,
            "burn_token_mint": accounts.burn_token_mint,
            "message_sent_event_data": accounts.message_sent_event_data.pubkey(),
            "message_transmitter_program": self.message_transmitter_program_id,
            "token_messenger_minter_program": self.token_messenger_minter_program_id,
            "program": self.token_messenger_minter_program_id,
            "token_program": TOKEN_PROGRAM_ID,
            "system_program": SYSTEM_PROGRAM_ID,
        }

    def encode_burn_call(self, accounts: SolanaBurnAccounts, mint_recipient: bytes) -> SolanaBurnCall:
        instruction = build_deposit_for_burn_instruction(
            self.idl,
            self.get_account_map(accounts),
            program_id=self.token_messenger_minter_program_id,
            amount=self.amount,
            destination_domain=self.destination_domain,
            mint_recipient=Pubkey.from_bytes(mint_recipient),
            destination_caller=self.destination_caller,
            max_fee=self.max_fee,
            min_finality_threshold=self.min_finality_threshold,
        )
        return SolanaBurnCall(
            instruction=instruction,
            extra_signers=[accounts.message_sent_event_data],
        )

    def send_burn(self, burn_call: SolanaBurnCall) -> str:
        blockhash = self.client.get_latest_blockhash().value.blockhash
        message = Message.new_with_blockhash([burn_call.instruction], self.owner, blockhash)
        tx = Transaction([self.keypair, *burn_call.extra_signers], message, blockhash)

        resp = self.client.send_transaction(tx, opts=TxOpts(preflight_commitment=Confirmed))
        signature: Signature = resp.value
        logger.info("Solana burn broadcasted: %s", signature)

        status = self.client.confirm_transaction(signature, commitment=Confirmed)
        tx_status = status.value[0] if status.value else None
        if tx_status is not None and tx_status.err is not None:
            raise RuntimeError(f"Solana burn {signature} failed: {tx_status.err}")

        logger.info("Solana burn confirmed: %s", signature)
        return str(signature)
