"""ABI loading from the bundled ABI files.

Provides functions to load ABI files and construct :py:class:`web3.contract.Contract` types.
The results are cached for the speedup.

We also provide some helper functions to deal with ABI encode/decode
of bound contract calls.

Bundled ABI files live in ``cctp_bridge/abi`` and are either solc compiler
artifacts (a dict with ``abi`` key) or Etherscan copy-pasted ABI lists.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Sequence, Type, Union

from eth_abi import decode, encode
from eth_typing import HexAddress
from eth_utils import function_abi_to_4byte_selector
from hexbytes import HexBytes
from web3 import Web3
from web3.contract.contract import Contract, ContractFunction

# How big are our ABI and contract caches
_CACHE_SIZE = 64


@lru_cache(maxsize=_CACHE_SIZE)
def get_abi_by_filename(fname: str) -> dict | list:
    """Reads a embedded ABI file and returns it.

    Example::

        abi = get_abi_by_filename("cctp/TokenMessengerV2.json")

    Any results are cached.

    :param fname:
        Path relative to ``cctp_bridge/abi``.

    :return:
        Full contract interface
    """

    here = Path(__file__).resolve().parent
    abi_path = here / "abi" / Path(fname)
    with open(abi_path, "rt", encoding="utf-8") as f:
        abi = json.load(f)
    return abi


@lru_cache(maxsize=_CACHE_SIZE)
def get_contract(
    web3: Web3,
    fname: str | Path,
) -> Type[Contract]:
    """Get Contract proxy class from ABI JSON file.

    Any results are cached. Web3 connection is part of the cache key.

    :param web3:
        Web3 instance

    :param fname:
        Bundled ABI file name, e.g. ``ERC20.json``

    :return:
        Contract proxy class
    """

    contract_interface = get_abi_by_filename(fname)

    if type(contract_interface) == list:
        # Etherscan
        abi = contract_interface
    else:
        # Solc output
        abi = contract_interface["abi"]

    return web3.eth.contract(abi=abi)


def get_deployed_contract(
    web3: Web3,
    fname: str | Path,
    address: Union[HexAddress, str],
) -> Contract:
    """Get a Contract proxy object for a contract deployed at a specific address.

    :param web3:
        Web3 instance

    :param fname:
        Bundled ABI file name

    :param address:
        Ethereum address of the deployed contract

    :return:
        `web3.contract.Contract` proxy
    """
    assert isinstance(web3, Web3), f"Got {type(web3)} instead of Web3"
    assert address, f"get_deployed_contract() address was None"

    address = Web3.to_checksum_address(address)

    Contract = get_contract(web3, fname)
    return Contract(address)


def get_function_selector(func: ContractFunction) -> bytes:
    """Get Solidity function selector.

    :param func:
        Unbound or bound contract function proxy

    :return:
        First 32-bit (4 bytes) keccak hash.
    """
    contract_abi = func.contract_abi
    fn_abi = next((a for a in contract_abi if a.get("name") == func.fn_name), None)
    assert fn_abi, f"Could not find function {func.fn_name} in Contract ABI"
    return function_abi_to_4byte_selector(fn_abi)


def _get_function_input_types(func: ContractFunction) -> tuple[list[str], list[str]]:
    fn_abi = next((a for a in func.contract_abi if a.get("name") == func.fn_name), None)
    assert fn_abi, f"Could not find function {func.fn_name} in Contract ABI"
    return [i["type"] for i in fn_abi["inputs"]], [i["name"] for i in fn_abi["inputs"]]


def encode_function_call(
    func: ContractFunction,
    args: Sequence | None = None,
) -> HexBytes:
    """Encode function selector + its arguments as data payload.

    Uses `web3.Contract.functions` prepared function as the ABI source.

    :param func:
        Function which arguments we are going to encode.

    :param args:
        Argument values to be encoded.

        If not given, take bound args from the function.

    :return:
        Solidity's function selector + argument payload.
    """
    if args is None:
        args = func.args
        assert args is not None, f"Function {func.fn_name} has no bound arguments, please provide args explicitly or bind them to ContractFunction object"

    arg_types, _ = _get_function_input_types(func)

    try:
        encoded = encode(arg_types, list(args))
    except Exception as e:
        raise RuntimeError(f"Could not encode ABI for {func.fn_name}, args: {args}") from e
    return HexBytes(get_function_selector(func) + encoded)


def decode_function_args(
    func: ContractFunction,
    data: bytes | HexBytes,
) -> dict:
    """Decode binary CALL or CALLDATA to a Solidity function,

    :param func:
        Function which arguments we are going to decode.

    :param data:
        Call payload without the function selector.

    :return:
        Ordered dict of the decoded arguments
    """
    assert isinstance(func, ContractFunction)
    arg_types, arg_names = _get_function_input_types(func)
    arg_tuple = decode(arg_types, data)
    return dict(zip(arg_names, arg_tuple))
