"""
ArGo Token + Payments Smart Contract ABI Module

Minimal ABI definitions for the contracts this client talks to:

    - ArGo ERC20 token with native meta-transaction support
      (``getNonce`` / ``executeMetaTransaction``)
    - Payments contract charging users for build time and deployments

Usage:
    from argo_payment.adapters.evm.abis import get_erc20_abi, get_payments_abi

    erc20 = ContractRef(name="erc20", address=token_address, abi=get_erc20_abi())
"""

from typing import Dict, Any, List


def _function(
    name: str,
    inputs: List[Dict[str, str]],
    outputs: List[Dict[str, str]],
    state_mutability: str = "nonpayable",
) -> Dict[str, Any]:
    return {
        "name": name,
        "type": "function",
        "stateMutability": state_mutability,
        "inputs": inputs,
        "outputs": outputs,
    }


def _address(name: str) -> Dict[str, str]:
    return {"name": name, "type": "address"}


def _uint(name: str) -> Dict[str, str]:
    return {"name": name, "type": "uint256"}


def get_erc20_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the ArGo ERC20 token.

    Covers the standard ``approve`` / ``allowance`` / ``balanceOf`` calls
    plus the native meta-transaction extension used by gasless approvals.

    Returns:
        List[Dict[str, Any]]: ABI entries.

    Example:
        abi = get_erc20_abi()
        contract = web3.eth.contract(address=token_address, abi=abi)
        nonce = await contract.functions.getNonce(user).call()
    """
    return [
        {
            "name": "approve",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        },
        {
            "name": "allowance",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "outputs": [{"name": "", "type": "uint256"}],
        },
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        },
    ] + get_meta_transaction_abi()


def get_meta_transaction_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the native meta-transaction extension.

    ``executeMetaTransaction`` is called by the relay on behalf of
    ``userAddress``; the contract recovers the signer from (r, s, v) and
    checks it against ``userAddress`` and the current ``getNonce`` value.

    Returns:
        List[Dict[str, Any]]: ABI entries for ``getNonce`` and
        ``executeMetaTransaction``.
    """
    return [
        {
            "name": "getNonce",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "user", "type": "address"}],
            "outputs": [{"name": "nonce", "type": "uint256"}],
        },
        {
            "name": "executeMetaTransaction",
            "type": "function",
            "stateMutability": "payable",
            "inputs": [
                {"name": "userAddress", "type": "address"},
                {"name": "functionSignature", "type": "bytes"},
                {"name": "sigR", "type": "bytes32"},
                {"name": "sigS", "type": "bytes32"},
                {"name": "sigV", "type": "uint8"},
            ],
            "outputs": [{"name": "", "type": "bytes"}],
        },
    ]


def get_payments_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the payments contract.

    Charging functions are callable by managers, ``update*`` / ``set*``
    functions by the owner or governance; access control is enforced
    on-chain.

    Returns:
        List[Dict[str, Any]]: ABI entries.
    """
    return [
        _function("charge", [_address("u"), _uint("bt")], []),
        _function(
            "chargeWithProvider",
            [
                _address("u"),
                _uint("bt"),
                _uint("d"),
                _uint("providerQuote"),
                _uint("providerCharged"),
                {"name": "provider", "type": "string"},
            ],
            [],
        ),
        _function("updateUnderlyingToken", [_address("a")], []),
        _function("updateEscrow", [_address("a")], []),
        _function("updateFeederAddress", [_address("a")], []),
        _function("updateStakedToken", [_address("a")], []),
        _function("updateToken", [_address("a")], []),
        _function(
            "updateDiscountSlabs",
            [{"name": "d", "type": "uint256[]"}, {"name": "p", "type": "uint256[]"}],
            [],
        ),
        _function("changeBuildTimeRate", [_uint("p")], []),
        _function("enableDiscounts", [_address("h")], []),
        _function("disableDiscounts", [], []),
        _function("setGovernanceAddress", [_address("h")], []),
        _function("setManagers", [{"name": "h", "type": "address[]"}], []),
        _function("getManagers", [], [{"name": "", "type": "address[]"}], "view"),
        _function("governanceAddress", [], [_address("")], "view"),
        _function("underlying", [], [_address("")], "view"),
        _function("escrow", [], [_address("")], "view"),
        _function("discountsEnabled", [], [{"name": "", "type": "bool"}], "view"),
        _function("stakingManager", [], [_address("")], "view"),
        _function("stakedToken", [], [_address("")], "view"),
        _function(
            "discountSlabs",
            [],
            [{"name": "slabs", "type": "uint256[]"}, {"name": "percents", "type": "uint256[]"}],
            "view",
        ),
    ]


def function_signature(entry: Dict[str, Any]) -> str:
    """
    Canonical signature of an ABI function entry, e.g. ``approve(address,uint256)``.
    """
    types = ",".join(param["type"] for param in entry.get("inputs", []))
    return f"{entry['name']}({types})"
