"""Network registry loader."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


@lru_cache(maxsize=1)
def load_networks() -> dict[str, Any]:
    """
    Load network definitions from networks.yaml.

    Returns
    -------
    dict[str, Any]
        Mapping of network name to its configuration

    """
    path = Path(__file__).parent / "networks.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)["networks"]


def get_network_config(network: str) -> dict[str, Any]:
    """
    Get configuration for a specific network.

    Parameters
    ----------
    network : str
        Network name (e.g., 'sei', 'sei-evm')

    Returns
    -------
    dict[str, Any]
        Network configuration including chain id, endpoints and currency

    Raises
    ------
    KeyError
        If network is not found in configuration

    """
    return load_networks()[network]


def get_supported_networks() -> list[str]:
    """
    Get list of all supported network names.

    Returns
    -------
    list[str]
        List of network names

    """
    return list(load_networks().keys())


def get_chain_id(network: str) -> int:
    """Get numeric chain ID."""
    return get_network_config(network)["chain_id"]


def is_evm_mode(network: str) -> bool:
    """True for networks accessed through their EVM endpoints."""
    return get_network_config(network)["mode"] == "evm"


def get_rpc_url_pool(network: str) -> list[str]:
    """
    Get all RPC endpoints for a network, primary first.

    Parameters
    ----------
    network : str
        Network name

    Returns
    -------
    list[str]
        RPC endpoint URLs for failover

    """
    return list(get_network_config(network)["rpc_endpoints"])


def get_websocket_url(network: str) -> str | None:
    """Primary websocket endpoint; None for native networks."""
    endpoints = get_network_config(network).get("ws_endpoints") or []
    return endpoints[0] if endpoints else None


def get_network_by_chain_id(chain_id: int, *, evm: bool | None = None) -> str | None:
    """
    Find the network name for a chain ID.

    Parameters
    ----------
    chain_id : int
        Numeric chain ID
    evm : bool | None
        Restrict to EVM (True) or native (False) networks; native and EVM
        networks share chain IDs, so the first match wins when None

    Returns
    -------
    str | None
        Network name, or None if unknown

    """
    for name, config in load_networks().items():
        if config["chain_id"] != chain_id:
            continue
        if evm is None or (config["mode"] == "evm") == evm:
            return name
    return None


def format_explorer_url(network: str, kind: str, value: str) -> str:
    """
    Build an explorer link.

    Parameters
    ----------
    network : str
        Network name
    kind : str
        One of 'tx', 'address', 'block'
    value : str
        Hash, address or height

    Returns
    -------
    str
        Explorer URL; native addresses use the '/account/' path

    """
    config = get_network_config(network)
    base_url = config["explorer_url"]
    if kind == "address":
        path = "address" if config["mode"] == "evm" else "account"
        return f"{base_url}/{path}/{value}"
    if kind in ("tx", "block"):
        return f"{base_url}/{kind}/{value}"
    return base_url
