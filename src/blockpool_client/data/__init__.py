"""Network registry and static configuration."""

from blockpool_client.data.loader import (
    format_explorer_url,
    get_chain_id,
    get_network_by_chain_id,
    get_network_config,
    get_rpc_url_pool,
    get_supported_networks,
    get_websocket_url,
    is_evm_mode,
    load_networks,
)

__all__ = [
    "format_explorer_url",
    "get_chain_id",
    "get_network_by_chain_id",
    "get_network_config",
    "get_rpc_url_pool",
    "get_supported_networks",
    "get_websocket_url",
    "is_evm_mode",
    "load_networks",
]
