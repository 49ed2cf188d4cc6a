"""Built-in chain table: the 18 networks supported out of the box."""
from __future__ import annotations

from typing import Any

# chain_id -> name, native symbol, network class, CoinGecko id,
# Alchemy subdomain, public endpoints (most reliable first).
DEFAULT_CHAINS: dict[int, dict[str, Any]] = {
    # Mainnets
    1: {
        "name": "Ethereum",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "eth-mainnet",
        "rpc_endpoints": [
            "https://ethereum-rpc.publicnode.com",
            "https://eth.api.onfinality.io/public",
        ],
    },
    137: {
        "name": "Polygon",
        "symbol": "MATIC",
        "network": "mainnet",
        "price_feed": "matic-network",
        "alchemy": "polygon-mainnet",
        "rpc_endpoints": [
            "https://polygon-rpc.publicnode.com",
            "https://polygon.api.onfinality.io/public",
        ],
    },
    42161: {
        "name": "Arbitrum",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "arb-mainnet",
        "rpc_endpoints": [
            "https://arbitrum-rpc.publicnode.com",
            "https://arbitrum.api.onfinality.io/public",
        ],
    },
    10: {
        "name": "Optimism",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "opt-mainnet",
        "rpc_endpoints": [
            "https://optimism-rpc.publicnode.com",
            "https://optimism.api.onfinality.io/public",
        ],
    },
    8453: {
        "name": "Base",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "base-mainnet",
        "rpc_endpoints": [
            "https://base-rpc.publicnode.com",
            "https://base.api.onfinality.io/public",
        ],
    },
    43114: {
        "name": "Avalanche",
        "symbol": "AVAX",
        "network": "mainnet",
        "price_feed": "avalanche-2",
        "alchemy": "avax-mainnet",
        "rpc_endpoints": [
            "https://avalanche-c-chain-rpc.publicnode.com",
            "https://avalanche.api.onfinality.io/public",
        ],
    },
    56: {
        "name": "BSC",
        "symbol": "BNB",
        "network": "mainnet",
        "price_feed": "binancecoin",
        "alchemy": "bnb-mainnet",
        "rpc_endpoints": [
            "https://bsc-rpc.publicnode.com",
            "https://bsc.api.onfinality.io/public",
        ],
    },
    1101: {
        "name": "Polygon zkEVM",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "polygonzkevm-mainnet",
        "rpc_endpoints": ["https://zkevm-rpc.com"],
    },
    59144: {
        "name": "Linea",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "linea-mainnet",
        "rpc_endpoints": ["https://rpc.linea.build"],
    },
    534352: {
        "name": "Scroll",
        "symbol": "ETH",
        "network": "mainnet",
        "price_feed": "ethereum",
        "alchemy": "scroll-mainnet",
        "rpc_endpoints": ["https://rpc.scroll.io"],
    },
    # Testnets
    11155111: {
        "name": "Sepolia",
        "symbol": "ETH",
        "network": "testnet",
        "price_feed": "ethereum",
        "alchemy": "eth-sepolia",
        "rpc_endpoints": [
            "https://ethereum-sepolia-rpc.publicnode.com",
            "https://rpc2.sepolia.org",
        ],
    },
    17000: {
        "name": "Holesky",
        "symbol": "ETH",
        "network": "testnet",
        "price_feed": "ethereum",
        "alchemy": "eth-holesky",
        "rpc_endpoints": [
            "https://ethereum-holesky.publicnode.com",
            "https://ethereum-holesky-rpc.publicnode.com",
        ],
    },
    80002: {
        "name": "Polygon Amoy",
        "symbol": "MATIC",
        "network": "testnet",
        "price_feed": "matic-network",
        "alchemy": "polygon-amoy",
        "rpc_endpoints": [
            "https://rpc-amoy.polygon.technology",
            "https://polygon-amoy-rpc.publicnode.com",
        ],
    },
    97: {
        "name": "BSC Testnet",
        "symbol": "BNB",
        "network": "testnet",
        "price_feed": "binancecoin",
        "alchemy": "bnb-testnet",
        "rpc_endpoints": [
            "https://bsc-testnet.public.blastapi.io",
            "https://bsc-testnet-rpc.publicnode.com",
        ],
    },
    421614: {
        "name": "Arbitrum Sepolia",
        "symbol": "ETH",
        "network": "testnet",
        "price_feed": "ethereum",
        "alchemy": "arb-sepolia",
        "rpc_endpoints": [
            "https://arbitrum-sepolia-rpc.publicnode.com",
            "https://arbitrum-sepolia.publicnode.com",
        ],
    },
    11155420: {
        "name": "Optimism Sepolia",
        "symbol": "ETH",
        "network": "testnet",
        "price_feed": "ethereum",
        "alchemy": "opt-sepolia",
        "rpc_endpoints": [
            "https://optimism-sepolia-rpc.publicnode.com",
            "https://optimism-sepolia.publicnode.com",
        ],
    },
    84532: {
        "name": "Base Sepolia",
        "symbol": "ETH",
        "network": "testnet",
        "price_feed": "ethereum",
        "alchemy": "base-sepolia",
        "rpc_endpoints": [
            "https://base-sepolia-rpc.publicnode.com",
            "https://base-sepolia.publicnode.com",
        ],
    },
    43113: {
        "name": "Avalanche Fuji",
        "symbol": "AVAX",
        "network": "testnet",
        "price_feed": "avalanche-2",
        "alchemy": "avax-fuji",
        "rpc_endpoints": [
            "https://avalanche-fuji-c-chain-rpc.publicnode.com",
            "https://avalanche-fuji.publicnode.com",
        ],
    },
}

# Token symbol -> CoinGecko id, used to price ERC-20 lines.
DEFAULT_SYMBOL_FEEDS: dict[str, str] = {
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "WETH": "weth",
    "WBTC": "wrapped-bitcoin",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "ARB": "arbitrum",
    "OP": "optimism",
    "WMATIC": "wmatic",
    "WBNB": "wbnb",
    "WAVAX": "wrapped-avax",
}

ALCHEMY_URL_TEMPLATE = "https://{slug}.g.alchemy.com/v2/{key}"
