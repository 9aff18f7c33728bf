"""Constants and metadata for bridge quote ranking and status tracking."""

from typing import Any, Dict

NATIVE_PLACEHOLDER = '0x0000000000000000000000000000000000000000'
NATIVE_DECIMALS = 18
GWEI_DECIMALS = 9

# Enough digits to hold a uint256 without rounding
DECIMAL_PRECISION = 78

STATUS_PATH = '/getTxStatus'
SUGGESTED_GAS_FEES_PATH = '/networks/{chain_id}/suggestedGasFees'

# Coingecko asset platform and native coin ids per EVM chain
CHAIN_METADATA: Dict[int, Dict[str, Any]] = {
    1: {'name': 'Ethereum', 'platform': 'ethereum', 'native_coin_id': 'ethereum'},
    10: {'name': 'Optimism', 'platform': 'optimistic-ethereum', 'native_coin_id': 'ethereum'},
    56: {'name': 'BNB Chain', 'platform': 'binance-smart-chain', 'native_coin_id': 'binancecoin'},
    137: {'name': 'Polygon', 'platform': 'polygon-pos', 'native_coin_id': 'matic-network'},
    324: {'name': 'zkSync Era', 'platform': 'zksync', 'native_coin_id': 'ethereum'},
    8453: {'name': 'Base', 'platform': 'base', 'native_coin_id': 'ethereum'},
    42161: {'name': 'Arbitrum', 'platform': 'arbitrum-one', 'native_coin_id': 'ethereum'},
    43114: {'name': 'Avalanche', 'platform': 'avalanche', 'native_coin_id': 'avalanche-2'},
    59144: {'name': 'Linea', 'platform': 'linea', 'native_coin_id': 'ethereum'},
}
