from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from ..core.bridge.models import GasFeeEstimates, StatusRequest, StatusResponse

ChainId = Union[int, str]


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class BridgeStatusProvider(Provider):
    """Provider for cross-chain bridge transaction status"""

    @abstractmethod
    async def fetch_tx_status(self, status_request: StatusRequest) -> StatusResponse:
        """Fetch the current status of a bridge transaction; raises on failure"""
        pass


class ExchangeRateProvider(Provider):
    """Provider for token to fiat exchange rates"""

    @abstractmethod
    async def get_exchange_rate(
        self,
        chain_id: ChainId,
        token_address: str,
        currency: str = "usd",
    ) -> Optional[Decimal]:
        """Get the fiat rate for one token; ``None`` when unavailable, never raises"""
        pass


class GasFeeProvider(Provider):
    """Provider for fee-per-gas estimates"""

    @abstractmethod
    async def get_gas_fee_estimates(self, chain_id: ChainId) -> Optional[GasFeeEstimates]:
        """Get base and priority fee estimates in decimal gwei; ``None`` when unavailable"""
        pass
