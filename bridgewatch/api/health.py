from typing import Any, Dict

from fastapi import APIRouter

from ..core.bridge import get_bridge_status_tracker
from ..providers.bridge_api import BridgeApiProvider
from ..providers.coingecko import CoingeckoProvider
from ..providers.gas import GasApiProvider

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint that verifies provider status"""

    providers = {
        "bridge_api": BridgeApiProvider(),
        "coingecko": CoingeckoProvider(),
        "gas_api": GasApiProvider(),
    }
    provider_status = {name: await provider.health_check() for name, provider in providers.items()}

    # Disabled providers do not degrade health; quotes simply lose their fiat figures
    all_healthy = all(
        status["status"] in ["healthy", "unavailable"]
        for status in provider_status.values()
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "providers": provider_status,
        "polling": get_bridge_status_tracker().scheduler.status(),
    }
