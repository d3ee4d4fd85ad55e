from .client import TrueLayerClient
from .models import (
    AccountNumber,
    TokenResponse,
    TrueLayerAccount,
    TrueLayerBalance,
    TrueLayerCard,
    TrueLayerProvider,
    TrueLayerTransaction,
)

__all__ = [
    "TrueLayerClient",
    "AccountNumber",
    "TokenResponse",
    "TrueLayerAccount",
    "TrueLayerBalance",
    "TrueLayerCard",
    "TrueLayerProvider",
    "TrueLayerTransaction",
]
