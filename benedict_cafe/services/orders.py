import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError

from benedict_cafe.errors import ApiError
from benedict_cafe.models.schemas import Purchase, PurchaseHistoryResponse
from benedict_cafe.services.api_client import ApiClient


logger = logging.getLogger(__name__)

PURCHASE_HISTORY = "orders/purchase-history"

AUTH_REQUIRED = "Требуется авторизация"
LOAD_FAILED = "Ошибка загрузки истории покупок"


@dataclass
class PurchaseHistory:
    purchases: List[Purchase] = field(default_factory=list)
    error: Optional[str] = None


class OrdersClient:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_purchase_history(self, token: Optional[str]) -> PurchaseHistory:
        """Purchases of the token's owner, or a user-facing error message."""
        if not token:
            return PurchaseHistory(error=AUTH_REQUIRED)

        try:
            data = await self.api.get(PURCHASE_HISTORY, token=token, default_error=LOAD_FAILED)
        except ApiError as e:
            if e.status == 401:
                return PurchaseHistory(error=AUTH_REQUIRED)
            logger.error(f"Purchase history error: {e}")
            return PurchaseHistory(error=e.message if e.status else LOAD_FAILED)

        try:
            response = PurchaseHistoryResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed purchase history: {e.error_count()} errors")
            return PurchaseHistory(error=LOAD_FAILED)

        if not response.success:
            logger.error(f"Purchase history error: {response.error}")
            return PurchaseHistory(error=response.error or "Ошибка загрузки истории")

        logger.info(f"Purchases loaded: {len(response.purchases)}")
        return PurchaseHistory(purchases=response.purchases)
