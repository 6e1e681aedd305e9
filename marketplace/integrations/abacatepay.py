"""Cliente HTTP da AbacatePay (cobranças PIX avulsas)."""
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from marketplace.core import config
from marketplace.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)


class BillingCustomer(BaseModel):
    name: str
    email: str
    taxId: str
    cellphone: Optional[str] = None


class BillingProduct(BaseModel):
    externalId: Optional[str] = None
    name: Optional[str] = None
    quantity: int = 1
    price: Optional[int] = None


class Billing(BaseModel):
    id: str
    url: Optional[str] = None
    status: str = "PENDING"
    amount: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    products: list[BillingProduct] = Field(default_factory=list)

    @property
    def is_paid(self) -> bool:
        return self.status.upper() == "PAID"

    def matches(self, quote_id) -> bool:
        """True se a cobrança pertence ao orçamento (metadata ou externalId do produto)."""
        key = str(quote_id)
        if str((self.metadata or {}).get("quote_id", "")) == key:
            return True
        return any(p.externalId == key for p in self.products)


class AbacatePayClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.abacatepay.com/v1",
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self):
        self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        if not self.api_key:
            raise UpstreamFailure("Chave da AbacatePay não configurada")

        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"}
        try:
            resp = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("AbacatePay %s %s falhou: %s", method, path, e)
            raise UpstreamFailure("Falha ao contatar o provedor de pagamento") from e

        logger.info("AbacatePay %s %s status=%s", method, path, resp.status_code)
        if resp.status_code >= 400:
            logger.error("AbacatePay erro %s | body=%s", resp.status_code, resp.text[:500])
            raise UpstreamFailure(f"AbacatePay respondeu {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise UpstreamFailure("Resposta inválida do provedor de pagamento") from e

        if body.get("error"):
            logger.error("AbacatePay erro no corpo: %s", body["error"])
            raise UpstreamFailure(f"AbacatePay: {body['error']}")

        return body.get("data")

    def create_billing(
        self,
        *,
        amount_cents: int,
        correlation_id,
        customer: BillingCustomer,
        product_name: str,
        description: str = "",
        return_url: Optional[str] = None,
        completion_url: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Billing:
        if amount_cents <= 0:
            raise ValueError("amount_cents deve ser positivo")

        payload = {
            "frequency": "ONE_TIME",
            "methods": ["PIX"],
            "products": [
                {
                    "externalId": str(correlation_id),
                    "name": product_name[:100],
                    "description": (description or product_name)[:200],
                    "quantity": 1,
                    "price": int(amount_cents),
                }
            ],
            "returnUrl": return_url or config.CHECKOUT_RETURN_URL,
            "completionUrl": completion_url or config.CHECKOUT_COMPLETION_URL,
            "customer": customer.model_dump(exclude_none=True),
            "metadata": {"quote_id": str(correlation_id), **(metadata or {})},
        }

        data = self._request("POST", "/billing/create", json=payload)
        if not data or not data.get("id"):
            raise UpstreamFailure("AbacatePay não retornou a cobrança")

        billing = Billing.model_validate(data)
        logger.info("Cobrança %s criada para correlação %s", billing.id, correlation_id)
        return billing

    def list_billings(self) -> list[Billing]:
        data = self._request("GET", "/billing/list") or []
        return [Billing.model_validate(item) for item in data]


def get_billing_client():
    client = AbacatePayClient(
        api_key=config.ABACATEPAY_API_KEY,
        base_url=config.ABACATEPAY_BASE_URL,
        timeout=config.ABACATEPAY_TIMEOUT,
    )
    try:
        yield client
    finally:
        client.close()
