"""Cliente do gateway de IA (chat completions compatível com OpenAI)."""
import logging
from typing import Optional

import httpx

from marketplace.core import config

logger = logging.getLogger(__name__)


class AIGatewayError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AIGatewayClient:
    def __init__(
        self,
        api_key: Optional[str],
        url: str,
        model: str,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self):
        self._http.close()

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Retorna o texto da primeira escolha; AIGatewayError em qualquer falha."""
        if not self.api_key:
            raise AIGatewayError("AI_GATEWAY_API_KEY não configurada")

        try:
            resp = self._http.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                },
            )
        except httpx.HTTPError as e:
            raise AIGatewayError(f"Falha de rede: {e}") from e

        if resp.status_code >= 400:
            raise AIGatewayError(f"Gateway respondeu {resp.status_code}: {resp.text[:200]}", resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise AIGatewayError("Resposta não é JSON") from e

        choices = data.get("choices") or [{}]
        return ((choices[0].get("message") or {}).get("content") or "").strip()


def get_ai_client():
    client = AIGatewayClient(
        api_key=config.AI_GATEWAY_API_KEY,
        url=config.AI_GATEWAY_URL,
        model=config.AI_MODEL,
        timeout=config.AI_GATEWAY_TIMEOUT,
    )
    try:
        yield client
    finally:
        client.close()
