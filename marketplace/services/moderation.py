"""Moderação de conteúdo e geração de descrições via gateway de IA.

Falhas do gateway na moderação aprovam o conteúdo (``autoApproved``) para não
bloquear o usuário. Na geração de descrição a falha é repassada.
"""
import json
import logging
import re
from typing import Optional

from marketplace.core.errors import UpstreamFailure
from marketplace.integrations.ai_gateway import AIGatewayClient, AIGatewayError

logger = logging.getLogger(__name__)

MODERATION_PROMPT = """Você é um moderador de conteúdo para uma plataforma de serviços no Brasil. \
Analise textos e determine se contêm conteúdo impróprio.

CONTEÚDO PROIBIDO: palavrões, discriminação, assédio ou ameaças, conteúdo sexual, spam, \
dados pessoais sensíveis (CPF, cartão, senhas), links suspeitos, golpes, incitação à violência, \
venda de produtos ou serviços ilegais.

CONTEÚDO PERMITIDO: descrições normais de serviços, contatos comerciais, avaliações honestas \
e respeitosas, críticas construtivas, perguntas.

RESPONDA SEMPRE em JSON:
{"approved": true/false, "reason": "...", "severity": "low/medium/high", "flagged_content": "..."}
Se aprovado, retorne apenas {"approved": true}."""

DESCRIPTION_PROMPT = """Você escreve descrições de serviços para um marketplace brasileiro. \
Escreva em português, tom profissional e acolhedor, entre 2 e 4 frases, sem emojis e sem \
inventar preços ou contatos. Responda apenas com o texto da descrição."""

TYPE_LABELS = {
    "service_title": "título de serviço",
    "service_description": "descrição de serviço",
    "review": "avaliação/comentário",
}

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def moderate_content(ai: AIGatewayClient, content: str, content_type: str) -> dict:
    label = TYPE_LABELS.get(content_type, "conteúdo")
    user_prompt = (
        f'Analise o seguinte {label} e determine se é apropriado para publicação:\n\n"{content}"\n\n'
        "Responda APENAS com o JSON de moderação."
    )

    logger.info("Moderando conteúdo type=%s len=%s", content_type, len(content))
    try:
        answer = ai.complete(MODERATION_PROMPT, user_prompt)
    except AIGatewayError as e:
        if e.status_code == 429:
            logger.warning("Gateway de IA com rate limit, aprovando automaticamente")
        elif e.status_code == 402:
            logger.warning("Gateway de IA sem créditos, aprovando automaticamente")
        else:
            logger.error("Erro no gateway de IA, aprovando automaticamente: %s", e)
        return {"approved": True, "autoApproved": True}

    match = _JSON_OBJECT.search(answer)
    if match:
        try:
            result = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.error("Resposta de moderação não é JSON válido: %s", answer[:200])
        else:
            if isinstance(result, dict) and "approved" in result:
                result["approved"] = bool(result["approved"])
                return result

    # sem JSON reconhecível: aprova
    return {"approved": True}


def generate_description(ai: AIGatewayClient, title: str, category: Optional[str] = None) -> dict:
    user_prompt = f"Serviço: {title}"
    if category:
        user_prompt += f"\nCategoria: {category}"

    try:
        text = ai.complete(DESCRIPTION_PROMPT, user_prompt)
    except AIGatewayError as e:
        logger.error("Falha ao gerar descrição: %s", e)
        raise UpstreamFailure("Não foi possível gerar a descrição agora") from e

    if not text:
        raise UpstreamFailure("O gateway de IA retornou uma descrição vazia")

    return {"description": text}
