from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from marketplace.models.user import User
from marketplace.core.security import get_current_user
from marketplace.integrations.ai_gateway import AIGatewayClient, get_ai_client
from marketplace.services.moderation import generate_description, moderate_content


router = APIRouter(prefix="/moderation", tags=["moderation"])


class ModerationRequest(BaseModel):
    content: str
    type: str = "service_description"


class DescriptionRequest(BaseModel):
    title: str
    category: Optional[str] = None


@router.post("/check")
def check_content(
    payload: ModerationRequest,
    ai: AIGatewayClient = Depends(get_ai_client),
    current_user: User = Depends(get_current_user),
):
    if not payload.content.strip():
        raise HTTPException(status_code=400, detail="Conteúdo é obrigatório")

    return moderate_content(ai, payload.content, payload.type)


@router.post("/description")
def create_description(
    payload: DescriptionRequest,
    ai: AIGatewayClient = Depends(get_ai_client),
    current_user: User = Depends(get_current_user),
):
    if not payload.title.strip():
        raise HTTPException(status_code=400, detail="Título é obrigatório")

    return generate_description(ai, payload.title.strip(), payload.category)
