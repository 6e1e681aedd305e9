"""Erros de domínio e o mapeamento deles para respostas HTTP.

Os serviços levantam estas exceções; os routers não precisam traduzir nada,
o handler registrado em ``main.py`` devolve ``{"detail", "retryable"}``.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False
    default_detail = "Operação inválida"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Registro não encontrado"


class InvalidState(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Operação não permitida nesse status"


class SlotUnavailable(InvalidState):
    default_detail = "Este horário já está ocupado. Por favor, escolha outro horário."


class PermissionDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Sem permissão"


class MissingPrecondition(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Pré-condição não atendida"


class MissingTaxId(MissingPrecondition):
    default_detail = (
        "CPF não cadastrado. Por favor, atualize seu perfil com o CPF antes de realizar o pagamento."
    )


class InvalidQuote(MissingPrecondition):
    default_detail = "Dados do orçamento inválidos"


class UpstreamFailure(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY
    retryable = True
    default_detail = "Serviço externo indisponível"


class NotYetSettled(DomainError):
    status_code = status.HTTP_202_ACCEPTED
    retryable = True
    default_detail = "Pagamento ainda não confirmado"

    def __init__(self, detail: Optional[str] = None, payment_status: str = "PENDING"):
        super().__init__(detail)
        self.payment_status = payment_status


def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.retryable:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.detail)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.detail)

    body = {"detail": exc.detail, "retryable": exc.retryable}
    if isinstance(exc, NotYetSettled):
        body["status"] = exc.payment_status
        body["paid"] = False
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_handler)
