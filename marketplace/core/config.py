import os
import warnings

from dotenv import load_dotenv

load_dotenv()


def _as_bool(val, default=False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


# =========================
# BANCO
# =========================

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./marketplace.db")
DATABASE_ECHO = _as_bool(os.getenv("DATABASE_ECHO"))


# =========================
# JWT
# =========================

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn("SECRET_KEY não definido, usando chave de desenvolvimento", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "dev-secret-change-me"

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))


# =========================
# PAGAMENTOS (AbacatePay / PIX)
# =========================

# comissão da plataforma sobre o valor do orçamento
PLATFORM_FEE_RATE = float(os.getenv("PLATFORM_FEE_RATE", "0.10"))

ABACATEPAY_API_KEY = os.getenv("ABACATEPAY_API_KEY")
ABACATEPAY_BASE_URL = os.getenv("ABACATEPAY_BASE_URL", "https://api.abacatepay.com/v1")
ABACATEPAY_TIMEOUT = float(os.getenv("ABACATEPAY_TIMEOUT", "20"))

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
CHECKOUT_RETURN_URL = os.getenv("CHECKOUT_RETURN_URL", f"{FRONTEND_URL}/chat")
CHECKOUT_COMPLETION_URL = os.getenv("CHECKOUT_COMPLETION_URL", f"{FRONTEND_URL}/pagamento-sucesso")


# =========================
# GATEWAY DE IA (moderação / descrições)
# =========================

AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY")
AI_MODEL = os.getenv("AI_MODEL", "google/gemini-2.5-flash-lite")
AI_GATEWAY_TIMEOUT = float(os.getenv("AI_GATEWAY_TIMEOUT", "15"))


# =========================
# ROTINAS PERIÓDICAS
# =========================

# segredo enviado pelo agendador externo em X-Cron-Secret
CRON_SECRET = os.getenv("CRON_SECRET")


# =========================
# LOGS
# =========================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR")  # sem diretório = só stdout
LOG_FILENAME = os.getenv("LOG_FILENAME", "marketplace.log")
