import hmac
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session, select

from marketplace.core import config
from marketplace.database import get_session
from marketplace.models.user import User


# =========================
# HASH DE SENHA
# =========================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# =========================
# TOKEN JWT
# =========================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def _user_from_token(token: str, session: Session) -> Optional[User]:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None

    email = payload.get("sub")
    if email is None:
        return None

    return session.exec(select(User).where(User.email == email)).first()


# =========================
# USUÁRIO AUTENTICADO
# =========================

def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    user = _user_from_token(token, session)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não foi possível validar as credenciais",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def _require_role(user: User, role: str, detail: str) -> User:
    if user.role != role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return user


# =========================
# SOMENTE PROFISSIONAL
# =========================

def get_current_professional(
    current_user: User = Depends(get_current_user),
) -> User:
    return _require_role(current_user, "professional", "Apenas profissionais podem acessar esta rota")


# =========================
# SOMENTE CLIENTE
# =========================

def get_current_client(
    current_user: User = Depends(get_current_user),
) -> User:
    return _require_role(current_user, "client", "Apenas clientes podem acessar esta rota")


# =========================
# SOMENTE ADMIN
# =========================

def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    return _require_role(current_user, "admin", "Apenas administradores podem acessar esta rota")


# =========================
# AGENDADOR EXTERNO (cron) OU ADMIN
# =========================

def require_cron_or_admin(
    x_cron_secret: Optional[str] = Header(default=None),
    token: Optional[str] = Depends(optional_oauth2_scheme),
    session: Session = Depends(get_session),
) -> str:
    if config.CRON_SECRET and x_cron_secret and hmac.compare_digest(x_cron_secret, config.CRON_SECRET):
        return "cron"

    user = _user_from_token(token, session) if token else None
    if user is not None and user.role == "admin":
        return f"admin:{user.id}"

    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Sem permissão")
