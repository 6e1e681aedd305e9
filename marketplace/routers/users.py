from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from marketplace.database import get_session
from marketplace.models.user import User, UserCreate, UserUpdate
from marketplace.core.security import get_current_user, get_password_hash

router = APIRouter(prefix="/users", tags=["users"])

ROLES = ("client", "professional")


def _public(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "phone": user.phone,
        "has_cpf": bool(user.cpf),
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_user(user: UserCreate, session: Session = Depends(get_session)):

    # admin não se cadastra pela API
    if user.role not in ROLES:
        raise HTTPException(status_code=400, detail="role deve ser 'client' ou 'professional'")

    existing_user = session.exec(
        select(User).where(User.email == user.email)
    ).first()

    if existing_user:
        raise HTTPException(status_code=400, detail="Email já cadastrado")

    hashed_password = get_password_hash(user.password)

    db_user = User(
        name=user.name,
        email=user.email,
        password_hash=hashed_password,
        role=user.role,
        phone=user.phone,
        cpf=user.cpf,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)

    return _public(db_user)


@router.get("/me")
def read_me(current_user: User = Depends(get_current_user)):
    return _public(current_user)


# =========================
# ATUALIZAR PERFIL (ex.: CPF antes do PIX)
# =========================
@router.patch("/me")
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    # null não apaga campo obrigatório
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(current_user, field, value)

    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return _public(current_user)
