from sqlmodel import Session, SQLModel, create_engine

from marketplace.core import config

connect_args = {}
if config.DATABASE_URL.startswith("sqlite"):
    # FastAPI roda os endpoints síncronos em threads diferentes
    connect_args = {"check_same_thread": False}

engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=connect_args)


def create_db_and_tables():
    # importa os modelos para registrar as tabelas no metadata
    from marketplace.models import (  # noqa: F401
        appointment,
        business_hours,
        quote,
        service,
        time_block,
        user,
        wallet_transaction,
    )

    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
