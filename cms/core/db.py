from typing import Annotated
from fastapi import Depends
from sqlmodel import Session, create_engine, SQLModel
from .config import settings

# Importa todos os modelos para registrar as tabelas no metadata
from cms.models import (
    Admin, Client, Abastecedor, Driver, Freight, Abastecimento,
    OutrosInsumo, Payment, ComprovanteCarga, ComprovanteDescarga,
    ComprovanteAbastecimento, DriverLocation
)

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, connect_args=connect_args)


def create_all_tables():
    """Cria todas as tabelas no banco de dados"""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
