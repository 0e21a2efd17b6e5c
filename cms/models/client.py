from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Client(SQLModel, table=True):
    """Empresa cliente da transportadora. Os fretes referenciam a empresa pelo nome."""
    id: Optional[int] = Field(default=None, primary_key=True)
    empresa: str = Field(unique=True, index=True)
    name: Optional[str] = None
    cpf: Optional[str] = Field(default=None, index=True)
    cnpj: Optional[str] = Field(default=None, index=True)
    phone: Optional[str] = None
    password: Optional[str] = None
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ClientCreate(SQLModel):
    name: str = Field(..., description="Nome da empresa cliente")


class ClientUpdate(SQLModel):
    empresa: Optional[str] = None
    name: Optional[str] = None
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    active: Optional[bool] = None


class ClientRead(SQLModel):
    id: int
    empresa: str
    name: Optional[str] = None
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    phone: Optional[str] = None
    active: bool
    created_at: datetime
