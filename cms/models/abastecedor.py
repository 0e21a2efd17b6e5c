from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Abastecedor(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    cpf: str = Field(unique=True, index=True)
    phone: Optional[str] = None
    password: str
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class AbastecedorCreate(SQLModel):
    name: str
    cpf: str
    password: str
    phone: Optional[str] = None


class AbastecedorUpdate(SQLModel):
    name: Optional[str] = None
    cpf: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


class AbastecedorRead(SQLModel):
    id: int
    name: str
    cpf: str
    phone: Optional[str] = None
    active: bool
    created_at: datetime
