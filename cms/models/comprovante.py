from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class ComprovanteBase(SQLModel):
    driver_id: int = Field(foreign_key="driver.id", index=True)
    file_path: str
    date: str  # YYYY-MM-DD
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ComprovanteCarga(ComprovanteBase, table=True):
    __tablename__ = "comprovante_carga"
    id: Optional[int] = Field(default=None, primary_key=True)
    assigned_freight_id: Optional[int] = Field(default=None, foreign_key="freight.id", index=True)


class ComprovanteDescarga(ComprovanteBase, table=True):
    __tablename__ = "comprovante_descarga"
    id: Optional[int] = Field(default=None, primary_key=True)
    assigned_freight_id: Optional[int] = Field(default=None, foreign_key="freight.id", index=True)


class ComprovanteAbastecimento(ComprovanteBase, table=True):
    __tablename__ = "comprovante_abastecimento"
    id: Optional[int] = Field(default=None, primary_key=True)
    assigned_abastecimento_id: Optional[int] = Field(default=None, foreign_key="abastecimento.id", index=True)


class ComprovanteRead(SQLModel):
    id: int
    driver_id: int
    driver_name: Optional[str] = None
    file_path: str
    date: str
    assigned_to: Optional[int] = None
    display_name: Optional[str] = None
    created_at: datetime
