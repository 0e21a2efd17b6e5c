from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from .freight import RecordStatus


class Abastecimento(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    driver_id: int = Field(foreign_key="driver.id", index=True)
    abastecedor_id: Optional[int] = Field(default=None, foreign_key="abastecedor.id")
    date: str = Field(index=True)
    plate: Optional[str] = None
    client: Optional[str] = None
    quantity: float = Field(default=0)  # litros
    price_per_liter: float = Field(default=0)
    total_value: float = Field(default=0)
    comprovante_abastecimento: Optional[str] = None
    status: RecordStatus = Field(default=RecordStatus.PENDING)
    paid: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )


class AbastecimentoCreate(SQLModel):
    driver_id: int
    date: str = Field(..., description="Data do abastecimento no formato YYYY-MM-DD")
    quantity: float = Field(..., description="Litros abastecidos")
    price_per_liter: float
    plate: Optional[str] = None
    client: Optional[str] = None
    comprovante_abastecimento: Optional[str] = None


class AbastecimentoUpdate(SQLModel):
    driver_id: Optional[int] = None
    date: Optional[str] = None
    plate: Optional[str] = None
    client: Optional[str] = None
    quantity: Optional[float] = None
    price_per_liter: Optional[float] = None
    comprovante_abastecimento: Optional[str] = None


class AbastecimentoRead(SQLModel):
    id: int
    driver_id: int
    driver_name: Optional[str] = None
    driver_plate: Optional[str] = None
    abastecedor_id: Optional[int] = None
    date: str
    plate: Optional[str] = None
    client: Optional[str] = None
    quantity: float
    price_per_liter: float
    total_value: float
    comprovante_abastecimento: Optional[str] = None
    status: RecordStatus
    paid: bool
    created_at: datetime
