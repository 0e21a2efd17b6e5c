from sqlmodel import SQLModel, Field
from typing import Optional
from enum import Enum
from datetime import datetime


class RecordStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class Freight(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    driver_id: int = Field(foreign_key="driver.id", index=True)
    date: str = Field(index=True)  # YYYY-MM-DD
    plate: Optional[str] = None
    client: Optional[str] = Field(default=None, index=True)
    km: float = Field(default=0)
    tons: float = Field(default=0)
    price_per_km_ton: float = Field(default=0)
    price_per_km_ton_transportadora: Optional[float] = None
    # Totais derivados, sempre recalculados no servidor
    total_value: float = Field(default=0)
    total_value_transportadora: float = Field(default=0)
    comprovante_carga: Optional[str] = None
    comprovante_descarga: Optional[str] = None
    comprovante_recebimento: Optional[str] = None
    documento_frete: Optional[str] = None
    status: RecordStatus = Field(default=RecordStatus.PENDING)
    paid: bool = Field(default=False)
    client_paid: bool = Field(default=False)
    tracking_enabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )


class FreightCreate(SQLModel):
    driver_id: int
    date: str = Field(..., description="Data do frete no formato YYYY-MM-DD")
    km: float
    tons: float
    price_per_km_ton: float
    price_per_km_ton_transportadora: Optional[float] = None
    client: Optional[str] = None
    plate: Optional[str] = None
    comprovante_carga: Optional[str] = None
    comprovante_descarga: Optional[str] = None
    comprovante_recebimento: Optional[str] = None


class FreightUpdate(SQLModel):
    driver_id: Optional[int] = None
    date: Optional[str] = None
    plate: Optional[str] = None
    client: Optional[str] = None
    km: Optional[float] = None
    tons: Optional[float] = None
    price_per_km_ton: Optional[float] = None
    price_per_km_ton_transportadora: Optional[float] = None
    comprovante_carga: Optional[str] = None
    comprovante_descarga: Optional[str] = None
    comprovante_recebimento: Optional[str] = None
    documento_frete: Optional[str] = None


class FreightRead(SQLModel):
    id: int
    driver_id: int
    driver_name: Optional[str] = None
    driver_plate: Optional[str] = None
    date: str
    plate: Optional[str] = None
    client: Optional[str] = None
    km: float
    tons: float
    price_per_km_ton: float
    price_per_km_ton_transportadora: Optional[float] = None
    total_value: float
    total_value_transportadora: float
    comprovante_carga: Optional[str] = None
    comprovante_descarga: Optional[str] = None
    comprovante_recebimento: Optional[str] = None
    documento_frete: Optional[str] = None
    status: RecordStatus
    paid: bool
    client_paid: bool
    tracking_enabled: bool
    created_at: datetime
