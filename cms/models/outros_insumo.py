from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from .freight import RecordStatus


class OutrosInsumo(SQLModel, table=True):
    __tablename__ = "outros_insumo"
    id: Optional[int] = Field(default=None, primary_key=True)
    driver_id: int = Field(foreign_key="driver.id", index=True)
    abastecedor_id: Optional[int] = Field(default=None, foreign_key="abastecedor.id")
    date: str = Field(index=True)
    description: Optional[str] = None
    quantity: float = Field(default=0)
    unit_price: float = Field(default=0)
    total_value: float = Field(default=0)
    comprovante: Optional[str] = None
    status: RecordStatus = Field(default=RecordStatus.PENDING)
    paid: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )


class OutrosInsumoCreate(SQLModel):
    driver_id: int
    date: str = Field(..., description="Data no formato YYYY-MM-DD")
    quantity: float
    description: Optional[str] = None
    unit_price: float


class OutrosInsumoUpdate(SQLModel):
    driver_id: Optional[int] = None
    date: Optional[str] = None
    quantity: Optional[float] = None
    description: Optional[str] = None
    unit_price: Optional[float] = None


class OutrosInsumoRead(SQLModel):
    id: int
    driver_id: int
    driver_name: Optional[str] = None
    driver_plate: Optional[str] = None
    client: Optional[str] = None
    abastecedor_id: Optional[int] = None
    date: str
    description: Optional[str] = None
    quantity: float
    unit_price: float
    total_value: float
    comprovante: Optional[str] = None
    status: RecordStatus
    paid: bool
    created_at: datetime
