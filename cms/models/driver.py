from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, List
from datetime import datetime


class Driver(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    # Lista tipada de placas normalizadas; a primeira é a placa principal
    plates: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    price_per_km_ton: float = Field(default=0)
    client: Optional[str] = Field(default=None, index=True)
    active: bool = Field(default=True)
    authenticated: bool = Field(default=False)
    phone: Optional[str] = Field(default=None, index=True)
    cpf: Optional[str] = Field(default=None, index=True)
    password: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    @property
    def plate(self) -> Optional[str]:
        return self.plates[0] if self.plates else None


class DriverCreate(SQLModel):
    name: str = Field(..., description="Nome do motorista. Exemplo: João Silva")
    plate: str = Field(..., description="Placa principal (ABC-1234 ou ABC-1D23)")
    price_per_km_ton: float = Field(..., description="Valor pago ao motorista por km x tonelada")
    client: Optional[str] = Field(None, description="Cliente (empresa) ao qual o motorista atende")


class DriverUpdate(SQLModel):
    name: Optional[str] = None
    plate: Optional[str] = None
    plates: Optional[List[str]] = None
    price_per_km_ton: Optional[float] = None
    client: Optional[str] = None
    active: Optional[bool] = None
    authenticated: Optional[bool] = None
    phone: Optional[str] = None


class DriverRead(SQLModel):
    id: int
    name: str
    plate: Optional[str] = None
    plates: List[str] = []
    price_per_km_ton: float
    client: Optional[str] = None
    active: bool
    authenticated: bool
    phone: Optional[str] = None
    cpf: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_driver(cls, driver: Driver) -> "DriverRead":
        return cls(**driver.model_dump(exclude={"password", "updated_at"}), plate=driver.plate)


class DriverProfileRead(SQLModel):
    """Perfil visto pelo próprio motorista (sem o valor por km x tonelada)"""
    id: int
    name: str
    plate: Optional[str] = None
    plates: List[str] = []
    client: Optional[str] = None
    active: bool
    authenticated: bool
    phone: Optional[str] = None
    cpf: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_driver(cls, driver: Driver) -> "DriverProfileRead":
        data = driver.model_dump(exclude={"password", "updated_at", "price_per_km_ton"})
        return cls(**data, plate=driver.plate)
