from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class DriverLocation(SQLModel, table=True):
    __tablename__ = "driver_location"
    id: Optional[int] = Field(default=None, primary_key=True)
    driver_id: int = Field(foreign_key="driver.id", unique=True, index=True)
    latitude: float
    longitude: float
    freight_id: Optional[int] = Field(default=None, foreign_key="freight.id")
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )


class DriverLocationUpdate(SQLModel):
    latitude: float = Field(..., ge=-90, le=90,
                            description="Latitude entre -90 e 90. Exemplo: -23.55052")
    longitude: float = Field(..., ge=-180, le=180,
                             description="Longitude entre -180 e 180. Exemplo: -46.633308")
    freight_id: Optional[int] = Field(
        None, description="Frete que está sendo rastreado, se houver")
