from sqlmodel import SQLModel, Field
from typing import Optional, List
from datetime import datetime
import json


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    driver_id: int = Field(foreign_key="driver.id", index=True)
    date_range: str  # rótulo livre, ex: "01/03/2025 - 15/03/2025"
    total_value: float
    comprovante_path: Optional[str] = None
    # Listas de IDs serializadas como texto JSON
    freight_ids: str = Field(default="[]")
    abastecimento_ids: str = Field(default="[]")
    outros_insumo_ids: str = Field(default="[]")
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def id_list(self, column: str) -> List[int]:
        raw = getattr(self, column)
        if not raw:
            return []
        return [int(item) for item in json.loads(raw)]


class PaymentRead(SQLModel):
    id: int
    driver_id: int
    driver_name: Optional[str] = None
    driver_plate: Optional[str] = None
    date_range: str
    total_value: float
    comprovante_path: Optional[str] = None
    freight_ids: List[int] = []
    abastecimento_ids: List[int] = []
    outros_insumo_ids: List[int] = []
    created_at: datetime
