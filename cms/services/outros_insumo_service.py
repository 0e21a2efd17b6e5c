import logging
import math
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlmodel import Session, select

from cms.models.driver import Driver
from cms.models.freight import RecordStatus
from cms.models.outros_insumo import (
    OutrosInsumo, OutrosInsumoCreate, OutrosInsumoRead, OutrosInsumoUpdate
)
from cms.utils.money import compute_total
from cms.utils.validators import is_valid_date, is_positive_number

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Outros Insumos"


def apply_outros_insumo_totals(insumo: OutrosInsumo) -> None:
    insumo.total_value = compute_total(insumo.quantity, insumo.unit_price)
    if insumo.status != RecordStatus.COMPLETE \
            and (insumo.quantity or 0) > 0 and (insumo.unit_price or 0) > 0:
        insumo.status = RecordStatus.COMPLETE


def to_outros_insumo_read(insumo: OutrosInsumo, driver: Optional[Driver]) -> OutrosInsumoRead:
    return OutrosInsumoRead(
        **insumo.model_dump(exclude={"updated_at"}),
        driver_name=driver.name if driver else None,
        driver_plate=driver.plate if driver else None,
        client=driver.client if driver else None,
    )


class OutrosInsumoService:
    def __init__(self, session: Session):
        self.session = session

    def get_outros_insumo(self, insumo_id: int) -> OutrosInsumo:
        insumo = self.session.get(OutrosInsumo, insumo_id)
        if not insumo:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Outros insumo não encontrado")
        return insumo

    def read(self, insumo: OutrosInsumo) -> OutrosInsumoRead:
        return to_outros_insumo_read(insumo, self.session.get(Driver, insumo.driver_id))

    def create_outros_insumo(self, data: OutrosInsumoCreate, abastecedor_id: Optional[int] = None,
                             require_price: bool = True, comprovante: Optional[str] = None) -> OutrosInsumo:
        if not is_valid_date(data.date):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Data inválida. Use YYYY-MM-DD")
        if not is_positive_number(data.quantity):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="quantity deve ser um número positivo")
        if require_price and not is_positive_number(data.unit_price):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="unit_price deve ser um número positivo")
        if not self.session.get(Driver, data.driver_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")

        insumo = OutrosInsumo(
            **data.model_dump(exclude={"description"}),
            description=data.description or DEFAULT_DESCRIPTION,
            abastecedor_id=abastecedor_id,
            comprovante=comprovante,
        )
        apply_outros_insumo_totals(insumo)
        self.session.add(insumo)
        self.session.commit()
        self.session.refresh(insumo)
        logger.info("Outros insumo %s criado para o motorista %s", insumo.id, insumo.driver_id)
        return insumo

    def update_outros_insumo(self, insumo_id: int, data: OutrosInsumoUpdate) -> OutrosInsumo:
        insumo = self.get_outros_insumo(insumo_id)
        update_data = data.model_dump(exclude_unset=True)

        if "date" in update_data and not is_valid_date(update_data["date"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Data inválida. Use YYYY-MM-DD")
        if update_data.get("driver_id") is not None and not self.session.get(Driver, update_data["driver_id"]):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")
        for field in ("quantity", "unit_price"):
            value = update_data.get(field)
            if value is not None and (value < 0 or not math.isfinite(value)):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{field} deve ser um número não negativo")

        for key, value in update_data.items():
            setattr(insumo, key, value)
        apply_outros_insumo_totals(insumo)

        self.session.add(insumo)
        self.session.commit()
        self.session.refresh(insumo)
        return insumo

    def list_outros_insumos(
        self,
        driver_id: Optional[int] = None,
        client: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[OutrosInsumoRead]:
        query = select(OutrosInsumo, Driver).join(Driver, Driver.id == OutrosInsumo.driver_id)
        if driver_id is not None:
            query = query.where(OutrosInsumo.driver_id == driver_id)
        if client:
            query = query.where(func.lower(Driver.client) == client.lower())
        if date_from:
            query = query.where(OutrosInsumo.date >= date_from)
        if date_to:
            query = query.where(OutrosInsumo.date <= date_to)
        query = query.order_by(OutrosInsumo.date.desc(), OutrosInsumo.id.desc())
        return [to_outros_insumo_read(i, driver) for i, driver in self.session.exec(query).all()]

    def toggle_paid(self, insumo_id: int) -> OutrosInsumo:
        insumo = self.get_outros_insumo(insumo_id)
        insumo.paid = not insumo.paid
        self.session.add(insumo)
        self.session.commit()
        self.session.refresh(insumo)
        return insumo

    def delete_outros_insumo(self, insumo_id: int) -> None:
        insumo = self.get_outros_insumo(insumo_id)
        self.session.delete(insumo)
        self.session.commit()
        logger.info("Outros insumo %s removido", insumo_id)
