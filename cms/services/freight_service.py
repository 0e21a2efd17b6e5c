import logging
import math
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlmodel import Session, select

from cms.models.driver import Driver
from cms.models.driver_location import DriverLocation
from cms.models.freight import Freight, FreightCreate, FreightRead, FreightUpdate, RecordStatus
from cms.services.comprovante_service import CARGA, DESCARGA, ComprovantePool
from cms.utils.money import freight_totals
from cms.utils.uploads import uploader
from cms.utils.validators import is_valid_date, is_positive_number, normalize_plate

logger = logging.getLogger(__name__)


def freight_is_complete(freight: Freight) -> bool:
    return (
        (freight.km or 0) > 0
        and (freight.tons or 0) > 0
        and (freight.price_per_km_ton or 0) > 0
        and bool(freight.client and freight.client.strip())
    )


def apply_freight_totals(freight: Freight) -> None:
    """Recalcula os totais e promove para complete quando os dados financeiros estão preenchidos."""
    freight.total_value, freight.total_value_transportadora = freight_totals(
        freight.km, freight.tons, freight.price_per_km_ton, freight.price_per_km_ton_transportadora)
    if freight.status != RecordStatus.COMPLETE and freight_is_complete(freight):
        freight.status = RecordStatus.COMPLETE


def to_freight_read(freight: Freight, driver: Optional[Driver]) -> FreightRead:
    return FreightRead(
        **freight.model_dump(exclude={"updated_at"}),
        driver_name=driver.name if driver else None,
        driver_plate=driver.plate if driver else None,
    )


class FreightService:
    def __init__(self, session: Session):
        self.session = session

    def _get_driver_or_404(self, driver_id: int) -> Driver:
        driver = self.session.get(Driver, driver_id)
        if not driver:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")
        return driver

    def get_freight(self, freight_id: int) -> Freight:
        freight = self.session.get(Freight, freight_id)
        if not freight:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Frete não encontrado")
        return freight

    def read(self, freight: Freight) -> FreightRead:
        return to_freight_read(freight, self.session.get(Driver, freight.driver_id))

    def _validate_numbers(self, values: dict) -> None:
        for field in ("km", "tons", "price_per_km_ton"):
            if field in values and not is_positive_number(values[field]):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{field} deve ser um número positivo")
        rate = values.get("price_per_km_ton_transportadora")
        if rate is not None and not is_positive_number(rate):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="price_per_km_ton_transportadora deve ser um número positivo")

    def create_freight(self, data: FreightCreate) -> Freight:
        if not is_valid_date(data.date):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Data inválida. Use YYYY-MM-DD")
        self._validate_numbers(data.model_dump())
        driver = self._get_driver_or_404(data.driver_id)

        freight = Freight(
            **data.model_dump(exclude={"client", "plate"}),
            client=data.client.strip() if data.client else None,
            plate=normalize_plate(data.plate) if data.plate else driver.plate,
        )
        apply_freight_totals(freight)
        self.session.add(freight)
        self.session.commit()
        self.session.refresh(freight)
        logger.info("Frete %s criado para o motorista %s (%s)", freight.id, driver.id, freight.status.value)
        return freight

    def create_pending(self, driver_id: int, date: str, comprovante_carga: Optional[str]) -> Freight:
        """
        Frete pendente a partir do comprovante de carga enviado pelo motorista.

        O comprovante também entra no pool já vinculado ao novo frete; frete e
        comprovante são gravados na mesma transação.
        """
        driver = self._get_driver_or_404(driver_id)
        try:
            freight = Freight(
                driver_id=driver_id,
                date=date,
                plate=driver.plate,
                comprovante_carga=comprovante_carga,
                status=RecordStatus.PENDING,
            )
            self.session.add(freight)
            self.session.flush()
            if comprovante_carga:
                ComprovantePool(self.session, CARGA).submit(
                    driver_id, comprovante_carga, date, assigned_to=freight.id, commit=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(freight)
        return freight

    def update_freight(self, freight_id: int, data: FreightUpdate) -> Freight:
        freight = self.get_freight(freight_id)
        update_data = data.model_dump(exclude_unset=True)

        if "date" in update_data and not is_valid_date(update_data["date"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Data inválida. Use YYYY-MM-DD")
        if update_data.get("driver_id") is not None:
            self._get_driver_or_404(update_data["driver_id"])
        for field in ("km", "tons", "price_per_km_ton", "price_per_km_ton_transportadora"):
            value = update_data.get(field)
            if value is not None and (value < 0 or not math.isfinite(value)):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{field} deve ser um número não negativo")
        if "client" in update_data:
            update_data["client"] = update_data["client"].strip() if update_data["client"] else None
        if update_data.get("plate"):
            update_data["plate"] = normalize_plate(update_data["plate"])

        for key, value in update_data.items():
            setattr(freight, key, value)
        apply_freight_totals(freight)

        self.session.add(freight)
        self.session.commit()
        self.session.refresh(freight)
        return freight

    def list_freights(
        self,
        driver_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        status_filter: Optional[RecordStatus] = None,
        client: Optional[str] = None,
    ) -> List[FreightRead]:
        query = select(Freight, Driver).join(Driver, Driver.id == Freight.driver_id)
        if driver_id is not None:
            query = query.where(Freight.driver_id == driver_id)
        if date_from:
            query = query.where(Freight.date >= date_from)
        if date_to:
            query = query.where(Freight.date <= date_to)
        if status_filter:
            query = query.where(Freight.status == status_filter)
        if client:
            query = query.where(func.lower(Freight.client) == client.lower())
        query = query.order_by(Freight.date.desc(), Freight.id.desc())
        return [to_freight_read(freight, driver) for freight, driver in self.session.exec(query).all()]

    def unpaid_totals(self) -> List[dict]:
        """Soma dos fretes completos e não pagos, por motorista."""
        rows = self.session.exec(
            select(Freight.driver_id, Driver.name, func.sum(Freight.total_value))
            .join(Driver, Driver.id == Freight.driver_id)
            .where(Freight.status == RecordStatus.COMPLETE, Freight.paid == False)
            .group_by(Freight.driver_id, Driver.name)
            .order_by(Driver.name)
        ).all()
        return [
            {"driver_id": driver_id, "driver_name": name, "unpaid_total": total or 0}
            for driver_id, name, total in rows
        ]

    def toggle_paid(self, freight_id: int) -> Freight:
        freight = self.get_freight(freight_id)
        freight.paid = not freight.paid
        self.session.add(freight)
        self.session.commit()
        self.session.refresh(freight)
        return freight

    def toggle_client_paid(self, freight_id: int) -> Freight:
        # Independente de paid: o cliente pode pagar antes ou depois do motorista
        freight = self.get_freight(freight_id)
        freight.client_paid = not freight.client_paid
        self.session.add(freight)
        self.session.commit()
        self.session.refresh(freight)
        return freight

    def delete_freight(self, freight_id: int) -> None:
        freight = self.get_freight(freight_id)
        try:
            file_paths = ComprovantePool(self.session, CARGA).delete_for_target(freight_id)
            file_paths += ComprovantePool(self.session, DESCARGA).delete_for_target(freight_id)
            locations = self.session.exec(
                select(DriverLocation).where(DriverLocation.freight_id == freight_id)).all()
            for location in locations:
                location.freight_id = None
                self.session.add(location)
            self.session.delete(freight)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        for file_path in file_paths:
            uploader.delete(file_path)
        logger.info("Frete %s removido", freight_id)
