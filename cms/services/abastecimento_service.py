import logging
import math
from typing import List, Optional

from fastapi import HTTPException, status
from sqlmodel import Session, select

from cms.models.abastecimento import (
    Abastecimento, AbastecimentoCreate, AbastecimentoRead, AbastecimentoUpdate
)
from cms.models.driver import Driver
from cms.models.freight import RecordStatus
from cms.services.comprovante_service import ABASTECIMENTO, ComprovantePool
from cms.utils.money import compute_total
from cms.utils.uploads import uploader
from cms.utils.validators import is_valid_date, is_positive_number, normalize_plate

logger = logging.getLogger(__name__)


def apply_abastecimento_totals(abastecimento: Abastecimento) -> None:
    abastecimento.total_value = compute_total(abastecimento.quantity, abastecimento.price_per_liter)
    if abastecimento.status != RecordStatus.COMPLETE \
            and (abastecimento.quantity or 0) > 0 and (abastecimento.price_per_liter or 0) > 0:
        abastecimento.status = RecordStatus.COMPLETE


def to_abastecimento_read(abastecimento: Abastecimento, driver: Optional[Driver]) -> AbastecimentoRead:
    return AbastecimentoRead(
        **abastecimento.model_dump(exclude={"updated_at"}),
        driver_name=driver.name if driver else None,
        driver_plate=driver.plate if driver else None,
    )


class AbastecimentoService:
    def __init__(self, session: Session):
        self.session = session

    def _get_driver_or_404(self, driver_id: int) -> Driver:
        driver = self.session.get(Driver, driver_id)
        if not driver:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")
        return driver

    def get_abastecimento(self, abastecimento_id: int) -> Abastecimento:
        abastecimento = self.session.get(Abastecimento, abastecimento_id)
        if not abastecimento:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Abastecimento não encontrado")
        return abastecimento

    def read(self, abastecimento: Abastecimento) -> AbastecimentoRead:
        return to_abastecimento_read(abastecimento, self.session.get(Driver, abastecimento.driver_id))

    def create_abastecimento(self, data: AbastecimentoCreate, abastecedor_id: Optional[int] = None,
                             require_price: bool = True) -> Abastecimento:
        """
        Registra um abastecimento. Quando há comprovante, ele entra no pool já
        vinculado ao registro, na mesma transação.

        O abastecedor informa só os litros; o preço fica 0 até o admin completar.
        """
        if not is_valid_date(data.date):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Data inválida. Use YYYY-MM-DD")
        if not is_positive_number(data.quantity):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="quantity deve ser um número positivo")
        if require_price and not is_positive_number(data.price_per_liter):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="price_per_liter deve ser um número positivo")
        driver = self._get_driver_or_404(data.driver_id)

        try:
            abastecimento = Abastecimento(
                **data.model_dump(exclude={"plate", "client"}),
                plate=normalize_plate(data.plate) if data.plate else driver.plate,
                client=data.client or driver.client,
                abastecedor_id=abastecedor_id,
            )
            apply_abastecimento_totals(abastecimento)
            self.session.add(abastecimento)
            self.session.flush()
            if abastecimento.comprovante_abastecimento:
                ComprovantePool(self.session, ABASTECIMENTO).submit(
                    driver.id, abastecimento.comprovante_abastecimento, data.date,
                    assigned_to=abastecimento.id, commit=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(abastecimento)
        logger.info("Abastecimento %s criado para o motorista %s", abastecimento.id, driver.id)
        return abastecimento

    def create_pending(self, driver_id: int, date: str, comprovante_abastecimento: str) -> Abastecimento:
        driver = self._get_driver_or_404(driver_id)
        try:
            abastecimento = Abastecimento(
                driver_id=driver_id,
                date=date,
                plate=driver.plate,
                client=driver.client,
                comprovante_abastecimento=comprovante_abastecimento,
                status=RecordStatus.PENDING,
            )
            self.session.add(abastecimento)
            self.session.flush()
            ComprovantePool(self.session, ABASTECIMENTO).submit(
                driver_id, comprovante_abastecimento, date, assigned_to=abastecimento.id, commit=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(abastecimento)
        return abastecimento

    def update_abastecimento(self, abastecimento_id: int, data: AbastecimentoUpdate) -> Abastecimento:
        abastecimento = self.get_abastecimento(abastecimento_id)
        update_data = data.model_dump(exclude_unset=True)

        if "date" in update_data and not is_valid_date(update_data["date"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Data inválida. Use YYYY-MM-DD")
        if update_data.get("driver_id") is not None:
            self._get_driver_or_404(update_data["driver_id"])
        for field in ("quantity", "price_per_liter"):
            value = update_data.get(field)
            if value is not None and (value < 0 or not math.isfinite(value)):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{field} deve ser um número não negativo")
        if update_data.get("plate"):
            update_data["plate"] = normalize_plate(update_data["plate"])

        for key, value in update_data.items():
            setattr(abastecimento, key, value)
        apply_abastecimento_totals(abastecimento)

        self.session.add(abastecimento)
        self.session.commit()
        self.session.refresh(abastecimento)
        return abastecimento

    def list_abastecimentos(
        self,
        driver_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        status_filter: Optional[RecordStatus] = None,
    ) -> List[AbastecimentoRead]:
        query = select(Abastecimento, Driver).join(Driver, Driver.id == Abastecimento.driver_id)
        if driver_id is not None:
            query = query.where(Abastecimento.driver_id == driver_id)
        if date_from:
            query = query.where(Abastecimento.date >= date_from)
        if date_to:
            query = query.where(Abastecimento.date <= date_to)
        if status_filter:
            query = query.where(Abastecimento.status == status_filter)
        query = query.order_by(Abastecimento.date.desc(), Abastecimento.id.desc())
        return [to_abastecimento_read(a, driver) for a, driver in self.session.exec(query).all()]

    def toggle_paid(self, abastecimento_id: int) -> Abastecimento:
        abastecimento = self.get_abastecimento(abastecimento_id)
        abastecimento.paid = not abastecimento.paid
        self.session.add(abastecimento)
        self.session.commit()
        self.session.refresh(abastecimento)
        return abastecimento

    def delete_abastecimento(self, abastecimento_id: int) -> None:
        abastecimento = self.get_abastecimento(abastecimento_id)
        try:
            file_paths = ComprovantePool(self.session, ABASTECIMENTO).delete_for_target(abastecimento_id)
            self.session.delete(abastecimento)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        for file_path in file_paths:
            uploader.delete(file_path)
        logger.info("Abastecimento %s removido", abastecimento_id)
