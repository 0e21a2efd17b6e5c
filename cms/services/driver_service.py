import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlmodel import Session, select

from cms.models.driver import Driver, DriverCreate, DriverUpdate
from cms.utils.validators import is_valid_plate, normalize_plate, is_positive_number

logger = logging.getLogger(__name__)

INVALID_PLATE_DETAIL = "Formato de placa inválido. Use ABC-1234 ou ABC-1D23"


class DriverService:
    def __init__(self, session: Session):
        self.session = session

    def get_driver(self, driver_id: int) -> Driver:
        driver = self.session.get(Driver, driver_id)
        if not driver:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")
        return driver

    def list_drivers(self, active_only: bool = False) -> List[Driver]:
        query = select(Driver)
        if active_only:
            query = query.where(Driver.active == True)
        return self.session.exec(query.order_by(Driver.name)).all()

    def find_by_primary_plate(self, plate: str) -> Optional[Driver]:
        plate = normalize_plate(plate)
        for driver in self.session.exec(select(Driver)).all():
            if driver.plate == plate:
                return driver
        return None

    def find_all_by_plate(self, plate: str, active_only: bool = True) -> List[Driver]:
        """Motoristas que têm a placa em qualquer posição da lista (caminhão compartilhado)."""
        plate = normalize_plate(plate)
        return [driver for driver in self.list_drivers(active_only) if plate in driver.plates]

    def find_by_cpf(self, cpf: str) -> Optional[Driver]:
        return self.session.exec(select(Driver).where(Driver.cpf == cpf)).first()

    def find_by_phone(self, phone: str) -> Optional[Driver]:
        return self.session.exec(select(Driver).where(Driver.phone == phone)).first()

    def _validated_plate(self, plate: str, driver_id: Optional[int] = None) -> str:
        if not is_valid_plate(plate):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_PLATE_DETAIL)
        normalized = normalize_plate(plate)
        existing = self.find_by_primary_plate(normalized)
        if existing and existing.id != driver_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Placa já cadastrada para outro motorista")
        return normalized

    def create_driver(self, data: DriverCreate) -> Driver:
        if not data.name or not data.name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Nome é obrigatório")
        if not is_positive_number(data.price_per_km_ton):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="price_per_km_ton deve ser um número positivo")
        plate = self._validated_plate(data.plate)
        driver = Driver(
            name=data.name.strip(),
            plates=[plate],
            price_per_km_ton=data.price_per_km_ton,
            client=data.client.strip() if data.client else None,
        )
        self.session.add(driver)
        self.session.commit()
        self.session.refresh(driver)
        logger.info("Motorista %s criado (placa %s)", driver.id, plate)
        return driver

    def update_driver(self, driver_id: int, data: DriverUpdate) -> Driver:
        driver = self.get_driver(driver_id)
        update_data = data.model_dump(exclude_unset=True)

        if "name" in update_data and update_data["name"] is not None:
            driver.name = update_data["name"].strip()
        if update_data.get("plates") is not None:
            plates = []
            for plate in update_data["plates"]:
                if not is_valid_plate(plate):
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_PLATE_DETAIL)
                normalized = normalize_plate(plate)
                if normalized not in plates:
                    plates.append(normalized)
            driver.plates = plates
        if update_data.get("plate") is not None:
            primary = self._validated_plate(update_data["plate"], driver_id=driver.id)
            driver.plates = [primary] + [p for p in driver.plates if p != primary]
        if "price_per_km_ton" in update_data:
            if not is_positive_number(update_data["price_per_km_ton"]):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="price_per_km_ton deve ser um número positivo")
            driver.price_per_km_ton = update_data["price_per_km_ton"]
        if "client" in update_data:
            driver.client = update_data["client"].strip() if update_data["client"] else None
        for key in ("active", "authenticated", "phone"):
            if update_data.get(key) is not None:
                setattr(driver, key, update_data[key])

        self.session.add(driver)
        self.session.commit()
        self.session.refresh(driver)
        return driver

    def deactivate_driver(self, driver_id: int) -> Driver:
        driver = self.get_driver(driver_id)
        driver.active = False
        self.session.add(driver)
        self.session.commit()
        self.session.refresh(driver)
        logger.info("Motorista %s desativado", driver_id)
        return driver

    def add_plate(self, driver_id: int, plate: Optional[str]) -> List[str]:
        if not plate:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Placa é obrigatória")
        if not is_valid_plate(plate):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_PLATE_DETAIL)
        driver = self.get_driver(driver_id)
        normalized = normalize_plate(plate)
        if normalized in driver.plates:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Esta placa já está cadastrada")
        # A lista é reatribuída para que o SQLAlchemy detecte a mudança na coluna JSON
        driver.plates = driver.plates + [normalized]
        self.session.add(driver)
        self.session.commit()
        self.session.refresh(driver)
        return driver.plates

    def remove_plate(self, driver_id: int, plate: str) -> List[str]:
        driver = self.get_driver(driver_id)
        normalized = normalize_plate(plate)
        if normalized not in driver.plates:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Placa não encontrada")
        driver.plates = [p for p in driver.plates if p != normalized]
        self.session.add(driver)
        self.session.commit()
        self.session.refresh(driver)
        return driver.plates
