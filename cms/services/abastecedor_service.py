import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlmodel import Session, select

from cms.core.security import hash_password
from cms.models.abastecedor import Abastecedor, AbastecedorCreate, AbastecedorUpdate
from cms.models.driver import Driver
from cms.services.driver_service import DriverService
from cms.utils.validators import clean_digits, is_valid_cpf, normalize_plate

logger = logging.getLogger(__name__)


class AbastecedorService:
    def __init__(self, session: Session):
        self.session = session

    def get_abastecedor(self, abastecedor_id: int) -> Abastecedor:
        abastecedor = self.session.get(Abastecedor, abastecedor_id)
        if not abastecedor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Abastecedor não encontrado")
        return abastecedor

    def _check_cpf(self, cpf: str, abastecedor_id: Optional[int] = None) -> str:
        if not is_valid_cpf(cpf):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="CPF inválido")
        cpf = clean_digits(cpf)
        existing = self.session.exec(select(Abastecedor).where(Abastecedor.cpf == cpf)).first()
        if existing and existing.id != abastecedor_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="CPF já cadastrado")
        return cpf

    def create_abastecedor(self, data: AbastecedorCreate) -> Abastecedor:
        if not data.name or not data.name.strip() or not data.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Nome, CPF e senha são obrigatórios")
        abastecedor = Abastecedor(
            name=data.name.strip(),
            cpf=self._check_cpf(data.cpf),
            phone=clean_digits(data.phone) or None,
            password=hash_password(data.password),
        )
        self.session.add(abastecedor)
        self.session.commit()
        self.session.refresh(abastecedor)
        logger.info("Abastecedor %s criado", abastecedor.id)
        return abastecedor

    def list_abastecedores(self) -> List[Abastecedor]:
        return self.session.exec(select(Abastecedor).order_by(Abastecedor.name)).all()

    def update_abastecedor(self, abastecedor_id: int, data: AbastecedorUpdate) -> Abastecedor:
        abastecedor = self.get_abastecedor(abastecedor_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("cpf"):
            update_data["cpf"] = self._check_cpf(update_data["cpf"], abastecedor_id)
        if update_data.get("password"):
            update_data["password"] = hash_password(update_data["password"])
        else:
            update_data.pop("password", None)
        if update_data.get("name"):
            update_data["name"] = update_data["name"].strip()
        for key, value in update_data.items():
            if value is not None:
                setattr(abastecedor, key, value)
        self.session.add(abastecedor)
        self.session.commit()
        self.session.refresh(abastecedor)
        return abastecedor

    def deactivate_abastecedor(self, abastecedor_id: int) -> Abastecedor:
        abastecedor = self.get_abastecedor(abastecedor_id)
        abastecedor.active = False
        self.session.add(abastecedor)
        self.session.commit()
        self.session.refresh(abastecedor)
        return abastecedor

    # Portal do abastecedor

    def plates_overview(self) -> dict:
        """Mapa placa -> motoristas, só com motoristas ativos e autenticados, ordenado pela placa."""
        drivers = [d for d in DriverService(self.session).list_drivers(active_only=True) if d.authenticated]
        plate_map = {}
        for driver in drivers:
            for plate in driver.plates:
                plate_map.setdefault(plate, []).append({"id": driver.id, "name": driver.name})
        plates = [
            {"plate": plate, "drivers": owners, "multipleDrivers": len(owners) > 1}
            for plate, owners in sorted(plate_map.items())
        ]
        return {
            "plates": plates,
            "drivers": [{"id": d.id, "name": d.name, "plate": d.plate} for d in drivers],
        }

    def resolve_driver(self, plate: Optional[str], driver_id: Optional[int]) -> Driver:
        """
        Identifica o motorista pelo ID ou pela placa.

        Se vários motoristas compartilham a placa, responde 400 com a lista para
        que o abastecedor escolha um.
        """
        if driver_id:
            driver = self.session.get(Driver, driver_id)
            if not driver:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")
            return driver

        drivers = DriverService(self.session).find_all_by_plate(normalize_plate(plate))
        if not drivers:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Veículo não encontrado com esta placa")
        if len(drivers) > 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Múltiplos motoristas compartilham esta placa. Selecione um motorista.",
                    "multipleDrivers": True,
                    "drivers": [{"id": d.id, "name": d.name} for d in drivers],
                })
        return drivers[0]
