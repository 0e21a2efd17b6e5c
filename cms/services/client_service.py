import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlmodel import Session, select

from cms.core.security import hash_password
from cms.models.abastecimento import Abastecimento
from cms.models.client import Client, ClientCreate, ClientUpdate
from cms.models.driver import Driver, DriverRead
from cms.models.driver_location import DriverLocation
from cms.models.freight import Freight, RecordStatus
from cms.models.outros_insumo import OutrosInsumo
from cms.services.abastecimento_service import to_abastecimento_read
from cms.services.freight_service import FreightService, to_freight_read
from cms.services.outros_insumo_service import to_outros_insumo_read
from cms.services.statistics_service import StatisticsService
from cms.utils.validators import clean_digits

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(self, session: Session):
        self.session = session

    def get_client(self, client_id: int) -> Client:
        client = self.session.get(Client, client_id)
        if not client:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Cliente não encontrado")
        return client

    def create_client(self, data: ClientCreate) -> Client:
        name = (data.name or "").strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Nome do cliente é obrigatório")
        if self.session.exec(select(Client).where(Client.empresa == name)).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Cliente já cadastrado")
        if self.session.exec(select(Driver).where(Driver.client == name)).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cliente já existe (vinculado a um motorista)")
        client = Client(empresa=name)
        self.session.add(client)
        self.session.commit()
        self.session.refresh(client)
        logger.info("Cliente %s criado", name)
        return client

    def update_client(self, client_id: int, data: ClientUpdate) -> Client:
        client = self.get_client(client_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("password"):
            update_data["password"] = hash_password(update_data["password"])
        else:
            update_data.pop("password", None)
        for field in ("cpf", "cnpj"):
            if update_data.get(field):
                update_data[field] = clean_digits(update_data[field])
        if update_data.get("empresa"):
            update_data["empresa"] = update_data["empresa"].strip()
            other = self.session.exec(
                select(Client).where(Client.empresa == update_data["empresa"], Client.id != client_id)
            ).first()
            if other:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT, detail="Cliente já cadastrado")
        for key, value in update_data.items():
            setattr(client, key, value)
        self.session.add(client)
        self.session.commit()
        self.session.refresh(client)
        return client

    def client_details(self, client_name: str) -> dict:
        drivers = self.session.exec(
            select(Driver).where(Driver.client == client_name).order_by(Driver.name)
        ).all()
        if not drivers:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Cliente não encontrado")
        by_id = {driver.id: driver for driver in drivers}
        driver_ids = list(by_id)

        freights = self.session.exec(
            select(Freight).where(Freight.driver_id.in_(driver_ids))
            .order_by(Freight.date.desc(), Freight.id.desc())
        ).all()
        abastecimentos = self.session.exec(
            select(Abastecimento).where(Abastecimento.driver_id.in_(driver_ids))
            .order_by(Abastecimento.date.desc(), Abastecimento.id.desc())
        ).all()
        outros_insumos = self.session.exec(
            select(OutrosInsumo).where(OutrosInsumo.driver_id.in_(driver_ids))
            .order_by(OutrosInsumo.date.desc(), OutrosInsumo.id.desc())
        ).all()

        stats = StatisticsService(self.session).client_totals(
            freights, abastecimentos, outros_insumos, driver_count=len(drivers))
        return {
            "client": client_name,
            "drivers": [DriverRead.from_driver(d) for d in drivers],
            "freights": [to_freight_read(f, by_id.get(f.driver_id)) for f in freights],
            "abastecimentos": [to_abastecimento_read(a, by_id.get(a.driver_id)) for a in abastecimentos],
            "outros_insumos": [to_outros_insumo_read(o, by_id.get(o.driver_id)) for o in outros_insumos],
            "stats": stats,
        }

    # Portal do cliente

    def company_name(self, client: Client) -> str:
        return client.empresa or client.name

    def client_freights(self, client: Client, date_from: str = None, date_to: str = None) -> dict:
        freights = FreightService(self.session).list_freights(
            client=self.company_name(client), date_from=date_from, date_to=date_to)
        summary = StatisticsService.freight_summary(freights)
        return {
            "freights": freights,
            "stats": {k: summary[k] for k in ("total_value", "total_km", "total_tons")},
        }

    def client_stats(self, client: Client) -> dict:
        freights = FreightService(self.session).list_freights(client=self.company_name(client))
        return StatisticsService.freight_summary(freights)

    def active_freights(self, client: Client) -> List[dict]:
        """Fretes pendentes com rastreamento ligado, com a última posição conhecida do motorista."""
        rows = self.session.exec(
            select(Freight, Driver)
            .join(Driver, Driver.id == Freight.driver_id)
            .where(
                func.lower(Freight.client) == self.company_name(client).lower(),
                Freight.status == RecordStatus.PENDING,
                Freight.tracking_enabled == True,
            )
            .order_by(Freight.date.desc())
        ).all()
        result = []
        for freight, driver in rows:
            location = self.session.exec(
                select(DriverLocation).where(DriverLocation.freight_id == freight.id)
            ).first()
            result.append({
                "id": freight.id,
                "date": freight.date,
                "status": freight.status,
                "driver": {"name": driver.name, "plate": driver.plate, "phone": driver.phone},
                "location": {
                    "latitude": location.latitude,
                    "longitude": location.longitude,
                    "updated_at": location.updated_at,
                } if location else None,
            })
        return result

    def freight_location(self, client: Client, freight_id: int) -> dict:
        freight = self.session.get(Freight, freight_id)
        if not freight:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Frete não encontrado")
        if (freight.client or "").lower() != self.company_name(client).lower():
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Este frete não pertence ao cliente")

        location = self.session.exec(
            select(DriverLocation).where(DriverLocation.freight_id == freight_id)
        ).first()
        if not location:
            return {
                "freight_id": freight_id,
                "tracking": False,
                "location": None,
                "message": "Localização do motorista indisponível",
            }
        driver = self.session.get(Driver, location.driver_id)
        return {
            "freight_id": freight_id,
            "tracking": True,
            "driver": {"name": driver.name, "plate": driver.plate, "phone": driver.phone},
            "location": {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "updated_at": location.updated_at,
            },
        }
