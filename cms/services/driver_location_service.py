from typing import Optional

from fastapi import HTTPException, status
from sqlmodel import Session, select

from cms.models.driver_location import DriverLocation, DriverLocationUpdate
from cms.models.freight import Freight


class DriverLocationService:
    def __init__(self, session: Session):
        self.session = session

    def get_location(self, driver_id: int) -> Optional[DriverLocation]:
        return self.session.exec(
            select(DriverLocation).where(DriverLocation.driver_id == driver_id)
        ).first()

    def upsert_location(self, driver_id: int, data: DriverLocationUpdate) -> DriverLocation:
        # Uma linha por motorista: atualiza se já existe
        existing = self.get_location(driver_id)
        if existing:
            existing.latitude = data.latitude
            existing.longitude = data.longitude
            existing.freight_id = data.freight_id
            self.session.add(existing)
            self.session.commit()
            self.session.refresh(existing)
            return existing

        location = DriverLocation(
            driver_id=driver_id,
            latitude=data.latitude,
            longitude=data.longitude,
            freight_id=data.freight_id
        )
        self.session.add(location)
        self.session.commit()
        self.session.refresh(location)
        return location

    def start_tracking(self, driver_id: int, freight_id: int) -> Freight:
        freight = self.session.get(Freight, freight_id)
        if not freight:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Frete não encontrado")
        if freight.driver_id != driver_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Este frete não pertence a você")

        freight.tracking_enabled = True
        self.session.add(freight)
        location = self.get_location(driver_id)
        if location:
            location.freight_id = freight_id
            self.session.add(location)
        self.session.commit()
        self.session.refresh(freight)
        return freight

    def stop_tracking(self, driver_id: int) -> None:
        location = self.get_location(driver_id)
        if not location:
            return
        if location.freight_id:
            freight = self.session.get(Freight, location.freight_id)
            if freight:
                freight.tracking_enabled = False
                self.session.add(freight)
        location.freight_id = None
        self.session.add(location)
        self.session.commit()

    def tracking_status(self, driver_id: int) -> dict:
        location = self.get_location(driver_id)
        if not location or not location.freight_id:
            return {"tracking": False, "freight_id": None, "location": None}

        freight = self.session.get(Freight, location.freight_id)
        return {
            "tracking": True,
            "freight_id": location.freight_id,
            "freight": {
                "id": freight.id,
                "client": freight.client,
                "date": freight.date,
                "status": freight.status,
            } if freight else None,
            "location": {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "updated_at": location.updated_at,
            },
        }
