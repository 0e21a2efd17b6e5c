from fastapi import APIRouter, Depends

from cms.core.db import SessionDep
from cms.core.dependencies.auth import TokenData, require_driver
from cms.models.driver_location import DriverLocationUpdate
from cms.services.driver_location_service import DriverLocationService

router = APIRouter(prefix="/api/driver", tags=["DRIVER: location"])


@router.post("/location", description="""
Atualiza a última posição do motorista (uma linha por motorista).

**Body:**
```json
{
    "latitude": -23.5505,
    "longitude": -46.6333,
    "freight_id": 12
}
```
""")
def update_location(
    data: DriverLocationUpdate,
    session: SessionDep,
    token: TokenData = Depends(require_driver)
):
    location = DriverLocationService(session).upsert_location(token.id, data)
    return {
        "message": "Localização atualizada",
        "location": {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "freight_id": location.freight_id,
            "updated_at": location.updated_at,
        },
    }


@router.post("/start-tracking/{freight_id}", description="""
Liga o rastreamento do frete para o cliente acompanhar. O frete precisa ser do motorista (403).
""")
def start_tracking(freight_id: int, session: SessionDep, token: TokenData = Depends(require_driver)):
    freight = DriverLocationService(session).start_tracking(token.id, freight_id)
    return {"message": "Rastreamento iniciado", "freight_id": freight.id, "tracking_enabled": True}


@router.post("/stop-tracking")
def stop_tracking(session: SessionDep, token: TokenData = Depends(require_driver)):
    DriverLocationService(session).stop_tracking(token.id)
    return {"message": "Rastreamento encerrado"}


@router.get("/tracking-status")
def tracking_status(session: SessionDep, token: TokenData = Depends(require_driver)):
    return DriverLocationService(session).tracking_status(token.id)
