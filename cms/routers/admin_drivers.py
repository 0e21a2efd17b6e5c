import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.driver import DriverCreate, DriverRead, DriverUpdate
from cms.services.driver_service import DriverService

router = APIRouter(
    prefix="/api/admin/drivers",
    tags=["ADMIN: drivers"],
    dependencies=[Depends(require_admin)]
)


@router.post("/", response_model=DriverRead, status_code=status.HTTP_201_CREATED, description="""
Cadastra um motorista pelo painel administrativo.

**Body:**
```json
{
    "name": "João Silva",
    "plate": "ABC-1234",
    "price_per_km_ton": 0.35,
    "client": "Transportes XYZ"
}
```

- `price_per_km_ton` precisa ser positivo.
- 409 quando a placa já é a placa principal de outro motorista.
""")
def create_driver(data: DriverCreate, session: SessionDep):
    try:
        return DriverRead.from_driver(DriverService(session).create_driver(data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error creating driver")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/", response_model=List[DriverRead], description="""
Lista os motoristas ordenados pelo nome. Use `?active=true` para listar só os ativos.
""")
def list_drivers(session: SessionDep, active: Optional[bool] = Query(None)):
    drivers = DriverService(session).list_drivers(active_only=bool(active))
    return [DriverRead.from_driver(d) for d in drivers]


@router.get("/{driver_id}", response_model=DriverRead)
def get_driver(driver_id: int, session: SessionDep):
    return DriverRead.from_driver(DriverService(session).get_driver(driver_id))


@router.put("/{driver_id}", response_model=DriverRead, description="""
Atualização parcial do motorista.

- `plate` troca a placa principal; continua única entre os outros motoristas.
- `plates` substitui a lista inteira (placas extras podem ser compartilhadas).
- `authenticated` libera o motorista no portal do abastecedor.
""")
def update_driver(driver_id: int, data: DriverUpdate, session: SessionDep):
    try:
        return DriverRead.from_driver(DriverService(session).update_driver(driver_id, data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error updating driver")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{driver_id}", description="""
Desativa o motorista. O cadastro e o histórico de fretes continuam no banco.
""")
def deactivate_driver(driver_id: int, session: SessionDep):
    DriverService(session).deactivate_driver(driver_id)
    return {"message": "Motorista desativado com sucesso"}
