import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.outros_insumo import OutrosInsumoCreate, OutrosInsumoRead, OutrosInsumoUpdate
from cms.services.outros_insumo_service import OutrosInsumoService

router = APIRouter(
    prefix="/api/admin/outrosinsumos",
    tags=["ADMIN: outros insumos"],
    dependencies=[Depends(require_admin)]
)


@router.post("/", response_model=OutrosInsumoRead, status_code=status.HTTP_201_CREATED, description="""
Registra um insumo diverso (pedágio, manutenção, peças...).

**Body:**
```json
{
    "driver_id": 1,
    "date": "2025-03-10",
    "quantity": 2,
    "description": "Lona",
    "unit_price": 150.0
}
```
Sem `description` o registro recebe "Outros Insumos".
""")
def create_outros_insumo(data: OutrosInsumoCreate, session: SessionDep):
    service = OutrosInsumoService(session)
    try:
        return service.read(service.create_outros_insumo(data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error creating outros insumo")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/", response_model=List[OutrosInsumoRead], description="""
Lista os insumos. **Filtros:** `driver_id`, `client` (cliente do motorista), `date_from`, `date_to`.
""")
def list_outros_insumos(
    session: SessionDep,
    driver_id: Optional[int] = Query(None),
    client: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
):
    return OutrosInsumoService(session).list_outros_insumos(
        driver_id=driver_id, client=client, date_from=date_from, date_to=date_to)


@router.get("/{insumo_id}", response_model=OutrosInsumoRead)
def get_outros_insumo(insumo_id: int, session: SessionDep):
    service = OutrosInsumoService(session)
    return service.read(service.get_outros_insumo(insumo_id))


@router.put("/{insumo_id}", response_model=OutrosInsumoRead)
def update_outros_insumo(insumo_id: int, data: OutrosInsumoUpdate, session: SessionDep):
    service = OutrosInsumoService(session)
    try:
        return service.read(service.update_outros_insumo(insumo_id, data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error updating outros insumo")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{insumo_id}/toggle-paid", response_model=OutrosInsumoRead)
def toggle_paid(insumo_id: int, session: SessionDep):
    service = OutrosInsumoService(session)
    return service.read(service.toggle_paid(insumo_id))


@router.delete("/{insumo_id}")
def delete_outros_insumo(insumo_id: int, session: SessionDep):
    OutrosInsumoService(session).delete_outros_insumo(insumo_id)
    return {"message": "Insumo excluído com sucesso"}
