import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from cms.core.db import SessionDep
from cms.core.dependencies.auth import TokenData, require_abastecedor
from cms.models.abastecedor import AbastecedorRead
from cms.models.abastecimento import AbastecimentoCreate
from cms.models.outros_insumo import OutrosInsumoCreate
from cms.services.abastecedor_service import AbastecedorService
from cms.services.abastecimento_service import AbastecimentoService
from cms.services.driver_service import DriverService
from cms.services.outros_insumo_service import OutrosInsumoService
from cms.utils.uploads import uploader
from cms.utils.validators import normalize_plate

router = APIRouter(prefix="/api/abastecedor", tags=["ABASTECEDOR"])


class OutrosInsumoRequest(BaseModel):
    plate: Optional[str] = None
    driver_id: Optional[int] = None
    date: str
    quantity: float
    description: Optional[str] = None


def _require_plate_or_driver(plate: Optional[str], driver_id: Optional[int]) -> None:
    if not plate and not driver_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Informe a placa ou o motorista")


@router.get("/profile", response_model=AbastecedorRead)
def get_profile(session: SessionDep, token: TokenData = Depends(require_abastecedor)):
    return AbastecedorService(session).get_abastecedor(token.id)


@router.get("/drivers", description="""
Placas dos motoristas ativos e autenticados, para o abastecedor escolher o veículo.

**Resposta:**
```json
{
    "plates": [{"plate": "ABC-1234", "drivers": [{"id": 1, "name": "João"}], "multipleDrivers": false}],
    "drivers": [{"id": 1, "name": "João", "plate": "ABC-1234"}]
}
```
""")
def list_drivers(session: SessionDep, token: TokenData = Depends(require_abastecedor)):
    return AbastecedorService(session).plates_overview()


@router.get("/validate-plate/{plate}")
def validate_plate(plate: str, session: SessionDep, token: TokenData = Depends(require_abastecedor)):
    drivers = DriverService(session).find_all_by_plate(plate)
    if not drivers:
        return {"valid": False, "message": "Veículo não encontrado"}
    driver = drivers[0]
    return {
        "valid": True,
        "driver": {"id": driver.id, "name": driver.name, "plate": driver.plate},
        "multipleDrivers": len(drivers) > 1,
    }


@router.get("/drivers-by-plate/{plate}", description="""
Motoristas que usam a placa. 404 quando nenhum motorista ativo tem a placa.
""")
def drivers_by_plate(plate: str, session: SessionDep, token: TokenData = Depends(require_abastecedor)):
    drivers = DriverService(session).find_all_by_plate(plate)
    if not drivers:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Nenhum motorista encontrado com esta placa")
    return {
        "plate": normalize_plate(plate),
        "drivers": [{"id": d.id, "name": d.name} for d in drivers],
        "multipleDrivers": len(drivers) > 1,
    }


@router.post("/abastecimento", status_code=status.HTTP_201_CREATED, description="""
Registra um abastecimento feito no posto (multipart/form-data).

**Campos:**
- `plate` ou `driver_id`: quando a placa é compartilhada por mais de um motorista a resposta
  é 400 com a lista `drivers`; reenvie com `driver_id`.
- `date` (YYYY-MM-DD) e `liters`.
- `comprovante`: imagem opcional.

O preço por litro é preenchido depois pelo administrador; até lá o registro fica `pending`.
""")
async def create_abastecimento(
    session: SessionDep,
    date: str = Form(...),
    liters: float = Form(...),
    plate: Optional[str] = Form(None),
    driver_id: Optional[int] = Form(None),
    comprovante: Optional[UploadFile] = File(None),
    token: TokenData = Depends(require_abastecedor)
):
    _require_plate_or_driver(plate, driver_id)
    try:
        driver = AbastecedorService(session).resolve_driver(plate, driver_id)
        file_url = None
        if comprovante is not None and comprovante.filename:
            file_url = await uploader.save(comprovante, f"abastecedor-{token.id}-abastecimento")
        data = AbastecimentoCreate(
            driver_id=driver.id,
            date=date,
            quantity=liters,
            price_per_liter=0,
            plate=normalize_plate(plate) if plate else None,
            comprovante_abastecimento=file_url,
        )
        service = AbastecimentoService(session)
        abastecimento = service.create_abastecimento(data, abastecedor_id=token.id, require_price=False)
        return {"message": "Abastecimento registrado com sucesso", "abastecimento": service.read(abastecimento)}
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error registering abastecimento")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/outros-insumos", status_code=status.HTTP_201_CREATED, description="""
Registra outros insumos entregues ao motorista. O valor unitário fica para o administrador.

**Body:** `{"plate": "ABC-1234", "date": "2025-03-10", "quantity": 2, "description": "Arla 32"}`
""")
def create_outros_insumo(
    data: OutrosInsumoRequest,
    session: SessionDep,
    token: TokenData = Depends(require_abastecedor)
):
    _require_plate_or_driver(data.plate, data.driver_id)
    driver = AbastecedorService(session).resolve_driver(data.plate, data.driver_id)
    service = OutrosInsumoService(session)
    insumo = service.create_outros_insumo(
        OutrosInsumoCreate(
            driver_id=driver.id,
            date=data.date,
            quantity=data.quantity,
            description=data.description,
            unit_price=0,
        ),
        abastecedor_id=token.id,
        require_price=False,
    )
    return {"message": "Insumo registrado com sucesso", "outros_insumo": service.read(insumo)}
