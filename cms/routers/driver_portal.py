import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel

from cms.core.db import SessionDep
from cms.core.dependencies.auth import TokenData, require_driver
from cms.models.driver import DriverProfileRead
from cms.services.abastecimento_service import AbastecimentoService
from cms.services.comprovante_service import DESCARGA, ComprovantePool
from cms.services.driver_service import DriverService
from cms.services.freight_service import FreightService
from cms.services.outros_insumo_service import OutrosInsumoService
from cms.services.payment_service import PaymentService
from cms.services.statistics_service import StatisticsService
from cms.utils.uploads import uploader

router = APIRouter(prefix="/api/driver", tags=["DRIVER"])


class PlateRequest(BaseModel):
    plate: Optional[str] = None


@router.get("/profile", response_model=DriverProfileRead, description="""
Perfil do motorista autenticado. Não inclui o valor por km x tonelada.
""")
def get_profile(session: SessionDep, token: TokenData = Depends(require_driver)):
    return DriverProfileRead.from_driver(DriverService(session).get_driver(token.id))


@router.get("/plates")
def list_plates(session: SessionDep, token: TokenData = Depends(require_driver)):
    driver = DriverService(session).get_driver(token.id)
    return {"plates": driver.plates, "primary": driver.plate}


@router.post("/plates", status_code=status.HTTP_201_CREATED, description="""
Adiciona uma placa à lista do motorista (caminhão compartilhado ou reserva).

- 400 para formato inválido; 409 se a placa já está na lista.
""")
def add_plate(data: PlateRequest, session: SessionDep, token: TokenData = Depends(require_driver)):
    plates = DriverService(session).add_plate(token.id, data.plate)
    return {"message": "Placa adicionada com sucesso", "plates": plates}


@router.delete("/plates/{plate}")
def remove_plate(plate: str, session: SessionDep, token: TokenData = Depends(require_driver)):
    plates = DriverService(session).remove_plate(token.id, plate)
    return {"message": "Placa removida com sucesso", "plates": plates}


@router.get("/stats", description="""
Resumo financeiro do motorista, só com registros completos.

- `total_received`: fretes já pagos.
- `total_to_receive`: fretes ainda não pagos menos todos os abastecimentos e outros insumos completos.
""")
def get_stats(session: SessionDep, token: TokenData = Depends(require_driver)):
    DriverService(session).get_driver(token.id)
    return StatisticsService(session).driver_stats(token.id)


@router.get("/payments")
def list_payments(session: SessionDep, token: TokenData = Depends(require_driver)):
    return PaymentService(session).list_payments(driver_id=token.id)


@router.get("/freights", description="""
Fretes do motorista com totais do período. **Filtros:** `date_from`, `date_to` (YYYY-MM-DD).
""")
def list_freights(
    session: SessionDep,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    token: TokenData = Depends(require_driver)
):
    freights = FreightService(session).list_freights(
        driver_id=token.id, date_from=date_from, date_to=date_to)
    return {"freights": freights, "stats": StatisticsService.freight_summary(freights)}


@router.get("/abastecimentos")
def list_abastecimentos(
    session: SessionDep,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    token: TokenData = Depends(require_driver)
):
    abastecimentos = AbastecimentoService(session).list_abastecimentos(
        driver_id=token.id, date_from=date_from, date_to=date_to)
    return {
        "abastecimentos": abastecimentos,
        "stats": {
            "total_abastecimentos": len(abastecimentos),
            "total_liters": sum(a.quantity or 0 for a in abastecimentos),
            "total_value": sum(a.total_value or 0 for a in abastecimentos),
        },
    }


@router.get("/outrosinsumos")
def list_outros_insumos(
    session: SessionDep,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    token: TokenData = Depends(require_driver)
):
    insumos = OutrosInsumoService(session).list_outros_insumos(
        driver_id=token.id, date_from=date_from, date_to=date_to)
    return {
        "outros_insumos": insumos,
        "stats": {
            "total_outros_insumos": len(insumos),
            "total_quantity": sum(i.quantity or 0 for i in insumos),
            "total_value": sum(i.total_value or 0 for i in insumos),
        },
    }


@router.post("/upload-comprovante", status_code=status.HTTP_201_CREATED, description="""
Envio de comprovantes pelo motorista (multipart/form-data).

- `comprovante_carga`: cria um frete pendente com a data de hoje, já vinculado ao comprovante.
  O administrador completa km, toneladas, valores e cliente depois.
- `comprovante_descarga`: entra no pool de comprovantes livres para o administrador vincular.

Pelo menos um dos arquivos é obrigatório.
""")
async def upload_comprovante(
    session: SessionDep,
    comprovante_carga: Optional[UploadFile] = File(None),
    comprovante_descarga: Optional[UploadFile] = File(None),
    token: TokenData = Depends(require_driver)
):
    has_carga = comprovante_carga is not None and comprovante_carga.filename
    has_descarga = comprovante_descarga is not None and comprovante_descarga.filename
    if not has_carga and not has_descarga:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Nenhum comprovante enviado")

    DriverService(session).get_driver(token.id)
    today = date.today().isoformat()
    try:
        result = {"message": "Comprovante enviado com sucesso"}
        if has_carga:
            url = await uploader.save(comprovante_carga, f"driver-{token.id}-carga")
            freight = FreightService(session).create_pending(token.id, today, url)
            result["freight_id"] = freight.id
            result["comprovante_carga"] = url
        if has_descarga:
            url = await uploader.save(comprovante_descarga, f"driver-{token.id}-descarga")
            receipt = ComprovantePool(session, DESCARGA).submit(token.id, url, today)
            result["comprovante_descarga_id"] = receipt.id
            result["comprovante_descarga"] = url
        return result
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error uploading driver comprovante")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/upload-comprovante-abastecimento", status_code=status.HTTP_201_CREATED, description="""
Envio do comprovante de abastecimento. Cria um abastecimento pendente com a data de hoje,
já vinculado ao comprovante, para o administrador completar litros e preço.
""")
async def upload_comprovante_abastecimento(
    session: SessionDep,
    comprovante_abastecimento: Optional[UploadFile] = File(None),
    token: TokenData = Depends(require_driver)
):
    if comprovante_abastecimento is None or not comprovante_abastecimento.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Comprovante de abastecimento é obrigatório")
    try:
        url = await uploader.save(comprovante_abastecimento, f"driver-{token.id}-abastecimento")
        abastecimento = AbastecimentoService(session).create_pending(
            token.id, date.today().isoformat(), url)
        return {
            "message": "Comprovante enviado com sucesso",
            "abastecimento_id": abastecimento.id,
            "comprovante_abastecimento": url,
        }
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error uploading abastecimento comprovante")
        raise HTTPException(status_code=500, detail="Internal server error")
