import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from cms.core.config import settings
from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.freight import FreightCreate, FreightRead, FreightUpdate, RecordStatus
from cms.services.comprovante_service import CARGA, DESCARGA, ComprovantePool
from cms.services.freight_service import FreightService
from cms.utils.uploads import uploader

router = APIRouter(
    prefix="/api/admin/freights",
    tags=["ADMIN: freights"],
    dependencies=[Depends(require_admin)]
)


async def _save_optional(file: Optional[UploadFile], prefix: str, **kwargs) -> Optional[str]:
    if file is None or not file.filename:
        return None
    return await uploader.save(file, prefix, **kwargs)


@router.post("/", response_model=FreightRead, status_code=status.HTTP_201_CREATED, description="""
Cria um frete (multipart/form-data).

**Campos:**
- `driver_id`, `date` (YYYY-MM-DD), `km`, `tons`, `price_per_km_ton`: obrigatórios e positivos.
- `price_per_km_ton_transportadora`, `client`, `plate`: opcionais. Sem `plate`, usa a placa principal do motorista.
- `comprovante_carga`, `comprovante_descarga`, `comprovante_recebimento`: imagens opcionais.

Os totais são sempre calculados no servidor. Sem `client` o frete fica `pending`.
""")
async def create_freight(
    session: SessionDep,
    driver_id: int = Form(...),
    date: str = Form(...),
    km: float = Form(...),
    tons: float = Form(...),
    price_per_km_ton: float = Form(...),
    price_per_km_ton_transportadora: Optional[float] = Form(None),
    client: Optional[str] = Form(None),
    plate: Optional[str] = Form(None),
    comprovante_carga: Optional[UploadFile] = File(None),
    comprovante_descarga: Optional[UploadFile] = File(None),
    comprovante_recebimento: Optional[UploadFile] = File(None),
):
    service = FreightService(session)
    try:
        data = FreightCreate(
            driver_id=driver_id,
            date=date,
            km=km,
            tons=tons,
            price_per_km_ton=price_per_km_ton,
            price_per_km_ton_transportadora=price_per_km_ton_transportadora,
            client=client,
            plate=plate,
            comprovante_carga=await _save_optional(comprovante_carga, f"freight-{driver_id}-carga"),
            comprovante_descarga=await _save_optional(comprovante_descarga, f"freight-{driver_id}-descarga"),
            comprovante_recebimento=await _save_optional(
                comprovante_recebimento, f"freight-{driver_id}-recebimento"),
        )
        return service.read(service.create_freight(data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error creating freight")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/", response_model=List[FreightRead], description="""
Lista os fretes do mais recente para o mais antigo.

**Filtros:** `driver_id`, `date_from`, `date_to` (YYYY-MM-DD) e `status` (`pending` ou `complete`).
""")
def list_freights(
    session: SessionDep,
    driver_id: Optional[int] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    status_filter: Optional[RecordStatus] = Query(None, alias="status"),
):
    return FreightService(session).list_freights(
        driver_id=driver_id, date_from=date_from, date_to=date_to, status_filter=status_filter)


@router.get("/unpaid-totals", description="""
Soma dos fretes completos ainda não pagos, agrupada por motorista.
""")
def unpaid_totals(session: SessionDep):
    return FreightService(session).unpaid_totals()


@router.get("/{freight_id}", response_model=FreightRead)
def get_freight(freight_id: int, session: SessionDep):
    service = FreightService(session)
    return service.read(service.get_freight(freight_id))


@router.put("/{freight_id}", response_model=FreightRead, description="""
Atualização parcial do frete (multipart/form-data). Só os campos enviados são alterados.

- Valores numéricos não podem ser negativos.
- Os totais são recalculados e o frete passa a `complete` quando km, toneladas,
  valor por km x tonelada e cliente estiverem preenchidos.
- `documento_frete` aceita PDF ou imagem de até 15MB.
""")
async def update_freight(
    freight_id: int,
    session: SessionDep,
    driver_id: Optional[int] = Form(None),
    date: Optional[str] = Form(None),
    km: Optional[float] = Form(None),
    tons: Optional[float] = Form(None),
    price_per_km_ton: Optional[float] = Form(None),
    price_per_km_ton_transportadora: Optional[float] = Form(None),
    client: Optional[str] = Form(None),
    plate: Optional[str] = Form(None),
    comprovante_carga: Optional[UploadFile] = File(None),
    comprovante_descarga: Optional[UploadFile] = File(None),
    comprovante_recebimento: Optional[UploadFile] = File(None),
    documento_frete: Optional[UploadFile] = File(None),
):
    service = FreightService(session)
    try:
        freight = service.get_freight(freight_id)
        prefix = f"freight-{freight.driver_id}"
        fields = {
            "driver_id": driver_id,
            "date": date,
            "km": km,
            "tons": tons,
            "price_per_km_ton": price_per_km_ton,
            "price_per_km_ton_transportadora": price_per_km_ton_transportadora,
            "client": client,
            "plate": plate,
            "comprovante_carga": await _save_optional(comprovante_carga, f"{prefix}-carga"),
            "comprovante_descarga": await _save_optional(comprovante_descarga, f"{prefix}-descarga"),
            "comprovante_recebimento": await _save_optional(comprovante_recebimento, f"{prefix}-recebimento"),
            "documento_frete": await _save_optional(
                documento_frete, f"{prefix}-documento", allow_pdf=True,
                max_size_mb=settings.MAX_FREIGHT_UPLOAD_SIZE_MB),
        }
        data = FreightUpdate(**{k: v for k, v in fields.items() if v is not None})
        return service.read(service.update_freight(freight_id, data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error updating freight")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{freight_id}/toggle-paid", response_model=FreightRead, description="""
Inverte o status de pagamento ao motorista.
""")
def toggle_paid(freight_id: int, session: SessionDep):
    service = FreightService(session)
    return service.read(service.toggle_paid(freight_id))


@router.patch("/{freight_id}/toggle-client-paid", response_model=FreightRead, description="""
Inverte o status de pagamento do cliente. Não altera o pagamento ao motorista.
""")
def toggle_client_paid(freight_id: int, session: SessionDep):
    service = FreightService(session)
    return service.read(service.toggle_client_paid(freight_id))


@router.post("/{freight_id}/unassign-carga", description="""
Desvincula o comprovante de carga do frete; ele volta para o pool de comprovantes livres.
""")
def unassign_carga(freight_id: int, session: SessionDep):
    FreightService(session).get_freight(freight_id)
    ComprovantePool(session, CARGA).unassign(freight_id)
    return {"message": "Comprovante de carga desvinculado"}


@router.post("/{freight_id}/unassign-descarga", description="""
Desvincula o comprovante de descarga do frete; ele volta para o pool de comprovantes livres.
""")
def unassign_descarga(freight_id: int, session: SessionDep):
    FreightService(session).get_freight(freight_id)
    ComprovantePool(session, DESCARGA).unassign(freight_id)
    return {"message": "Comprovante de descarga desvinculado"}


@router.delete("/{freight_id}", description="""
Exclui o frete junto com os comprovantes de carga e descarga vinculados a ele.
""")
def delete_freight(freight_id: int, session: SessionDep):
    FreightService(session).delete_freight(freight_id)
    return {"message": "Frete excluído com sucesso"}
