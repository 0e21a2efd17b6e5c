import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.abastecimento import AbastecimentoCreate, AbastecimentoRead, AbastecimentoUpdate
from cms.models.freight import RecordStatus
from cms.services.abastecimento_service import AbastecimentoService
from cms.services.comprovante_service import ABASTECIMENTO, ComprovantePool
from cms.utils.uploads import uploader

router = APIRouter(
    prefix="/api/admin/abastecimentos",
    tags=["ADMIN: abastecimentos"],
    dependencies=[Depends(require_admin)]
)


@router.post("/", response_model=AbastecimentoRead, status_code=status.HTTP_201_CREATED, description="""
Registra um abastecimento (multipart/form-data).

**Campos:**
- `driver_id`, `date` (YYYY-MM-DD), `quantity` (litros) e `price_per_liter`: obrigatórios e positivos.
- `plate`, `client`: opcionais; sem eles valem a placa principal e o cliente do motorista.
- `comprovante_abastecimento`: imagem opcional, registrada no pool já vinculada ao abastecimento.
""")
async def create_abastecimento(
    session: SessionDep,
    driver_id: int = Form(...),
    date: str = Form(...),
    quantity: float = Form(...),
    price_per_liter: float = Form(...),
    plate: Optional[str] = Form(None),
    client: Optional[str] = Form(None),
    comprovante_abastecimento: Optional[UploadFile] = File(None),
):
    service = AbastecimentoService(session)
    try:
        file_url = None
        if comprovante_abastecimento is not None and comprovante_abastecimento.filename:
            file_url = await uploader.save(comprovante_abastecimento, f"abastecimento-{driver_id}")
        data = AbastecimentoCreate(
            driver_id=driver_id,
            date=date,
            quantity=quantity,
            price_per_liter=price_per_liter,
            plate=plate,
            client=client,
            comprovante_abastecimento=file_url,
        )
        return service.read(service.create_abastecimento(data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error creating abastecimento")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/", response_model=List[AbastecimentoRead], description="""
Lista os abastecimentos do mais recente para o mais antigo.

**Filtros:** `driver_id`, `date_from`, `date_to` e `status`.
""")
def list_abastecimentos(
    session: SessionDep,
    driver_id: Optional[int] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    status_filter: Optional[RecordStatus] = Query(None, alias="status"),
):
    return AbastecimentoService(session).list_abastecimentos(
        driver_id=driver_id, date_from=date_from, date_to=date_to, status_filter=status_filter)


@router.get("/{abastecimento_id}", response_model=AbastecimentoRead)
def get_abastecimento(abastecimento_id: int, session: SessionDep):
    service = AbastecimentoService(session)
    return service.read(service.get_abastecimento(abastecimento_id))


@router.put("/{abastecimento_id}", response_model=AbastecimentoRead, description="""
Atualização parcial. O total é recalculado e o registro passa a `complete` quando
litros e preço por litro forem maiores que zero.
""")
def update_abastecimento(abastecimento_id: int, data: AbastecimentoUpdate, session: SessionDep):
    service = AbastecimentoService(session)
    try:
        return service.read(service.update_abastecimento(abastecimento_id, data))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error updating abastecimento")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{abastecimento_id}/toggle-paid", response_model=AbastecimentoRead)
def toggle_paid(abastecimento_id: int, session: SessionDep):
    service = AbastecimentoService(session)
    return service.read(service.toggle_paid(abastecimento_id))


@router.post("/{abastecimento_id}/unassign-comprovante", description="""
Desvincula o comprovante do abastecimento; ele volta para o pool de comprovantes livres.
""")
def unassign_comprovante(abastecimento_id: int, session: SessionDep):
    AbastecimentoService(session).get_abastecimento(abastecimento_id)
    ComprovantePool(session, ABASTECIMENTO).unassign(abastecimento_id)
    return {"message": "Comprovante de abastecimento desvinculado"}


@router.delete("/{abastecimento_id}")
def delete_abastecimento(abastecimento_id: int, session: SessionDep):
    AbastecimentoService(session).delete_abastecimento(abastecimento_id)
    return {"message": "Abastecimento excluído com sucesso"}
