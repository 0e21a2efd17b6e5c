import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.payment import PaymentRead
from cms.services.payment_service import PaymentService
from cms.utils.uploads import uploader
from cms.utils.validators import is_positive_number

router = APIRouter(
    prefix="/api/admin/payments",
    tags=["ADMIN: payments"],
    dependencies=[Depends(require_admin)]
)


def parse_id_list(raw: Optional[str], field_name: str) -> List[int]:
    """Converte o campo do formulário (array JSON) em lista de IDs; 400 se malformado."""
    if raw is None or not raw.strip():
        return []
    try:
        values = json.loads(raw)
        if not isinstance(values, list):
            raise ValueError(field_name)
        return [int(value) for value in values]
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field_name} deve ser um array JSON de IDs")


@router.post("/", response_model=PaymentRead, status_code=status.HTTP_201_CREATED, description="""
Registra um pagamento ao motorista (multipart/form-data).

**Campos:**
- `driver_id`, `date_range` (ex: "01/03/2025 - 15/03/2025"), `total_value` (positivo): obrigatórios.
- `freight_ids`, `abastecimento_ids`, `outros_insumo_ids`: arrays JSON, ex: `[1, 2, 3]`.
- `comprovante`: imagem ou PDF do comprovante de pagamento.

Todos os itens referenciados são marcados como pagos na mesma transação que cria o pagamento.
IDs inexistentes são ignorados.
""")
async def create_payment(
    session: SessionDep,
    driver_id: int = Form(...),
    date_range: str = Form(...),
    total_value: float = Form(...),
    freight_ids: Optional[str] = Form(None),
    abastecimento_ids: Optional[str] = Form(None),
    outros_insumo_ids: Optional[str] = Form(None),
    comprovante: Optional[UploadFile] = File(None),
):
    service = PaymentService(session)
    try:
        ids = {
            "freight_ids": parse_id_list(freight_ids, "freight_ids"),
            "abastecimento_ids": parse_id_list(abastecimento_ids, "abastecimento_ids"),
            "outros_insumo_ids": parse_id_list(outros_insumo_ids, "outros_insumo_ids"),
        }
        if not date_range.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="date_range é obrigatório")
        if not is_positive_number(total_value):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="total_value deve ser um número positivo")
        comprovante_path = None
        if comprovante is not None and comprovante.filename:
            comprovante_path = await uploader.save(comprovante, f"payment-{driver_id}", allow_pdf=True)
        payment = service.create_payment(
            driver_id, date_range, total_value, comprovante_path=comprovante_path, **ids)
        return service.read(payment)
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error creating payment")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/", response_model=List[PaymentRead], description="""
Lista os pagamentos, do mais recente para o mais antigo. Filtro opcional `driver_id`.
""")
def list_payments(session: SessionDep, driver_id: Optional[int] = Query(None)):
    return PaymentService(session).list_payments(driver_id=driver_id)


@router.get("/{payment_id}", response_model=PaymentRead)
def get_payment(payment_id: int, session: SessionDep):
    service = PaymentService(session)
    return service.read(service.get_payment(payment_id))


@router.put("/{payment_id}", response_model=PaymentRead, description="""
Substitui o comprovante do pagamento.
""")
async def update_payment_comprovante(
    payment_id: int,
    session: SessionDep,
    comprovante: UploadFile = File(...),
):
    service = PaymentService(session)
    try:
        payment = service.get_payment(payment_id)
        path = await uploader.save(comprovante, f"payment-{payment.driver_id}", allow_pdf=True)
        return service.read(service.update_comprovante(payment_id, path))
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error replacing payment comprovante")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{payment_id}", description="""
Exclui o pagamento e desmarca como não pagos todos os itens que ele liquidou.
""")
def delete_payment(payment_id: int, session: SessionDep):
    PaymentService(session).delete_payment(payment_id)
    return {"message": "Pagamento excluído com sucesso"}
