from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.comprovante import ComprovanteRead
from cms.services.comprovante_service import POOL_KINDS, ComprovantePool

router = APIRouter(
    prefix="/api/admin",
    tags=["ADMIN: comprovantes"],
    dependencies=[Depends(require_admin)]
)


class AssignComprovanteRequest(BaseModel):
    freight_id: Optional[int] = None
    abastecimento_id: Optional[int] = None


def _pool(session, kind: str) -> ComprovantePool:
    if kind not in POOL_KINDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Tipo de comprovante desconhecido")
    return ComprovantePool(session, POOL_KINDS[kind])


@router.get("/comprovantes-{kind}", response_model=List[ComprovanteRead], description="""
Lista os comprovantes ainda não vinculados (`kind`: `carga`, `descarga` ou `abastecimento`).

Cada item traz `display_name` no formato "<motorista> - dd/mm/aaaa"; quando o mesmo
motorista enviou mais de um comprovante na mesma data, recebe o sufixo " - N".
""")
def list_unassigned(kind: str, session: SessionDep):
    return _pool(session, kind).list_unassigned()


@router.post("/comprovantes-{kind}/{comprovante_id}/assign", response_model=ComprovanteRead, description="""
Vincula um comprovante livre a um frete (`carga`, `descarga`) ou abastecimento.

**Body:** `{"freight_id": 10}` ou `{"abastecimento_id": 4}`

O comprovante que estava vinculado ao alvo volta para o pool. Se o comprovante
escolhido já foi vinculado por outra requisição, responde 404 e nada muda.
""")
def assign_comprovante(kind: str, comprovante_id: int, data: AssignComprovanteRequest, session: SessionDep):
    pool = _pool(session, kind)
    target_id = data.abastecimento_id if pool.kind.name == "abastecimento" else data.freight_id
    if target_id is None:
        field = "abastecimento_id" if pool.kind.name == "abastecimento" else "freight_id"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} é obrigatório")
    return pool.reassign(comprovante_id, target_id)
