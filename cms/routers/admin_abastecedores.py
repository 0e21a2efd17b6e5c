from typing import List

from fastapi import APIRouter, Depends, status

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.abastecedor import AbastecedorCreate, AbastecedorRead, AbastecedorUpdate
from cms.services.abastecedor_service import AbastecedorService

router = APIRouter(
    prefix="/api/admin/abastecedores",
    tags=["ADMIN: abastecedores"],
    dependencies=[Depends(require_admin)]
)


@router.post("/", response_model=AbastecedorRead, status_code=status.HTTP_201_CREATED, description="""
Cadastra um abastecedor (frentista do posto conveniado).

**Body:** `{"name": "Carlos", "cpf": "111.444.777-35", "password": "1234", "phone": "11999998888"}`

- CPF com dígitos verificadores válidos e único (409).
""")
def create_abastecedor(data: AbastecedorCreate, session: SessionDep):
    return AbastecedorService(session).create_abastecedor(data)


@router.get("/", response_model=List[AbastecedorRead])
def list_abastecedores(session: SessionDep):
    return AbastecedorService(session).list_abastecedores()


@router.get("/{abastecedor_id}", response_model=AbastecedorRead)
def get_abastecedor(abastecedor_id: int, session: SessionDep):
    return AbastecedorService(session).get_abastecedor(abastecedor_id)


@router.put("/{abastecedor_id}", response_model=AbastecedorRead)
def update_abastecedor(abastecedor_id: int, data: AbastecedorUpdate, session: SessionDep):
    return AbastecedorService(session).update_abastecedor(abastecedor_id, data)


@router.delete("/{abastecedor_id}", description="""
Desativa o abastecedor; o login passa a ser recusado.
""")
def deactivate_abastecedor(abastecedor_id: int, session: SessionDep):
    AbastecedorService(session).deactivate_abastecedor(abastecedor_id)
    return {"message": "Abastecedor desativado com sucesso"}
