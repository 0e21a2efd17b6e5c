import logging

from fastapi import APIRouter, Depends, HTTPException, status

from cms.core.db import SessionDep
from cms.core.dependencies.auth import require_admin
from cms.models.client import ClientCreate, ClientRead, ClientUpdate
from cms.services.client_service import ClientService
from cms.services.statistics_service import StatisticsService

router = APIRouter(
    prefix="/api/admin/clients",
    tags=["ADMIN: clients"],
    dependencies=[Depends(require_admin)]
)


@router.get("/", description="""
Resumo por cliente: clientes cadastrados e clientes que só aparecem vinculados a motoristas.

Cada item traz `driver_count`, `freight_count`, `total_freight_value`, `abastecimento_count`,
`total_abastecimento_value`, `outros_insumos_count` e `total_outros_insumos_value`.
""")
def list_clients(session: SessionDep):
    return StatisticsService(session).clients_overview()


@router.post("/", response_model=ClientRead, status_code=status.HTTP_201_CREATED, description="""
Cadastra um cliente pelo nome da empresa.

- 409 quando o nome já existe na tabela de clientes ou já está vinculado a algum motorista.
""")
def create_client(data: ClientCreate, session: SessionDep):
    try:
        return ClientService(session).create_client(data)
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error creating client")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{client_name}", description="""
Detalhes do cliente: motoristas, fretes, abastecimentos, outros insumos e totais.
404 quando nenhum motorista está vinculado ao cliente.
""")
def client_details(client_name: str, session: SessionDep):
    return ClientService(session).client_details(client_name)


@router.put("/{client_id}", response_model=ClientRead, description="""
Atualiza os dados de contato e de acesso ao portal do cliente (CPF ou CNPJ e senha).
""")
def update_client(client_id: int, data: ClientUpdate, session: SessionDep):
    try:
        return ClientService(session).update_client(client_id, data)
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error updating client")
        raise HTTPException(status_code=500, detail="Internal server error")
