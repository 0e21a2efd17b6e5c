from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from cms.core.db import SessionDep
from cms.core.dependencies.auth import TokenData, require_cliente
from cms.models.client import Client, ClientRead
from cms.services.client_service import ClientService

router = APIRouter(prefix="/api/cliente", tags=["CLIENTE"])


def current_client(session: SessionDep, token: TokenData = Depends(require_cliente)) -> Client:
    return ClientService(session).get_client(token.id)


@router.get("/profile", response_model=ClientRead)
def get_profile(client: Client = Depends(current_client)):
    return client


@router.get("/freights", description="""
Fretes da empresa do cliente (comparação sem diferenciar maiúsculas), com totais do período.

**Filtros:** `date_from`, `date_to` (YYYY-MM-DD).
""")
def list_freights(
    session: SessionDep,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    client: Client = Depends(current_client)
):
    return ClientService(session).client_freights(client, date_from=date_from, date_to=date_to)


@router.get("/stats")
def get_stats(session: SessionDep, client: Client = Depends(current_client)):
    return ClientService(session).client_stats(client)


@router.get("/active-freights", response_model=List[dict], description="""
Fretes pendentes com rastreamento ligado, com a última posição conhecida do motorista.
""")
def active_freights(session: SessionDep, client: Client = Depends(current_client)):
    return ClientService(session).active_freights(client)


@router.get("/freight/{freight_id}/location", description="""
Posição atual do motorista de um frete da empresa. 403 quando o frete é de outro cliente.
""")
def freight_location(freight_id: int, session: SessionDep, client: Client = Depends(current_client)):
    return ClientService(session).freight_location(client, freight_id)
