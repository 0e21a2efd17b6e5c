import logging
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from cms.models.abastecimento import Abastecimento
from cms.models.client import Client
from cms.models.driver import Driver
from cms.models.freight import Freight, RecordStatus
from cms.models.outros_insumo import OutrosInsumo

logger = logging.getLogger(__name__)


class StatisticsService:
    """Agregados calculados a cada requisição a partir das linhas atuais; nada é persistido."""

    def __init__(self, session: Session):
        self.session = session

    def _sum(self, column, *conditions) -> float:
        return self.session.exec(
            select(func.coalesce(func.sum(column), 0)).where(*conditions)
        ).one() or 0

    def _count(self, model, *conditions) -> int:
        return self.session.exec(
            select(func.count()).select_from(model).where(*conditions)
        ).one()

    def driver_stats(self, driver_id: int) -> dict:
        """
        Resumo do motorista.

        total_to_receive = fretes completos - fretes já pagos
                           - abastecimentos completos
                           - outros insumos completos
        """
        freight_done = (Freight.driver_id == driver_id, Freight.status == RecordStatus.COMPLETE)
        fuel_done = (Abastecimento.driver_id == driver_id, Abastecimento.status == RecordStatus.COMPLETE)
        misc_done = (OutrosInsumo.driver_id == driver_id, OutrosInsumo.status == RecordStatus.COMPLETE)

        freight_total = self._sum(Freight.total_value, *freight_done)
        fuel_total = self._sum(Abastecimento.total_value, *fuel_done)
        misc_total = self._sum(OutrosInsumo.total_value, *misc_done)
        total_received = self._sum(Freight.total_value, *freight_done, Freight.paid == True)

        return {
            "freights": {
                "count": self._count(Freight, *freight_done),
                "total_km": self._sum(Freight.km, *freight_done),
                "total_tons": self._sum(Freight.tons, *freight_done),
                "total_value": freight_total,
            },
            "abastecimentos": {
                "count": self._count(Abastecimento, *fuel_done),
                "total_liters": self._sum(Abastecimento.quantity, *fuel_done),
                "total_value": fuel_total,
            },
            "outros_insumos": {
                "count": self._count(OutrosInsumo, *misc_done),
                "total_quantity": self._sum(OutrosInsumo.quantity, *misc_done),
                "total_value": misc_total,
            },
            "total_received": total_received,
            "total_to_receive": freight_total - total_received - fuel_total - misc_total,
        }

    def _client_aggregate(self, client_name: str) -> dict:
        driver_ids = select(Driver.id).where(Driver.client == client_name)
        return {
            "client": client_name,
            "driver_count": self._count(Driver, Driver.client == client_name),
            "freight_count": self._count(Freight, Freight.driver_id.in_(driver_ids)),
            "total_freight_value": self._sum(Freight.total_value, Freight.driver_id.in_(driver_ids)),
            "abastecimento_count": self._count(Abastecimento, Abastecimento.driver_id.in_(driver_ids)),
            "total_abastecimento_value": self._sum(
                Abastecimento.total_value, Abastecimento.driver_id.in_(driver_ids)),
            "outros_insumos_count": self._count(OutrosInsumo, OutrosInsumo.driver_id.in_(driver_ids)),
            "total_outros_insumos_value": self._sum(
                OutrosInsumo.total_value, OutrosInsumo.driver_id.in_(driver_ids)),
        }

    def client_names(self) -> List[str]:
        registered = set(self.session.exec(select(Client.empresa)).all())
        from_drivers = set(self.session.exec(
            select(Driver.client).where(Driver.client != None, Driver.client != "")
        ).all())
        return sorted(registered | from_drivers)

    def clients_overview(self) -> List[dict]:
        """Clientes cadastrados e clientes que só aparecem vinculados a motoristas."""
        return [self._client_aggregate(name) for name in self.client_names()]

    def client_totals(self, freights: List, abastecimentos: List, outros_insumos: List,
                      driver_count: Optional[int] = None) -> dict:
        freight_value = sum(f.total_value or 0 for f in freights)
        fuel_value = sum(a.total_value or 0 for a in abastecimentos)
        misc_value = sum(o.total_value or 0 for o in outros_insumos)
        return {
            "driver_count": driver_count,
            "freight_count": len(freights),
            "total_freight_value": freight_value,
            "abastecimento_count": len(abastecimentos),
            "total_abastecimento_value": fuel_value,
            "outros_insumos_count": len(outros_insumos),
            "total_outros_insumos_value": misc_value,
            "total_to_receive": freight_value - fuel_value - misc_value,
        }

    @staticmethod
    def freight_summary(freights: List) -> dict:
        return {
            "total_freights": len(freights),
            "total_value": sum(f.total_value or 0 for f in freights),
            "total_km": sum(f.km or 0 for f in freights),
            "total_tons": sum(f.tons or 0 for f in freights),
        }
