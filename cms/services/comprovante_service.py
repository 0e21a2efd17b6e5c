import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Type

from fastapi import HTTPException, status
from sqlalchemy import update
from sqlmodel import Session, SQLModel, select

from cms.models.abastecimento import Abastecimento
from cms.models.comprovante import (
    ComprovanteAbastecimento, ComprovanteCarga, ComprovanteDescarga, ComprovanteRead
)
from cms.models.driver import Driver
from cms.models.freight import Freight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolKind:
    """Descreve um pool: tabela do comprovante, coluna de atribuição e coluna de arquivo do alvo."""
    name: str
    receipt_model: Type[SQLModel]
    assignment_column: str
    target_model: Type[SQLModel]
    target_file_column: str
    target_label: str


CARGA = PoolKind(
    name="carga",
    receipt_model=ComprovanteCarga,
    assignment_column="assigned_freight_id",
    target_model=Freight,
    target_file_column="comprovante_carga",
    target_label="Frete",
)
DESCARGA = PoolKind(
    name="descarga",
    receipt_model=ComprovanteDescarga,
    assignment_column="assigned_freight_id",
    target_model=Freight,
    target_file_column="comprovante_descarga",
    target_label="Frete",
)
ABASTECIMENTO = PoolKind(
    name="abastecimento",
    receipt_model=ComprovanteAbastecimento,
    assignment_column="assigned_abastecimento_id",
    target_model=Abastecimento,
    target_file_column="comprovante_abastecimento",
    target_label="Abastecimento",
)

POOL_KINDS = {kind.name: kind for kind in (CARGA, DESCARGA, ABASTECIMENTO)}


def format_date_br(value: str) -> str:
    """YYYY-MM-DD -> dd/mm/yyyy"""
    return datetime.strptime(value, "%Y-%m-%d").strftime("%d/%m/%Y")


class ComprovantePool:
    """
    Pool de comprovantes enviados pelos motoristas e ainda não vinculados.

    Um comprovante só pode ser atribuído enquanto a coluna de atribuição for NULL;
    a reivindicação é um UPDATE condicional e o arquivo do alvo é gravado na mesma
    transação.
    """

    def __init__(self, session: Session, kind: PoolKind):
        self.session = session
        self.kind = kind
        self.model = kind.receipt_model
        self.assignment = getattr(kind.receipt_model, kind.assignment_column)

    def _to_read(self, receipt, driver_name: Optional[str], display_name: Optional[str] = None) -> ComprovanteRead:
        return ComprovanteRead(
            id=receipt.id,
            driver_id=receipt.driver_id,
            driver_name=driver_name,
            file_path=receipt.file_path,
            date=receipt.date,
            assigned_to=getattr(receipt, self.kind.assignment_column),
            display_name=display_name,
            created_at=receipt.created_at,
        )

    def submit(self, driver_id: int, file_path: str, date: str,
               assigned_to: Optional[int] = None, commit: bool = True):
        receipt = self.model(driver_id=driver_id, file_path=file_path, date=date)
        setattr(receipt, self.kind.assignment_column, assigned_to)
        self.session.add(receipt)
        if commit:
            self.session.commit()
            self.session.refresh(receipt)
        return receipt

    def get(self, receipt_id: int) -> Optional[ComprovanteRead]:
        row = self.session.exec(
            select(self.model, Driver.name)
            .join(Driver, Driver.id == self.model.driver_id)
            .where(self.model.id == receipt_id)
        ).first()
        if not row:
            return None
        receipt, driver_name = row
        return self._to_read(receipt, driver_name)

    def list_unassigned(self) -> List[ComprovanteRead]:
        """
        Comprovantes livres, do mais recente para o mais antigo, com rótulo de exibição.

        O rótulo é "<motorista> - dd/mm/yyyy"; quando o mesmo motorista tem mais de um
        comprovante na mesma data, acrescenta " - N", onde N é a posição pela ordem
        crescente de id dentro do grupo. É calculado a cada chamada, nunca gravado.
        """
        rows = self.session.exec(
            select(self.model, Driver.name)
            .join(Driver, Driver.id == self.model.driver_id)
            .where(self.assignment == None)
            .order_by(self.model.date.desc(), self.model.id.desc())
        ).all()

        groups: Dict[Tuple[int, str], List[int]] = defaultdict(list)
        for receipt, _ in rows:
            groups[(receipt.driver_id, receipt.date)].append(receipt.id)

        result = []
        for receipt, driver_name in rows:
            group = sorted(groups[(receipt.driver_id, receipt.date)])
            label = f"{driver_name} - {format_date_br(receipt.date)}"
            if len(group) > 1:
                label = f"{label} - {group.index(receipt.id) + 1}"
            result.append(self._to_read(receipt, driver_name, label))
        return result

    def find_by_target(self, target_id: int):
        return self.session.exec(
            select(self.model).where(self.assignment == target_id)
        ).first()

    def _claim(self, receipt_id: int, target_id: int) -> bool:
        result = self.session.execute(
            update(self.model)
            .where(self.model.id == receipt_id, self.assignment == None)
            .values({self.kind.assignment_column: target_id})
        )
        return result.rowcount == 1

    def _release(self, target_id: int) -> None:
        self.session.execute(
            update(self.model)
            .where(self.assignment == target_id)
            .values({self.kind.assignment_column: None})
        )
        target = self.session.get(self.kind.target_model, target_id)
        if target is not None:
            setattr(target, self.kind.target_file_column, None)
            self.session.add(target)

    def assign(self, receipt_id: int, target_id: int) -> Optional[ComprovanteRead]:
        """Retorna None se o comprovante não existe ou já está atribuído; o alvo fica intacto."""
        try:
            if not self._claim(receipt_id, target_id):
                self.session.rollback()
                return None
            receipt = self.session.get(self.model, receipt_id)
            target = self.session.get(self.kind.target_model, target_id)
            setattr(target, self.kind.target_file_column, receipt.file_path)
            self.session.add(target)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("Comprovante de %s %s atribuído a %s %s",
                    self.kind.name, receipt_id, self.kind.target_label, target_id)
        return self.get(receipt_id)

    def unassign(self, target_id: int) -> None:
        try:
            self._release(target_id)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("Comprovante de %s desvinculado de %s %s",
                    self.kind.name, self.kind.target_label, target_id)

    def reassign(self, receipt_id: int, target_id: int) -> ComprovanteRead:
        """
        Libera o comprovante atual do alvo e atribui o novo, numa única transação.
        Se a atribuição falhar, o comprovante anterior continua vinculado.
        """
        if self.session.get(self.kind.target_model, target_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{self.kind.target_label} não encontrado")
        try:
            self._release(target_id)
            if not self._claim(receipt_id, target_id):
                self.session.rollback()
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Comprovante não encontrado ou já atribuído")
            receipt = self.session.get(self.model, receipt_id)
            target = self.session.get(self.kind.target_model, target_id)
            setattr(target, self.kind.target_file_column, receipt.file_path)
            self.session.add(target)
            self.session.commit()
        except HTTPException:
            raise
        except Exception:
            self.session.rollback()
            raise
        logger.info("Comprovante de %s %s atribuído a %s %s",
                    self.kind.name, receipt_id, self.kind.target_label, target_id)
        return self.get(receipt_id)

    def delete_for_target(self, target_id: int) -> List[str]:
        """
        Remove os comprovantes vinculados ao alvo (sem commit) e retorna os
        caminhos dos arquivos, que só devem ser apagados depois do commit.
        """
        file_paths = []
        for receipt in self.session.exec(select(self.model).where(self.assignment == target_id)).all():
            file_paths.append(receipt.file_path)
            self.session.delete(receipt)
        return file_paths
