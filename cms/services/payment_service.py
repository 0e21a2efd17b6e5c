import json
import logging
from typing import List, Optional, Tuple, Type

from fastapi import HTTPException, status
from sqlmodel import Session, SQLModel, select

from cms.models.abastecimento import Abastecimento
from cms.models.driver import Driver
from cms.models.freight import Freight
from cms.models.outros_insumo import OutrosInsumo
from cms.models.payment import Payment, PaymentRead
from cms.utils.validators import is_positive_number

logger = logging.getLogger(__name__)

# Coluna de IDs do pagamento -> tabela cujo flag paid é alterado
SETTLED_COLUMNS: Tuple[Tuple[str, Type[SQLModel]], ...] = (
    ("freight_ids", Freight),
    ("abastecimento_ids", Abastecimento),
    ("outros_insumo_ids", OutrosInsumo),
)


def to_payment_read(payment: Payment, driver: Optional[Driver]) -> PaymentRead:
    return PaymentRead(
        id=payment.id,
        driver_id=payment.driver_id,
        driver_name=driver.name if driver else None,
        driver_plate=driver.plate if driver else None,
        date_range=payment.date_range,
        total_value=payment.total_value,
        comprovante_path=payment.comprovante_path,
        freight_ids=payment.id_list("freight_ids"),
        abastecimento_ids=payment.id_list("abastecimento_ids"),
        outros_insumo_ids=payment.id_list("outros_insumo_ids"),
        created_at=payment.created_at,
    )


class PaymentService:
    """
    Liquidação dos pagamentos aos motoristas.

    Criar um pagamento marca como pagos todos os fretes, abastecimentos e outros
    insumos referenciados; excluir desfaz as marcas. Cada operação é uma única
    transação: ou todas as linhas mudam, ou nenhuma.

    Nada impede que o mesmo ID apareça em dois pagamentos; excluir um deles
    desmarca a linha mesmo que o outro continue existindo.
    """

    def __init__(self, session: Session):
        self.session = session

    def _set_paid(self, payment: Payment, paid: bool) -> None:
        for column, model in SETTLED_COLUMNS:
            for record_id in payment.id_list(column):
                record = self.session.get(model, record_id)
                if record is None:
                    logger.warning("Pagamento %s: %s %s não encontrado, ignorado",
                                   payment.id, model.__name__, record_id)
                    continue
                record.paid = paid
                self.session.add(record)

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.session.get(Payment, payment_id)
        if not payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Pagamento não encontrado")
        return payment

    def read(self, payment: Payment) -> PaymentRead:
        return to_payment_read(payment, self.session.get(Driver, payment.driver_id))

    def create_payment(
        self,
        driver_id: int,
        date_range: str,
        total_value: float,
        freight_ids: Optional[List[int]] = None,
        abastecimento_ids: Optional[List[int]] = None,
        outros_insumo_ids: Optional[List[int]] = None,
        comprovante_path: Optional[str] = None,
    ) -> Payment:
        if not is_positive_number(total_value):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="total_value deve ser um número positivo")
        if not self.session.get(Driver, driver_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Motorista não encontrado")
        try:
            payment = Payment(
                driver_id=driver_id,
                date_range=date_range,
                total_value=total_value,
                comprovante_path=comprovante_path,
                freight_ids=json.dumps(freight_ids or []),
                abastecimento_ids=json.dumps(abastecimento_ids or []),
                outros_insumo_ids=json.dumps(outros_insumo_ids or []),
            )
            self.session.add(payment)
            self.session.flush()
            self._set_paid(payment, True)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(payment)
        logger.info("Pagamento %s criado para o motorista %s (%.2f)", payment.id, driver_id, total_value)
        return payment

    def delete_payment(self, payment_id: int) -> None:
        payment = self.get_payment(payment_id)
        try:
            self._set_paid(payment, False)
            self.session.delete(payment)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("Pagamento %s excluído e itens desmarcados", payment_id)

    def update_comprovante(self, payment_id: int, comprovante_path: str) -> Payment:
        payment = self.get_payment(payment_id)
        payment.comprovante_path = comprovante_path
        self.session.add(payment)
        self.session.commit()
        self.session.refresh(payment)
        return payment

    def list_payments(self, driver_id: Optional[int] = None) -> List[PaymentRead]:
        query = select(Payment, Driver).join(Driver, Driver.id == Payment.driver_id)
        if driver_id is not None:
            query = query.where(Payment.driver_id == driver_id)
        query = query.order_by(Payment.created_at.desc(), Payment.id.desc())
        return [to_payment_read(payment, driver) for payment, driver in self.session.exec(query).all()]

