from typing import Optional


def compute_total(*operands: Optional[float]) -> float:
    """
    Produto dos operandos, com 0 para qualquer operando ausente.

    Fretes usam km x toneladas x valor; abastecimentos e outros insumos
    usam quantidade x preço unitário. O resultado nunca é None.
    """
    total = 1.0
    for operand in operands:
        total *= operand or 0
    return total


def freight_totals(km: Optional[float], tons: Optional[float],
                   price_per_km_ton: Optional[float],
                   price_per_km_ton_transportadora: Optional[float]) -> tuple[float, float]:
    return (
        compute_total(km, tons, price_per_km_ton),
        compute_total(km, tons, price_per_km_ton_transportadora),
    )
