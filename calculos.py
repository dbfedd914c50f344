from typing import Dict, Iterable

from models import ItemOrcamento, Orcamento


def format_brl(value):
    if value is None or not isinstance(value, (int, float)):
        return "R$ 0,00"
    return f"R$ {value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def subtotal(item: ItemOrcamento) -> float:
    return item.quantidade * item.preco_unitario


def calcular_total(itens: Iterable[ItemOrcamento]) -> float:
    # Lista vazia soma 0
    return sum(subtotal(item) for item in itens)


def total_orcamento(itens_servico: Iterable[ItemOrcamento], itens_material: Iterable[ItemOrcamento]) -> float:
    return calcular_total(itens_servico) + calcular_total(itens_material)


def totais_por_tipo(orcamento: Orcamento) -> Dict[str, float]:
    """ Totais separados de serviços e materiais, usados na listagem e no PDF. """
    return {
        "total_servicos": calcular_total(orcamento.itens_servico),
        "total_materiais": calcular_total(orcamento.itens_material),
    }
