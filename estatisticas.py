from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel

from models import Cliente, Orcamento, StatusServico

MESES = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

STATUS_ATIVOS = {StatusServico.APROVADO, StatusServico.EM_ANDAMENTO}


class PontoGrafico(BaseModel):
    nome: str
    valor: float = 0.0


class EstatisticasDashboard(BaseModel):
    total_clientes: int
    total_orcamentos: int
    receita_total: float
    servicos_ativos: int
    receita_mensal: List[PontoGrafico]


def mes_da_data(data: str) -> Optional[int]:
    """ Índice 0-11 do mês, ou None se a data não puder ser lida. """
    if not data:
        return None
    try:
        return datetime.fromisoformat(data.replace("Z", "+00:00")).month - 1
    except (ValueError, TypeError, AttributeError):
        return None


def receita_mensal(orcamentos: Sequence[Orcamento]) -> List[PontoGrafico]:
    # Agrupa só pelo mês, sem considerar o ano
    serie = [PontoGrafico(nome=mes) for mes in MESES]
    for orcamento in orcamentos:
        mes = mes_da_data(orcamento.data)
        if mes is None:
            continue
        serie[mes].valor += orcamento.valor_total
    return serie


def calcular_estatisticas(clientes: Sequence[Cliente], orcamentos: Sequence[Orcamento]) -> EstatisticasDashboard:
    # TODO: confirmar com o dono do negócio se cancelados e pendentes devem entrar na receita
    return EstatisticasDashboard(
        total_clientes=len(clientes),
        total_orcamentos=len(orcamentos),
        receita_total=sum(o.valor_total for o in orcamentos),
        servicos_ativos=sum(1 for o in orcamentos if o.status in STATUS_ATIVOS),
        receita_mensal=receita_mensal(orcamentos),
    )
