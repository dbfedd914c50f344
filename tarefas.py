import logging
from typing import Dict, List, Optional, Sequence

from erros import TarefaNaoEncontrada
from models import (
    EtapaTarefa,
    Orcamento,
    StatusServico,
    StatusTarefa,
    TarefaProjeto,
)

logger = logging.getLogger(__name__)

# Colunas do quadro de acompanhamento, na ordem em que aparecem
COLUNAS_QUADRO = [
    StatusServico.PENDENTE,
    StatusServico.APROVADO,
    StatusServico.EM_ANDAMENTO,
    StatusServico.CONCLUIDO,
]


def adicionar_tarefa(orcamento: Orcamento, etapa: EtapaTarefa, descricao: str) -> Optional[TarefaProjeto]:
    """
    Acrescenta uma etapa ao checklist do orçamento. Descrição vazia (ou só
    espaços) não cria nada e devolve None.
    """
    if not descricao or not descricao.strip():
        return None

    tarefa = TarefaProjeto(descricao=descricao, etapa=EtapaTarefa(etapa), status=StatusTarefa.PENDENTE)
    orcamento.tarefas.append(tarefa)
    return tarefa


def _buscar_tarefa(orcamento: Orcamento, tarefa_id: str) -> TarefaProjeto:
    for tarefa in orcamento.tarefas:
        if tarefa.id == tarefa_id:
            return tarefa
    raise TarefaNaoEncontrada(tarefa_id)


def alterar_status_tarefa(orcamento: Orcamento, tarefa_id: str, status: StatusTarefa) -> TarefaProjeto:
    # Sem ordem obrigatória: uma tarefa concluída pode voltar a pendente
    tarefa = _buscar_tarefa(orcamento, tarefa_id)
    tarefa.status = StatusTarefa(status)
    return tarefa


def remover_tarefa(orcamento: Orcamento, tarefa_id: str) -> TarefaProjeto:
    tarefa = _buscar_tarefa(orcamento, tarefa_id)
    orcamento.tarefas.remove(tarefa)
    return tarefa


def calcular_progresso(orcamento: Orcamento) -> float:
    if not orcamento.tarefas:
        return 0.0
    concluidas = sum(1 for t in orcamento.tarefas if t.status == StatusTarefa.CONCLUIDO)
    return concluidas / len(orcamento.tarefas) * 100


def tarefas_por_etapa(orcamento: Orcamento) -> Dict[str, List[TarefaProjeto]]:
    return {
        etapa.value: [t for t in orcamento.tarefas if t.etapa == etapa]
        for etapa in EtapaTarefa
    }


def quadro_acompanhamento(orcamentos: Sequence[Orcamento]) -> Dict[str, List[Orcamento]]:
    """
    Agrupa os orçamentos por status para o quadro (kanban). Cancelados ficam
    numa chave própria, fora das colunas.
    """
    quadro = {status.value: [] for status in COLUNAS_QUADRO}
    quadro[StatusServico.CANCELADO.value] = []
    for orcamento in orcamentos:
        quadro[StatusServico(orcamento.status).value].append(orcamento)
    return quadro
