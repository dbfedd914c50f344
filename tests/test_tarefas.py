import pytest

from erros import TarefaNaoEncontrada
from models import EtapaTarefa, Orcamento, StatusServico, StatusTarefa
from tarefas import (
    adicionar_tarefa,
    alterar_status_tarefa,
    calcular_progresso,
    quadro_acompanhamento,
    remover_tarefa,
    tarefas_por_etapa,
)


@pytest.fixture
def orcamento():
    return Orcamento(id="001/2026", cliente_id="c1", data="2026-03-01T10:00:00.000")


def test_descricao_vazia_nao_cria_tarefa(orcamento):
    assert adicionar_tarefa(orcamento, EtapaTarefa.PLANEJAMENTO, "") is None
    assert adicionar_tarefa(orcamento, EtapaTarefa.PLANEJAMENTO, "   ") is None
    assert orcamento.tarefas == []


def test_nova_tarefa_comeca_pendente(orcamento):
    tarefa = adicionar_tarefa(orcamento, EtapaTarefa.EXECUCAO, "Chapisco")
    assert tarefa.status == StatusTarefa.PENDENTE
    assert tarefa.etapa == EtapaTarefa.EXECUCAO
    assert orcamento.tarefas == [tarefa]


def test_progresso_sem_tarefas_e_zero(orcamento):
    assert calcular_progresso(orcamento) == 0


def test_progresso_metade(orcamento):
    tarefas = [adicionar_tarefa(orcamento, EtapaTarefa.EXECUCAO, f"Etapa {n}") for n in range(4)]
    alterar_status_tarefa(orcamento, tarefas[0].id, StatusTarefa.CONCLUIDO)
    alterar_status_tarefa(orcamento, tarefas[1].id, StatusTarefa.CONCLUIDO)
    alterar_status_tarefa(orcamento, tarefas[2].id, StatusTarefa.ATRASADO)

    assert calcular_progresso(orcamento) == 50


def test_progresso_completo_e_volta(orcamento):
    t1 = adicionar_tarefa(orcamento, EtapaTarefa.PLANEJAMENTO, "Medição")
    t2 = adicionar_tarefa(orcamento, EtapaTarefa.EXECUCAO, "Pintura")
    for tarefa in (t1, t2):
        alterar_status_tarefa(orcamento, tarefa.id, StatusTarefa.CONCLUIDO)
    assert calcular_progresso(orcamento) == 100

    alterar_status_tarefa(orcamento, t2.id, StatusTarefa.PENDENTE)
    assert calcular_progresso(orcamento) == 50


def test_remover_tarefa(orcamento):
    t1 = adicionar_tarefa(orcamento, EtapaTarefa.PLANEJAMENTO, "Medição")
    t2 = adicionar_tarefa(orcamento, EtapaTarefa.EXECUCAO, "Pintura")
    remover_tarefa(orcamento, t1.id)
    assert orcamento.tarefas == [t2]


def test_tarefa_inexistente(orcamento):
    with pytest.raises(TarefaNaoEncontrada):
        alterar_status_tarefa(orcamento, "nao-existe", StatusTarefa.CONCLUIDO)
    with pytest.raises(TarefaNaoEncontrada):
        remover_tarefa(orcamento, "nao-existe")


def test_tarefas_por_etapa(orcamento):
    medicao = adicionar_tarefa(orcamento, EtapaTarefa.PLANEJAMENTO, "Medição")
    pintura = adicionar_tarefa(orcamento, EtapaTarefa.EXECUCAO, "Pintura")

    grupos = tarefas_por_etapa(orcamento)
    assert grupos == {"Planejamento": [medicao], "Execução": [pintura]}


def test_quadro_separa_por_status():
    orcamentos = [
        Orcamento(id="001/2026", data="2026-01-01", status=StatusServico.PENDENTE),
        Orcamento(id="002/2026", data="2026-01-02", status=StatusServico.EM_ANDAMENTO),
        Orcamento(id="003/2026", data="2026-01-03", status=StatusServico.CANCELADO),
    ]
    quadro = quadro_acompanhamento(orcamentos)

    assert list(quadro)[:4] == ["Pendente", "Aprovado", "Em Andamento", "Concluído"]
    assert [o.id for o in quadro["Pendente"]] == ["001/2026"]
    assert [o.id for o in quadro["Em Andamento"]] == ["002/2026"]
    assert quadro["Aprovado"] == []
    assert [o.id for o in quadro["Cancelado"]] == ["003/2026"]


def test_tarefas_persistem_pelo_estado(estado, acme, armazenamento):
    from estado import EstadoAplicacao
    from models import OrcamentoCreate

    orcamento = estado.criar_orcamento_de_entrada(OrcamentoCreate(cliente_id=acme.id))
    tarefa = estado.adicionar_tarefa(orcamento.id, EtapaTarefa.PLANEJAMENTO, "Visita técnica")
    estado.alterar_status_tarefa(orcamento.id, tarefa.id, StatusTarefa.CONCLUIDO)

    recarregado = EstadoAplicacao(armazenamento, semear=False).obter_orcamento(orcamento.id)
    assert [(t.descricao, t.status) for t in recarregado.tarefas] == [("Visita técnica", StatusTarefa.CONCLUIDO)]
