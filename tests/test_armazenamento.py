from estado import (
    CHAVE_CLIENTES,
    CHAVE_MATERIAIS,
    CHAVE_ORCAMENTOS,
    CHAVE_SERVICOS,
    EstadoAplicacao,
)
from models import ClienteCreate, Colecao, VERSAO_SCHEMA
from sqlmodel import Session


def test_colecao_inexistente_retorna_none(armazenamento):
    assert armazenamento.carregar("mixto_v1_nada") is None


def test_salvar_e_carregar(armazenamento):
    dados = [{"id": "c1", "nome": "Acme"}, {"id": "c2", "nome": "Beta"}]
    armazenamento.salvar(CHAVE_CLIENTES, dados)
    assert armazenamento.carregar(CHAVE_CLIENTES) == dados

    # Cada gravação substitui a coleção inteira
    armazenamento.salvar(CHAVE_CLIENTES, [{"id": "c3", "nome": "Gama"}])
    assert armazenamento.carregar(CHAVE_CLIENTES) == [{"id": "c3", "nome": "Gama"}]


def test_colecao_gravada_com_versao(armazenamento):
    armazenamento.salvar(CHAVE_SERVICOS, [])
    with Session(armazenamento.engine) as session:
        registro = session.get(Colecao, CHAVE_SERVICOS)
    assert registro.versao_schema == VERSAO_SCHEMA


def test_primeira_carga_usa_dados_iniciais(armazenamento):
    estado = EstadoAplicacao(armazenamento)

    assert [c.id for c in estado.clientes] == ["c1"]
    assert [(s.nome, s.preco_base, s.unidade) for s in estado.servicos] == [("Reforma Geral", 2500, "global")]
    assert [(m.nome, m.preco_unitario, m.estoque) for m in estado.materiais] == [("Cimento CP-II", 45, 50)]
    assert estado.orcamentos == []
    assert armazenamento.carregar(CHAVE_MATERIAIS)[0]["unidade"] == "saco"


def test_colecao_vazia_gravada_nao_volta_a_semear(armazenamento):
    armazenamento.salvar(CHAVE_CLIENTES, [])
    estado = EstadoAplicacao(armazenamento)
    assert estado.clientes == []


def test_reabrir_recupera_alteracoes(armazenamento):
    estado = EstadoAplicacao(armazenamento)
    estado.criar_cliente(ClienteCreate(nome="Beta Construções", telefone="92 99999-0000"))
    estado.remover_servico("s1")

    reaberto = EstadoAplicacao(armazenamento)
    assert [c.nome for c in reaberto.clientes] == ["Cliente Demonstração", "Beta Construções"]
    assert reaberto.servicos == []
    assert armazenamento.carregar(CHAVE_ORCAMENTOS) is None


def test_regravacao_guarda_data_com_fuso(armazenamento):
    armazenamento.salvar(CHAVE_CLIENTES, [{"id": "c1", "nome": "Acme"}])
    armazenamento.salvar(CHAVE_CLIENTES, [{"id": "c1", "nome": "Acme Ltda"}])

    assert armazenamento.carregar(CHAVE_CLIENTES) == [{"id": "c1", "nome": "Acme Ltda"}]
    assert Colecao(chave="x").atualizado_em.tzinfo is not None
