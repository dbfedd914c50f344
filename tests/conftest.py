import os

import pytest

# O app cria o engine na importação; os testes nunca tocam o banco em disco
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ASSISTENTE_API_KEY", None)

from armazenamento import ArmazenamentoSQL, criar_engine
from estado import EstadoAplicacao
from models import ClienteCreate, MaterialCreate, ServicoCreate


@pytest.fixture(scope="function")
def armazenamento():
    """Cria uma DB SQLite em memória limpa por teste."""
    engine = criar_engine("sqlite://")
    arm = ArmazenamentoSQL(engine)
    arm.criar_tabelas()
    try:
        yield arm
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def estado(armazenamento):
    return EstadoAplicacao(armazenamento, semear=False)


@pytest.fixture
def acme(estado):
    return estado.criar_cliente(ClienteCreate(nome="Acme", telefone="(92) 98809-1790", documento="12.345.678/0001-90"))


@pytest.fixture
def pintura(estado):
    return estado.criar_servico(ServicoCreate(nome="Pintura", preco_base=100, unidade="m²"))


@pytest.fixture
def cimento(estado):
    return estado.criar_material(MaterialCreate(nome="Cimento CP-II", preco_unitario=45, estoque=50, unidade="saco"))


@pytest.fixture
def client(estado):
    from fastapi.testclient import TestClient

    from app import app, get_estado

    app.dependency_overrides[get_estado] = lambda: estado
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
