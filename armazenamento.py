import logging
from typing import List, Optional

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from models import Colecao, VERSAO_SCHEMA, agora_utc

logger = logging.getLogger(__name__)


def criar_engine(database_url: str):
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    if database_url.startswith("sqlite"):
        # SQLite em memória precisa de uma única conexão compartilhada
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_size=10,             # Número de conexões para manter no pool
        max_overflow=2,           # Conexões extras permitidas em picos de uso
        pool_recycle=300,         # Recicla conexões a cada 5 minutos (300s)
        pool_pre_ping=True        # Verifica se a conexão está "viva" antes de usar
    )


class ArmazenamentoSQL:
    """
    Guarda cada coleção inteira (clientes, serviços, materiais, orçamentos)
    como um array JSON numa linha da tabela `colecao`. Cada gravação
    reescreve a coleção toda.
    """

    def __init__(self, engine):
        self.engine = engine

    def criar_tabelas(self):
        logger.info("Criando/Verificando tabelas no banco de dados...")
        SQLModel.metadata.create_all(self.engine)
        logger.info("Tabelas prontas.")

    def carregar(self, chave: str) -> Optional[List[dict]]:
        with Session(self.engine) as session:
            registro = session.get(Colecao, chave)
            if registro is None:
                return None
            if registro.versao_schema != VERSAO_SCHEMA:
                logger.warning(
                    "Coleção '%s' gravada na versão %s (atual: %s)",
                    chave, registro.versao_schema, VERSAO_SCHEMA,
                )
            return list(registro.dados or [])

    def salvar(self, chave: str, dados: List[dict]) -> None:
        with Session(self.engine) as session:
            registro = session.get(Colecao, chave)
            if registro is None:
                registro = Colecao(chave=chave, dados=dados)
            else:
                registro.dados = dados
                registro.versao_schema = VERSAO_SCHEMA
                registro.atualizado_em = agora_utc()
            session.add(registro)
            session.commit()
