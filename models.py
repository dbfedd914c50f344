import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel, JSON, Column

# Versão do formato gravado em cada coleção
VERSAO_SCHEMA = 1


def gerar_id() -> str:
    return uuid.uuid4().hex


def agora_utc() -> datetime:
    # A coluna exige datetime com fuso
    return datetime.now(timezone.utc)


# --- Enums de status ---

class StatusServico(str, Enum):
    PENDENTE = "Pendente"
    APROVADO = "Aprovado"
    EM_ANDAMENTO = "Em Andamento"
    CONCLUIDO = "Concluído"
    CANCELADO = "Cancelado"


class StatusTarefa(str, Enum):
    PENDENTE = "Pendente"
    CONCLUIDO = "Concluído"
    ATRASADO = "Atrasado"


class EtapaTarefa(str, Enum):
    PLANEJAMENTO = "Planejamento"
    EXECUCAO = "Execução"


class TipoItem(str, Enum):
    SERVICO = "servico"
    MATERIAL = "material"


# --- Tabela de armazenamento (uma linha por coleção) ---
class Colecao(SQLModel, table=True):
    chave: str = Field(primary_key=True)
    dados: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    versao_schema: int = Field(default=VERSAO_SCHEMA)
    atualizado_em: datetime = Field(default_factory=agora_utc)


# --- Cadastros ---

class Cliente(SQLModel):
    id: str = Field(default_factory=gerar_id)
    nome: str
    email: str = ""
    telefone: str = ""
    endereco: str = ""
    documento: str = ""  # CPF ou CNPJ


class Servico(SQLModel):
    id: str = Field(default_factory=gerar_id)
    nome: str
    descricao: str = ""
    preco_base: float = 0.0
    unidade: str = "un"  # ex.: m², hora, global


class Material(SQLModel):
    id: str = Field(default_factory=gerar_id)
    nome: str
    preco_unitario: float = 0.0
    estoque: float = 0.0  # apenas informativo
    unidade: str = "un"


# --- Orçamento ---

class ItemOrcamento(SQLModel):
    # catalogo_id vazio = linha ainda sem serviço/material escolhido
    catalogo_id: str = ""
    quantidade: float = 1
    preco_unitario: float = 0.0


class TarefaProjeto(SQLModel):
    id: str = Field(default_factory=gerar_id)
    descricao: str
    etapa: EtapaTarefa
    status: StatusTarefa = StatusTarefa.PENDENTE


class Orcamento(SQLModel):
    id: str
    cliente_id: str = ""
    itens_servico: List[ItemOrcamento] = []
    itens_material: List[ItemOrcamento] = []
    valor_total: float = 0.0
    data: str
    status: StatusServico = StatusServico.PENDENTE
    descricao: str = ""
    tarefas: List[TarefaProjeto] = []


class ContadorOrcamento(SQLModel):
    ano: int
    ultimo: int = 0


# --- Comandos recebidos pela API ---

class ClienteCreate(BaseModel):
    nome: str
    email: str = ""
    telefone: str = ""
    endereco: str = ""
    documento: str = ""


class ClienteUpdate(BaseModel):
    nome: Optional[str] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    endereco: Optional[str] = None
    documento: Optional[str] = None


class ServicoCreate(BaseModel):
    nome: str
    descricao: str = ""
    preco_base: float = 0.0
    unidade: str = "un"


class ServicoUpdate(BaseModel):
    nome: Optional[str] = None
    descricao: Optional[str] = None
    preco_base: Optional[float] = None
    unidade: Optional[str] = None


class MaterialCreate(BaseModel):
    nome: str
    preco_unitario: float = 0.0
    estoque: float = 0.0
    unidade: str = "un"


class MaterialUpdate(BaseModel):
    nome: Optional[str] = None
    preco_unitario: Optional[float] = None
    estoque: Optional[float] = None
    unidade: Optional[str] = None


class ItemOrcamentoEntrada(BaseModel):
    """
    Linha de orçamento como chega do formulário. Sem preço informado,
    o preço é copiado do catálogo no momento da seleção.
    """
    catalogo_id: str = ""
    quantidade: float = 1
    preco_unitario: Optional[float] = None


class OrcamentoCreate(BaseModel):
    cliente_id: str = ""
    descricao: str = ""
    itens_servico: List[ItemOrcamentoEntrada] = []
    itens_material: List[ItemOrcamentoEntrada] = []


class OrcamentoUpdate(BaseModel):
    cliente_id: Optional[str] = None
    descricao: Optional[str] = None
    status: Optional[StatusServico] = None
    itens_servico: Optional[List[ItemOrcamentoEntrada]] = None
    itens_material: Optional[List[ItemOrcamentoEntrada]] = None


class StatusUpdate(BaseModel):
    status: StatusServico


class TarefaCreate(BaseModel):
    etapa: EtapaTarefa
    descricao: str


class TarefaStatusUpdate(BaseModel):
    status: StatusTarefa


class PerguntaAssistente(BaseModel):
    pergunta: str
