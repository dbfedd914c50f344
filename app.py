import io
import locale
import logging
import os
from typing import List

# --- Imports do FastAPI e bibliotecas ---
from fastapi import FastAPI, HTTPException, status, Request, Depends, Response, Query
from fastapi.responses import JSONResponse, StreamingResponse
from dotenv import load_dotenv

# --- Import dos modelos e do núcleo ---
from models import (
    Cliente, ClienteCreate, ClienteUpdate,
    Servico, ServicoCreate, ServicoUpdate,
    Material, MaterialCreate, MaterialUpdate,
    Orcamento, OrcamentoCreate, OrcamentoUpdate, StatusUpdate,
    TarefaProjeto, TarefaCreate, TarefaStatusUpdate,
    PerguntaAssistente,
)
from armazenamento import ArmazenamentoSQL, criar_engine
from estado import EstadoAplicacao
from erros import RegistroNaoEncontrado, ErroGeracaoRelatorio
from calculos import totais_por_tipo
from estatisticas import EstatisticasDashboard
from tarefas import calcular_progresso, tarefas_por_etapa
from compartilhamento import gerar_texto_resumo, gerar_link_whatsapp
from assistente import perguntar_assistente, RespostaAssistente

from pdf_models.modelo_orcamento import gerar_pdf_orcamento

# --- CONFIGURAÇÃO INICIAL E CONSTANTES ---
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

try:
    locale.setlocale(locale.LC_ALL, 'pt_BR.UTF-8')
except locale.Error:
    logger.warning("Localidade 'pt_BR.UTF-8' não encontrada.")

# --- BANCO DE DADOS ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./mixto.db")

engine = criar_engine(DATABASE_URL)
armazenamento = ArmazenamentoSQL(engine)
armazenamento.criar_tabelas()

estado_aplicacao = EstadoAplicacao(armazenamento)

app = FastAPI(title="Gestão Mixto API")


def get_estado() -> EstadoAplicacao:
    """Entrega o contêiner de estado da aplicação para uma rota."""
    return estado_aplicacao


@app.exception_handler(RegistroNaoEncontrado)
async def nao_encontrado_handler(request: Request, exc: RegistroNaoEncontrado):
    return JSONResponse(content={"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)


def _resumo_orcamento(estado: EstadoAplicacao, orcamento: Orcamento) -> dict:
    resumo = orcamento.model_dump(mode="json")
    resumo["nome_cliente"] = estado.nome_cliente(orcamento)
    resumo["progresso"] = calcular_progresso(orcamento)
    resumo.update(totais_por_tipo(orcamento))
    return resumo


# --- DASHBOARD ---

@app.get("/api/dashboard", response_model=EstatisticasDashboard)
def dashboard(estado: EstadoAplicacao = Depends(get_estado)):
    return estado.estatisticas()


# --- ROTAS DA API PARA CLIENTES ---

@app.get("/api/clientes/", response_model=List[Cliente])
def listar_clientes_api(estado: EstadoAplicacao = Depends(get_estado)):
    return sorted(estado.clientes, key=lambda c: c.nome.lower())


@app.post("/api/clientes/", response_model=Cliente, status_code=status.HTTP_201_CREATED)
def criar_cliente(dados: ClienteCreate, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.criar_cliente(dados)


@app.get("/api/clientes/{cliente_id}", response_model=Cliente)
def obter_cliente_api(cliente_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.obter_cliente(cliente_id)


@app.put("/api/clientes/{cliente_id}", response_model=Cliente)
def atualizar_cliente(cliente_id: str, dados: ClienteUpdate, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.atualizar_cliente(cliente_id, dados)


@app.delete("/api/clientes/{cliente_id}", status_code=status.HTTP_204_NO_CONTENT)
def deletar_cliente(cliente_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    estado.remover_cliente(cliente_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- ROTAS DA API PARA ITENS DE CATÁLOGO ---

@app.get("/api/servicos/", response_model=List[Servico])
def read_servicos(estado: EstadoAplicacao = Depends(get_estado)):
    return estado.servicos


@app.post("/api/servicos/", response_model=Servico, status_code=status.HTTP_201_CREATED)
def create_servico(dados: ServicoCreate, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.criar_servico(dados)


@app.put("/api/servicos/{servico_id}", response_model=Servico)
def update_servico(servico_id: str, dados: ServicoUpdate, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.atualizar_servico(servico_id, dados)


@app.delete("/api/servicos/{servico_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_servico(servico_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    estado.remover_servico(servico_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/api/materiais/", response_model=List[Material])
def read_materiais(estado: EstadoAplicacao = Depends(get_estado)):
    return estado.materiais


@app.post("/api/materiais/", response_model=Material, status_code=status.HTTP_201_CREATED)
def create_material(dados: MaterialCreate, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.criar_material(dados)


@app.put("/api/materiais/{material_id}", response_model=Material)
def update_material(material_id: str, dados: MaterialUpdate, estado: EstadoAplicacao = Depends(get_estado)):
    return estado.atualizar_material(material_id, dados)


@app.delete("/api/materiais/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_material(material_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    estado.remover_material(material_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- ROTAS DA API PARA ORÇAMENTOS ---
# O número do orçamento tem barra (001/2026), por isso os parâmetros usam ":path"
# e as rotas com sufixo vêm antes da rota genérica.

@app.get("/api/orcamentos/")
def listar_orcamentos_api(estado: EstadoAplicacao = Depends(get_estado)):
    return [_resumo_orcamento(estado, o) for o in reversed(estado.orcamentos)]


@app.post("/api/orcamentos/", status_code=status.HTTP_201_CREATED)
def salvar_orcamento_endpoint(dados: OrcamentoCreate, estado: EstadoAplicacao = Depends(get_estado)):
    orcamento = estado.criar_orcamento_de_entrada(dados)
    return _resumo_orcamento(estado, orcamento)


@app.get("/api/acompanhamento")
def quadro_acompanhamento_api(estado: EstadoAplicacao = Depends(get_estado)):
    return {
        coluna: [_resumo_orcamento(estado, o) for o in orcamentos]
        for coluna, orcamentos in estado.quadro_acompanhamento().items()
    }


@app.get("/api/orcamentos/{orcamento_id:path}/pdf", response_class=StreamingResponse)
def gerar_pdf_endpoint(orcamento_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    orcamento = estado.obter_orcamento(orcamento_id)
    cliente = estado.resolver_cliente(orcamento)

    pdf_buffer = io.BytesIO()
    try:
        gerar_pdf_orcamento(pdf_buffer, orcamento, cliente, estado.servicos, estado.materiais)
    except ErroGeracaoRelatorio as e:
        return JSONResponse(content={"detail": str(e)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    nome_arquivo = f"orcamento_{orcamento.id.replace('/', '-')}.pdf"
    return StreamingResponse(
        io.BytesIO(pdf_buffer.getvalue()),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{nome_arquivo}"'}
    )


@app.get("/api/orcamentos/{orcamento_id:path}/whatsapp")
def gerar_link_whatsapp_endpoint(orcamento_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    orcamento = estado.obter_orcamento(orcamento_id)
    cliente = estado.resolver_cliente(orcamento)

    mensagem = gerar_texto_resumo(orcamento, cliente, estado.servicos, estado.materiais)
    link = gerar_link_whatsapp(cliente.telefone if cliente else "", mensagem)
    return JSONResponse(content={"whatsapp_message": mensagem, "whatsapp_link": link})


@app.patch("/api/orcamentos/{orcamento_id:path}/status")
def alterar_status_endpoint(orcamento_id: str, dados: StatusUpdate, estado: EstadoAplicacao = Depends(get_estado)):
    orcamento = estado.alterar_status_orcamento(orcamento_id, dados.status)
    return _resumo_orcamento(estado, orcamento)


@app.get("/api/orcamentos/{orcamento_id:path}/tarefas")
def listar_tarefas_endpoint(orcamento_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    orcamento = estado.obter_orcamento(orcamento_id)
    return {
        "progresso": calcular_progresso(orcamento),
        "etapas": {
            etapa: [t.model_dump(mode="json") for t in lista]
            for etapa, lista in tarefas_por_etapa(orcamento).items()
        },
    }


@app.post("/api/orcamentos/{orcamento_id:path}/tarefas", response_model=TarefaProjeto, status_code=status.HTTP_201_CREATED)
def adicionar_tarefa_endpoint(orcamento_id: str, dados: TarefaCreate, estado: EstadoAplicacao = Depends(get_estado)):
    tarefa = estado.adicionar_tarefa(orcamento_id, dados.etapa, dados.descricao)
    if tarefa is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Informe a descrição da etapa.")
    return tarefa


@app.patch("/api/orcamentos/{orcamento_id:path}/tarefas/{tarefa_id}", response_model=TarefaProjeto)
def alterar_status_tarefa_endpoint(
    orcamento_id: str,
    tarefa_id: str,
    dados: TarefaStatusUpdate,
    estado: EstadoAplicacao = Depends(get_estado),
):
    return estado.alterar_status_tarefa(orcamento_id, tarefa_id, dados.status)


@app.delete("/api/orcamentos/{orcamento_id:path}/tarefas/{tarefa_id}", status_code=status.HTTP_204_NO_CONTENT)
def remover_tarefa_endpoint(
    orcamento_id: str,
    tarefa_id: str,
    confirmar: bool = Query(False),
    estado: EstadoAplicacao = Depends(get_estado),
):
    # A remoção é destrutiva: o front precisa confirmar explicitamente
    if not confirmar:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Confirme a remoção da etapa (confirmar=true)."
        )
    estado.remover_tarefa(orcamento_id, tarefa_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/api/orcamentos/{orcamento_id:path}")
def get_orcamento_detalhes(orcamento_id: str, estado: EstadoAplicacao = Depends(get_estado)):
    """ Busca os detalhes de um único orçamento para garantir dados atualizados. """
    orcamento = estado.obter_orcamento(orcamento_id)
    return _resumo_orcamento(estado, orcamento)


@app.put("/api/orcamentos/{orcamento_id:path}")
def atualizar_orcamento_submit(orcamento_id: str, dados: OrcamentoUpdate, estado: EstadoAplicacao = Depends(get_estado)):
    orcamento = estado.atualizar_orcamento(orcamento_id, dados)
    return _resumo_orcamento(estado, orcamento)


# --- ASSISTENTE ---

@app.post("/api/assistente", response_model=RespostaAssistente)
def perguntar_assistente_endpoint(dados: PerguntaAssistente, estado: EstadoAplicacao = Depends(get_estado)):
    return perguntar_assistente(estado.estatisticas(), dados.pergunta)
