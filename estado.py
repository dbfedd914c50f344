import logging
import threading
from typing import Dict, List, Optional, Sequence, Type

from sqlmodel import SQLModel

import orcamentos as modelo_orcamento
import tarefas as modelo_tarefas
from erros import (
    ClienteNaoEncontrado,
    ItemCatalogoNaoEncontrado,
    OrcamentoNaoEncontrado,
    RegistroNaoEncontrado,
)
from estatisticas import EstatisticasDashboard, calcular_estatisticas
from models import (
    Cliente,
    ClienteCreate,
    ClienteUpdate,
    ContadorOrcamento,
    EtapaTarefa,
    ItemOrcamentoEntrada,
    Material,
    MaterialCreate,
    MaterialUpdate,
    Orcamento,
    OrcamentoCreate,
    OrcamentoUpdate,
    Servico,
    ServicoCreate,
    ServicoUpdate,
    StatusServico,
    StatusTarefa,
    TarefaProjeto,
    TipoItem,
)
from orcamentos import RascunhoOrcamento

logger = logging.getLogger(__name__)

CHAVE_CLIENTES = "mixto_v1_clients"
CHAVE_SERVICOS = "mixto_v1_services"
CHAVE_MATERIAIS = "mixto_v1_materials"
CHAVE_ORCAMENTOS = "mixto_v1_budgets"
CHAVE_CONTADORES = "mixto_v1_budget_counters"

# Dados iniciais quando a coleção ainda não existe no banco
CLIENTES_INICIAIS = [
    {"id": "c1", "nome": "Cliente Demonstração", "email": "contato@mixto.com", "telefone": "92988091790",
     "endereco": "Av. Principal, 100", "documento": "000.000.000-00"},
]
SERVICOS_INICIAIS = [
    {"id": "s1", "nome": "Reforma Geral", "descricao": "Serviços de alvenaria e acabamento",
     "preco_base": 2500, "unidade": "global"},
]
MATERIAIS_INICIAIS = [
    {"id": "m1", "nome": "Cimento CP-II", "preco_unitario": 45, "estoque": 50, "unidade": "saco"},
]


class EstadoAplicacao:
    """
    Fonte única dos dados em memória. Toda alteração passa por um método de
    comando daqui e termina com a regravação completa da coleção afetada.
    """

    def __init__(self, armazenamento, semear: bool = True):
        self._armazenamento = armazenamento
        self._lock = threading.RLock()

        self.clientes: List[Cliente] = self._carregar(CHAVE_CLIENTES, Cliente, CLIENTES_INICIAIS if semear else [])
        self.servicos: List[Servico] = self._carregar(CHAVE_SERVICOS, Servico, SERVICOS_INICIAIS if semear else [])
        self.materiais: List[Material] = self._carregar(CHAVE_MATERIAIS, Material, MATERIAIS_INICIAIS if semear else [])
        self.orcamentos: List[Orcamento] = self._carregar(CHAVE_ORCAMENTOS, Orcamento, [])
        contadores = self._carregar(CHAVE_CONTADORES, ContadorOrcamento, [])
        self.contadores: Dict[int, int] = {c.ano: c.ultimo for c in contadores}

    # --- Persistência ---

    def _carregar(self, chave: str, modelo: Type[SQLModel], iniciais: List[dict]) -> list:
        dados = self._armazenamento.carregar(chave)
        if dados is None:
            registros = [modelo.model_validate(d) for d in iniciais]
            if registros:
                logger.info("Coleção '%s' criada com %d registro(s) iniciais.", chave, len(registros))
                self._armazenamento.salvar(chave, [r.model_dump(mode="json") for r in registros])
            return registros
        return [modelo.model_validate(d) for d in dados]

    def _persistir(self, chave: str, registros: Sequence[SQLModel]) -> None:
        self._armazenamento.salvar(chave, [r.model_dump(mode="json") for r in registros])

    def _persistir_contadores(self) -> None:
        contadores = [ContadorOrcamento(ano=ano, ultimo=ultimo) for ano, ultimo in sorted(self.contadores.items())]
        self._persistir(CHAVE_CONTADORES, contadores)

    # --- CRUD genérico dos cadastros ---

    @staticmethod
    def _buscar(registros: Sequence[SQLModel], registro_id: str, erro: Type[RegistroNaoEncontrado]):
        for registro in registros:
            if registro.id == registro_id:
                return registro
        raise erro(registro_id)

    def _criar(self, registros: list, chave: str, registro: SQLModel):
        with self._lock:
            registros.append(registro)
            self._persistir(chave, registros)
            return registro

    def _atualizar(self, registros: list, chave: str, registro_id: str, dados, erro):
        with self._lock:
            registro = self._buscar(registros, registro_id, erro)
            for campo, valor in dados.model_dump(exclude_unset=True).items():
                if valor is not None:
                    setattr(registro, campo, valor)
            self._persistir(chave, registros)
            return registro

    def _remover(self, registros: list, chave: str, registro_id: str, erro) -> None:
        # Orçamentos que apontam para o registro removido não são alterados
        with self._lock:
            registro = self._buscar(registros, registro_id, erro)
            registros.remove(registro)
            self._persistir(chave, registros)

    # --- Clientes ---

    def obter_cliente(self, cliente_id: str) -> Cliente:
        return self._buscar(self.clientes, cliente_id, ClienteNaoEncontrado)

    def criar_cliente(self, dados: ClienteCreate) -> Cliente:
        return self._criar(self.clientes, CHAVE_CLIENTES, Cliente(**dados.model_dump()))

    def atualizar_cliente(self, cliente_id: str, dados: ClienteUpdate) -> Cliente:
        return self._atualizar(self.clientes, CHAVE_CLIENTES, cliente_id, dados, ClienteNaoEncontrado)

    def remover_cliente(self, cliente_id: str) -> None:
        self._remover(self.clientes, CHAVE_CLIENTES, cliente_id, ClienteNaoEncontrado)

    # --- Catálogo: serviços ---

    def obter_servico(self, servico_id: str) -> Servico:
        return self._buscar(self.servicos, servico_id, ItemCatalogoNaoEncontrado)

    def criar_servico(self, dados: ServicoCreate) -> Servico:
        return self._criar(self.servicos, CHAVE_SERVICOS, Servico(**dados.model_dump()))

    def atualizar_servico(self, servico_id: str, dados: ServicoUpdate) -> Servico:
        return self._atualizar(self.servicos, CHAVE_SERVICOS, servico_id, dados, ItemCatalogoNaoEncontrado)

    def remover_servico(self, servico_id: str) -> None:
        self._remover(self.servicos, CHAVE_SERVICOS, servico_id, ItemCatalogoNaoEncontrado)

    # --- Catálogo: materiais ---

    def obter_material(self, material_id: str) -> Material:
        return self._buscar(self.materiais, material_id, ItemCatalogoNaoEncontrado)

    def criar_material(self, dados: MaterialCreate) -> Material:
        return self._criar(self.materiais, CHAVE_MATERIAIS, Material(**dados.model_dump()))

    def atualizar_material(self, material_id: str, dados: MaterialUpdate) -> Material:
        return self._atualizar(self.materiais, CHAVE_MATERIAIS, material_id, dados, ItemCatalogoNaoEncontrado)

    def remover_material(self, material_id: str) -> None:
        self._remover(self.materiais, CHAVE_MATERIAIS, material_id, ItemCatalogoNaoEncontrado)

    # --- Orçamentos ---

    def obter_orcamento(self, orcamento_id: str) -> Orcamento:
        return self._buscar(self.orcamentos, orcamento_id, OrcamentoNaoEncontrado)

    def novo_rascunho(self, orcamento_id: Optional[str] = None) -> RascunhoOrcamento:
        orcamento = self.obter_orcamento(orcamento_id) if orcamento_id else None
        return RascunhoOrcamento(self.servicos, self.materiais, orcamento)

    def _aplicar_entradas(self, rascunho: RascunhoOrcamento, tipo: TipoItem, entradas: List[ItemOrcamentoEntrada]) -> None:
        # Só a troca de serviço/material copia o preço atual; linhas mantidas guardam o preço gravado
        atuais = rascunho.itens[tipo]
        for indice, entrada in enumerate(entradas):
            nova = indice >= len(atuais)
            if nova:
                rascunho.adicionar_item(tipo)
            if nova or atuais[indice].catalogo_id != entrada.catalogo_id:
                rascunho.definir_campo(tipo, indice, "catalogo_id", entrada.catalogo_id)
            rascunho.definir_campo(tipo, indice, "quantidade", entrada.quantidade)
            if entrada.preco_unitario is not None:
                rascunho.definir_campo(tipo, indice, "preco_unitario", entrada.preco_unitario)
        while len(atuais) > len(entradas):
            rascunho.remover_item(tipo, len(atuais) - 1)

    def _montar_rascunho(self, itens_servico: List[ItemOrcamentoEntrada], itens_material: List[ItemOrcamentoEntrada]) -> RascunhoOrcamento:
        rascunho = self.novo_rascunho()
        self._aplicar_entradas(rascunho, TipoItem.SERVICO, itens_servico)
        self._aplicar_entradas(rascunho, TipoItem.MATERIAL, itens_material)
        return rascunho

    def criar_orcamento(self, cliente_id: str, descricao: str, rascunho: RascunhoOrcamento) -> Orcamento:
        with self._lock:
            orcamento = modelo_orcamento.criar_orcamento(
                self.orcamentos,
                self.contadores,
                cliente_id=cliente_id,
                descricao=descricao,
                itens_servico=rascunho.itens_servico,
                itens_material=rascunho.itens_material,
            )
            self.orcamentos.append(orcamento)
            self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)
            self._persistir_contadores()
            return orcamento

    def criar_orcamento_de_entrada(self, dados: OrcamentoCreate) -> Orcamento:
        rascunho = self._montar_rascunho(dados.itens_servico, dados.itens_material)
        return self.criar_orcamento(dados.cliente_id, dados.descricao, rascunho)

    def salvar_rascunho(self, orcamento_id: str, rascunho: RascunhoOrcamento) -> Orcamento:
        """ Grava as linhas editadas no rascunho de volta no orçamento. """
        with self._lock:
            orcamento = self.obter_orcamento(orcamento_id)
            modelo_orcamento.atualizar_orcamento(orcamento, {
                "itens_servico": [i.model_copy() for i in rascunho.itens_servico],
                "itens_material": [i.model_copy() for i in rascunho.itens_material],
            })
            self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)
            return orcamento

    def atualizar_orcamento(self, orcamento_id: str, dados: OrcamentoUpdate) -> Orcamento:
        with self._lock:
            orcamento = self.obter_orcamento(orcamento_id)
            alteracoes = {
                campo: getattr(dados, campo)
                for campo in dados.model_fields_set
                if getattr(dados, campo) is not None
            }
            if "itens_servico" in alteracoes or "itens_material" in alteracoes:
                rascunho = self.novo_rascunho(orcamento_id)
                if "itens_servico" in alteracoes:
                    self._aplicar_entradas(rascunho, TipoItem.SERVICO, dados.itens_servico)
                    alteracoes["itens_servico"] = rascunho.itens_servico
                if "itens_material" in alteracoes:
                    self._aplicar_entradas(rascunho, TipoItem.MATERIAL, dados.itens_material)
                    alteracoes["itens_material"] = rascunho.itens_material
            if "status" in alteracoes:
                modelo_orcamento.alterar_status(orcamento, alteracoes.pop("status"))

            modelo_orcamento.atualizar_orcamento(orcamento, alteracoes)
            self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)
            return orcamento

    def alterar_status_orcamento(self, orcamento_id: str, status: StatusServico) -> Orcamento:
        with self._lock:
            orcamento = self.obter_orcamento(orcamento_id)
            modelo_orcamento.alterar_status(orcamento, status)
            self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)
            return orcamento

    def resolver_cliente(self, orcamento: Orcamento) -> Optional[Cliente]:
        return modelo_orcamento.resolver_cliente(orcamento, self.clientes)

    def nome_cliente(self, orcamento: Orcamento) -> str:
        return modelo_orcamento.nome_cliente(orcamento, self.clientes)

    # --- Tarefas do orçamento ---

    def adicionar_tarefa(self, orcamento_id: str, etapa: EtapaTarefa, descricao: str) -> Optional[TarefaProjeto]:
        with self._lock:
            orcamento = self.obter_orcamento(orcamento_id)
            tarefa = modelo_tarefas.adicionar_tarefa(orcamento, etapa, descricao)
            if tarefa is not None:
                self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)
            return tarefa

    def alterar_status_tarefa(self, orcamento_id: str, tarefa_id: str, status: StatusTarefa) -> TarefaProjeto:
        with self._lock:
            orcamento = self.obter_orcamento(orcamento_id)
            tarefa = modelo_tarefas.alterar_status_tarefa(orcamento, tarefa_id, status)
            self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)
            return tarefa

    def remover_tarefa(self, orcamento_id: str, tarefa_id: str) -> None:
        with self._lock:
            orcamento = self.obter_orcamento(orcamento_id)
            modelo_tarefas.remover_tarefa(orcamento, tarefa_id)
            self._persistir(CHAVE_ORCAMENTOS, self.orcamentos)

    # --- Leitura agregada ---

    def estatisticas(self) -> EstatisticasDashboard:
        return calcular_estatisticas(self.clientes, self.orcamentos)

    def quadro_acompanhamento(self) -> Dict[str, List[Orcamento]]:
        return modelo_tarefas.quadro_acompanhamento(self.orcamentos)
