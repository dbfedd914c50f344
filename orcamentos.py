import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

from calculos import subtotal, total_orcamento
from models import (
    Cliente,
    ItemOrcamento,
    Material,
    Orcamento,
    Servico,
    StatusServico,
    TipoItem,
)

logger = logging.getLogger(__name__)

CLIENTE_NAO_ENCONTRADO = "Cliente não encontrado"
NAO_ENCONTRADO_POR_TIPO = {
    TipoItem.SERVICO: "Serviço não encontrado",
    TipoItem.MATERIAL: "Material não encontrado",
}

CAMPOS_ITEM = ("catalogo_id", "quantidade", "preco_unitario")

# Campos que nunca mudam depois da criação ou que têm operação própria
CAMPOS_PROTEGIDOS = {"id", "data", "valor_total", "tarefas"}


# --- Numeração NNN/AAAA ---

def _sequencia(orcamento_id: str) -> int:
    prefixo = orcamento_id.split("/", 1)[0]
    return int(prefixo) if prefixo.isdigit() else 0


def proximo_numero(orcamentos: Sequence[Orcamento], contadores: Dict[int, int], ano: int) -> Tuple[str, int]:
    """
    Calcula o próximo número do ano. A contagem dos orçamentos do ano é a regra
    original; o contador persistido e o maior número já usado impedem que uma
    remoção faça um número se repetir.
    """
    sufixo = f"/{ano}"
    do_ano = [o.id for o in orcamentos if o.id.endswith(sufixo)]
    maior_usado = max((_sequencia(i) for i in do_ano), default=0)
    sequencia = max(contadores.get(ano, 0), len(do_ano), maior_usado) + 1
    return f"{str(sequencia).zfill(3)}/{ano}", sequencia


def criar_orcamento(
    orcamentos: Sequence[Orcamento],
    contadores: Dict[int, int],
    cliente_id: str,
    descricao: str,
    itens_servico: List[ItemOrcamento],
    itens_material: List[ItemOrcamento],
    agora: Optional[datetime] = None,
) -> Orcamento:
    agora = agora or datetime.now()
    numero, sequencia = proximo_numero(orcamentos, contadores, agora.year)
    contadores[agora.year] = sequencia

    orcamento = Orcamento(
        id=numero,
        cliente_id=cliente_id,
        descricao=descricao,
        itens_servico=[item.model_copy() for item in itens_servico],
        itens_material=[item.model_copy() for item in itens_material],
        valor_total=total_orcamento(itens_servico, itens_material),
        data=agora.isoformat(timespec="milliseconds"),
        status=StatusServico.PENDENTE,
        tarefas=[],
    )
    logger.info("Orçamento %s criado (total %.2f)", orcamento.id, orcamento.valor_total)
    return orcamento


def atualizar_orcamento(orcamento: Orcamento, alteracoes: dict) -> Orcamento:
    for campo, valor in alteracoes.items():
        if campo in CAMPOS_PROTEGIDOS:
            logger.debug("Campo '%s' ignorado na atualização do orçamento %s", campo, orcamento.id)
            continue
        setattr(orcamento, campo, valor)

    # O total é gravado junto com o registro, então nunca pode ficar defasado
    orcamento.valor_total = total_orcamento(orcamento.itens_servico, orcamento.itens_material)
    return orcamento


def alterar_status(orcamento: Orcamento, novo_status: StatusServico) -> Orcamento:
    # Qualquer status pode ir para qualquer outro
    anterior = orcamento.status
    orcamento.status = StatusServico(novo_status)
    logger.info("Orçamento %s: %s -> %s", orcamento.id, anterior.value, orcamento.status.value)
    return orcamento


# --- Rascunho de edição (itens ainda não gravados) ---

class RascunhoOrcamento:
    def __init__(self, servicos: Sequence[Servico], materiais: Sequence[Material], orcamento: Optional[Orcamento] = None):
        self._catalogos = {TipoItem.SERVICO: servicos, TipoItem.MATERIAL: materiais}
        self.itens: Dict[TipoItem, List[ItemOrcamento]] = {
            TipoItem.SERVICO: [i.model_copy() for i in orcamento.itens_servico] if orcamento else [],
            TipoItem.MATERIAL: [i.model_copy() for i in orcamento.itens_material] if orcamento else [],
        }

    @property
    def itens_servico(self) -> List[ItemOrcamento]:
        return self.itens[TipoItem.SERVICO]

    @property
    def itens_material(self) -> List[ItemOrcamento]:
        return self.itens[TipoItem.MATERIAL]

    def adicionar_item(self, tipo: TipoItem) -> int:
        lista = self.itens[TipoItem(tipo)]
        lista.append(ItemOrcamento())
        return len(lista) - 1

    def remover_item(self, tipo: TipoItem, indice: int) -> None:
        lista = self.itens[TipoItem(tipo)]
        if 0 <= indice < len(lista):
            del lista[indice]

    def definir_campo(self, tipo: TipoItem, indice: int, campo: str, valor: Union[str, float]) -> None:
        if campo not in CAMPOS_ITEM:
            raise ValueError(f"Campo de item inválido: {campo}")

        tipo = TipoItem(tipo)
        lista = self.itens[tipo]
        if not 0 <= indice < len(lista):
            logger.debug("Linha %s inexistente no rascunho (%s)", indice, tipo.value)
            return

        item = lista[indice]
        setattr(item, campo, valor)

        if campo == "catalogo_id":
            # O preço é copiado uma única vez, na seleção
            preco = self._preco_catalogo(tipo, valor)
            if preco is not None:
                item.preco_unitario = preco

    def _preco_catalogo(self, tipo: TipoItem, catalogo_id: str) -> Optional[float]:
        for entrada in self._catalogos[tipo]:
            if entrada.id == catalogo_id:
                return entrada.preco_base if tipo == TipoItem.SERVICO else entrada.preco_unitario
        return None

    def total(self) -> float:
        return total_orcamento(self.itens_servico, self.itens_material)


# --- Resolução para exibição ---

def resolver_cliente(orcamento: Orcamento, clientes: Sequence[Cliente]) -> Optional[Cliente]:
    return next((c for c in clientes if c.id == orcamento.cliente_id), None)


def nome_cliente(orcamento: Orcamento, clientes: Sequence[Cliente]) -> str:
    cliente = resolver_cliente(orcamento, clientes)
    return cliente.nome if cliente else CLIENTE_NAO_ENCONTRADO


def resolver_itens(itens: Sequence[ItemOrcamento], catalogo: Sequence[Union[Servico, Material]], tipo: TipoItem) -> List[dict]:
    """
    Junta cada linha com o nome e a unidade do catálogo. Referências que não
    existem mais recebem um nome provisório e a unidade "un".
    """
    por_id = {entrada.id: entrada for entrada in catalogo}
    resolvidos = []
    for item in itens:
        entrada = por_id.get(item.catalogo_id)
        resolvidos.append({
            "catalogo_id": item.catalogo_id,
            "nome": entrada.nome if entrada else NAO_ENCONTRADO_POR_TIPO[tipo],
            "unidade": entrada.unidade if entrada else "un",
            "quantidade": item.quantidade,
            "preco_unitario": item.preco_unitario,
            "subtotal": subtotal(item),
            "encontrado": entrada is not None,
        })
    return resolvidos
