import re
from datetime import datetime
from typing import Optional, Sequence
from urllib.parse import quote

from calculos import format_brl
from models import Cliente, Material, Orcamento, Servico, StatusServico

NOME_EMPRESA = "MIXTO DE TUDO SERVIÇOS"


def normalizar_telefone(telefone: Optional[str]) -> str:
    return re.sub(r"\D", "", telefone or "")


def formatar_data(data: str) -> str:
    try:
        return datetime.fromisoformat(data.replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except (ValueError, TypeError, AttributeError):
        return data or ""


def _lista_itens(itens, catalogo) -> str:
    # Itens sem correspondência no catálogo ficam fora da lista
    por_id = {entrada.id: entrada for entrada in catalogo}
    linhas = []
    for item in itens:
        entrada = por_id.get(item.catalogo_id)
        if entrada:
            linhas.append(f"{entrada.nome} ({item.quantidade:g} {entrada.unidade})")
    return "\n- ".join(linhas)


def gerar_texto_resumo(
    orcamento: Orcamento,
    cliente: Optional[Cliente],
    servicos: Sequence[Servico],
    materiais: Sequence[Material],
    nome_empresa: str = NOME_EMPRESA,
) -> str:
    lista_servicos = _lista_itens(orcamento.itens_servico, servicos)
    lista_materiais = _lista_itens(orcamento.itens_material, materiais)
    status = StatusServico(orcamento.status).value

    return (
        f"*ORÇAMENTO - {nome_empresa}*\n\n"
        f"*Cliente:* {cliente.nome if cliente else 'Não informado'}\n"
        f"*Data:* {formatar_data(orcamento.data)}\n\n"
        f"*Serviços:*\n- {lista_servicos or 'Nenhum'}\n\n"
        f"*Materiais:*\n- {lista_materiais or 'Nenhum'}\n\n"
        f"*VALOR TOTAL:* {format_brl(orcamento.valor_total)}\n\n"
        f"_Status: {status}_\n"
        f"Obrigado pela preferência!"
    )


def gerar_link_whatsapp(telefone: Optional[str], texto: str) -> str:
    return f"https://wa.me/{normalizar_telefone(telefone)}?text={quote(texto)}"
