import logging
import os
from typing import Optional

import httpx
from pydantic import BaseModel

from calculos import format_brl
from erros import ErroAssistente
from estatisticas import EstatisticasDashboard

logger = logging.getLogger(__name__)

MENSAGEM_FALHA = "Desculpe, não consegui me conectar ao assistente agora. Tente novamente em instantes."
MENSAGEM_PERGUNTA_VAZIA = "Digite uma pergunta para o assistente."


class RespostaAssistente(BaseModel):
    resposta: str
    sucesso: bool


def _configuracao() -> dict:
    # Lido a cada chamada: a ausência da chave só é um erro quando o assistente é usado
    return {
        "api_url": os.getenv("ASSISTENTE_API_URL", "https://api.openai.com/v1/chat/completions"),
        "api_key": os.getenv("ASSISTENTE_API_KEY"),
        "modelo": os.getenv("ASSISTENTE_MODELO", "gpt-4o-mini"),
        "timeout": float(os.getenv("ASSISTENTE_TIMEOUT", "30")),
    }


def montar_prompt(estatisticas: EstatisticasDashboard) -> str:
    meses = ", ".join(f"{p.nome}: {format_brl(p.valor)}" for p in estatisticas.receita_mensal)
    return (
        "Você é o assistente de gestão da Mixto de Tudo Serviços, uma empresa de reformas. "
        "Responda em português, de forma curta e objetiva, usando apenas os dados abaixo.\n\n"
        f"Clientes cadastrados: {estatisticas.total_clientes}\n"
        f"Orçamentos emitidos: {estatisticas.total_orcamentos}\n"
        f"Receita bruta (todos os orçamentos): {format_brl(estatisticas.receita_total)}\n"
        f"Serviços em aberto (aprovados ou em andamento): {estatisticas.servicos_ativos}\n"
        f"Receita por mês: {meses}"
    )


def _chamar_api(prompt: str, pergunta: str, client: httpx.Client) -> str:
    try:
        config = _configuracao()
    except ValueError as e:
        raise ErroAssistente("ASSISTENTE_TIMEOUT inválido no arquivo .env") from e
    if not config["api_key"]:
        raise ErroAssistente("ASSISTENTE_API_KEY não definida no arquivo .env")

    try:
        response = client.post(
            config["api_url"],
            headers={"Authorization": f"Bearer {config['api_key']}"},
            json={
                "model": config["modelo"],
                "messages": [
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": pergunta},
                ],
            },
            timeout=config["timeout"],
        )
        response.raise_for_status()
        conteudo = response.json()["choices"][0]["message"]["content"]
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ErroAssistente(f"Falha na comunicação com o provedor: {e}") from e
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ErroAssistente("Resposta do provedor em formato inesperado") from e

    if not conteudo or not str(conteudo).strip():
        raise ErroAssistente("Resposta vazia do provedor")
    return str(conteudo).strip()


def perguntar_assistente(
    estatisticas: EstatisticasDashboard,
    pergunta: str,
    client: Optional[httpx.Client] = None,
) -> RespostaAssistente:
    """
    Envia a pergunta junto com o resumo do dashboard. Qualquer falha vira a
    mensagem padrão de erro, sem interromper a sessão.
    """
    pergunta = (pergunta or "").strip()
    if not pergunta:
        return RespostaAssistente(resposta=MENSAGEM_PERGUNTA_VAZIA, sucesso=False)

    prompt = montar_prompt(estatisticas)
    try:
        if client is not None:
            resposta = _chamar_api(prompt, pergunta, client)
        else:
            with httpx.Client() as novo_client:
                resposta = _chamar_api(prompt, pergunta, novo_client)
    except ErroAssistente as e:
        logger.warning("Assistente indisponível: %s", e)
        return RespostaAssistente(resposta=MENSAGEM_FALHA, sucesso=False)

    return RespostaAssistente(resposta=resposta, sucesso=True)
