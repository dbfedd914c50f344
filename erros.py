class ErroGestao(Exception):
    """Base para os erros do sistema de gestão."""


class RegistroNaoEncontrado(ErroGestao):
    mensagem = "Registro não encontrado."

    def __init__(self, registro_id: str = ""):
        self.registro_id = registro_id
        super().__init__(self.mensagem)


class OrcamentoNaoEncontrado(RegistroNaoEncontrado):
    mensagem = "Orçamento não encontrado."


class TarefaNaoEncontrada(RegistroNaoEncontrado):
    mensagem = "Tarefa não encontrada."


class ClienteNaoEncontrado(RegistroNaoEncontrado):
    mensagem = "Cliente não encontrado."


class ItemCatalogoNaoEncontrado(RegistroNaoEncontrado):
    mensagem = "Item não encontrado no catálogo."


class ErroGeracaoRelatorio(ErroGestao):
    pass


class ErroAssistente(ErroGestao):
    pass
