import logging
import os
from datetime import datetime
from typing import List, Optional, Sequence

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from calculos import format_brl
from compartilhamento import formatar_data
from erros import ErroGeracaoRelatorio
from models import Cliente, Material, Orcamento, Servico, TipoItem
from orcamentos import resolver_itens

logger = logging.getLogger(__name__)

# --- Constantes de layout ---
MARGEM = 20
TABLE_COL_WIDTHS = [80, 30, 30, 30]
TABLE_TITLES = ["Descrição", "Quantidade", "Preço Unitário", "Subtotal"]
COR_SERVICOS = (79, 70, 229)
COR_MATERIAIS = (16, 185, 129)
COR_TITULO = (30, 58, 138)


def empresa_padrao() -> dict:
    return {
        "nome": os.getenv("EMPRESA_NOME", "MIXTO DE TUDO"),
        "slogan": os.getenv("EMPRESA_SLOGAN", "CONSTRUINDO E REFORMANDO SEUS SONHOS"),
        "endereco": os.getenv("EMPRESA_ENDERECO", "Av Carlos Drummond de Andrade, 160 - Japiim"),
        "contato": os.getenv("EMPRESA_CONTATO", "Contato: (92) 98809-1790"),
    }


def _safe_text(text) -> str:
    # As fontes padrão só aceitam latin-1
    if text is None:
        return ""
    return str(text).encode("latin-1", "replace").decode("latin-1")


class OrcamentoPDF(FPDF):
    def __init__(self, *args, orcamento: Orcamento, cliente: Optional[Cliente], empresa: dict, **kwargs):
        super().__init__(*args, **kwargs)
        self.orcamento = orcamento
        self.cliente = cliente
        self.empresa = empresa
        self.set_auto_page_break(auto=True, margin=15)
        self.set_margins(MARGEM, 15, MARGEM)

    def linha(self, w, h, texto, **kwargs):
        self.cell(w, h, _safe_text(texto), new_x=XPos.LMARGIN, new_y=YPos.NEXT, **kwargs)

    def header(self):
        if self.page_no() > 1:
            return
        self.set_y(12)
        self.set_font("Helvetica", "B", 22)
        self.set_text_color(*COR_TITULO)
        self.linha(0, 10, self.empresa["nome"], align="C")

        self.set_font("Helvetica", "", 10)
        self.set_text_color(75, 85, 99)
        self.linha(0, 6, self.empresa["slogan"], align="C")
        self.set_font("Helvetica", "", 9)
        self.linha(0, 5, self.empresa["endereco"], align="C")
        self.linha(0, 5, self.empresa["contato"], align="C")

        self.set_draw_color(229, 231, 235)
        self.line(MARGEM, self.get_y() + 3, self.w - MARGEM, self.get_y() + 3)
        self.ln(8)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(128)
        self.cell(0, 10, _safe_text(f"Página {self.page_no()} de {{nb}}"), align="C")

    def draw_identificacao(self):
        self.set_font("Helvetica", "B", 14)
        self.set_text_color(31, 41, 55)
        y = self.get_y()
        self.cell(0, 8, _safe_text(f"Orçamento #{self.orcamento.id.upper()}"))
        self.set_xy(MARGEM, y)
        self.set_font("Helvetica", "", 10)
        self.linha(0, 8, f"Data: {formatar_data(self.orcamento.data)}", align="R")
        if self.orcamento.descricao:
            self.set_font("Helvetica", "I", 10)
            self.multi_cell(0, 5, _safe_text(self.orcamento.descricao))
        self.ln(3)

    def draw_cliente(self):
        cliente = self.cliente
        campos = [
            ("CLIENTE:", cliente.nome if cliente else "Não informado"),
            ("CPF/CNPJ:", (cliente.documento if cliente else "") or "N/A"),
            ("Tel:", (cliente.telefone if cliente else "") or "N/A"),
            ("Endereço:", (cliente.endereco if cliente else "") or "N/A"),
        ]
        self.set_fill_color(249, 250, 251)
        self.rect(MARGEM, self.get_y(), self.w - 2 * MARGEM, 7 * len(campos) + 4, "F")
        self.ln(2)
        for label, value in campos:
            self.set_x(MARGEM + 5)
            self.set_font("Helvetica", "B", 10)
            self.cell(25, 7, _safe_text(label))
            self.set_font("Helvetica", "", 10)
            self.linha(0, 7, value)
        self.ln(6)

    def _cabecalho_tabela(self, cor):
        self.set_font("Helvetica", "B", 9)
        self.set_fill_color(*cor)
        self.set_text_color(255, 255, 255)
        for w, title in zip(TABLE_COL_WIDTHS, TABLE_TITLES):
            self.cell(w, 8, _safe_text(title), border=1, align="C", fill=True)
        self.ln()
        self.set_text_color(0, 0, 0)
        self.set_font("Helvetica", "", 9)

    def draw_table(self, titulo: str, linhas: List[dict], cor):
        if not linhas:
            return
        # Título + cabeçalho + uma linha precisam caber na página
        if self.get_y() + 29 > self.page_break_trigger:
            self.add_page()

        self.set_font("Helvetica", "B", 11)
        self.set_text_color(31, 41, 55)
        self.linha(0, 8, titulo)
        self._cabecalho_tabela(cor)

        for idx, item in enumerate(linhas):
            if self.get_y() + 7 > self.page_break_trigger:
                self.add_page()
                self._cabecalho_tabela(cor)
            fill = idx % 2 == 1
            self.set_fill_color(243, 244, 246)
            self.cell(TABLE_COL_WIDTHS[0], 7, _safe_text(item["nome"]), border=1, fill=fill)
            self.cell(TABLE_COL_WIDTHS[1], 7, _safe_text(f"{item['quantidade']:g} {item['unidade']}"), border=1, align="C", fill=fill)
            self.cell(TABLE_COL_WIDTHS[2], 7, _safe_text(format_brl(item["preco_unitario"])), border=1, align="R", fill=fill)
            self.cell(TABLE_COL_WIDTHS[3], 7, _safe_text(format_brl(item["subtotal"])), border=1, align="R", fill=fill,
                      new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(8)

    def draw_total(self):
        if self.get_y() + 45 > self.page_break_trigger:
            self.add_page()

        self.set_draw_color(*COR_SERVICOS)
        self.set_line_width(0.5)
        self.line(self.w - 90, self.get_y(), self.w - MARGEM, self.get_y())
        self.ln(4)

        self.set_font("Helvetica", "B", 16)
        self.set_text_color(*COR_SERVICOS)
        self.set_x(self.w - 90)
        self.cell(35, 10, "TOTAL GERAL:")
        self.linha(0, 10, format_brl(self.orcamento.valor_total), align="R")

        self.ln(6)
        self.set_font("Helvetica", "", 10)
        self.set_text_color(107, 114, 128)
        self.linha(0, 6, "Este orçamento tem validade de 15 dias.")
        self.ln(10)
        self.linha(0, 6, "Assinatura do Responsável: _________________________________")

    def draw_content(self, servicos: Sequence[Servico], materiais: Sequence[Material]):
        self.draw_identificacao()
        self.draw_cliente()
        self.draw_table("SERVIÇOS", resolver_itens(self.orcamento.itens_servico, servicos, TipoItem.SERVICO), COR_SERVICOS)
        self.draw_table("MATERIAIS", resolver_itens(self.orcamento.itens_material, materiais, TipoItem.MATERIAL), COR_MATERIAIS)
        self.draw_total()


# --- FUNÇÃO GERADORA PRINCIPAL (A ÚNICA QUE O APP.PY CHAMA) ---
def gerar_pdf_orcamento(
    file_path,
    orcamento: Orcamento,
    cliente: Optional[Cliente],
    servicos: Sequence[Servico],
    materiais: Sequence[Material],
    empresa: Optional[dict] = None,
):
    try:
        pdf = OrcamentoPDF(orientation="P", unit="mm", format="A4",
                           orcamento=orcamento, cliente=cliente, empresa=empresa or empresa_padrao())
        pdf.add_page()
        pdf.draw_content(servicos, materiais)
        file_path.write(bytes(pdf.output()))
    except Exception as e:
        logger.exception("Erro ao gerar PDF do orçamento %s", orcamento.id)
        raise ErroGeracaoRelatorio(
            "Ocorreu um erro ao gerar o relatório PDF. Verifique os dados e tente novamente."
        ) from e
    logger.info("PDF do orçamento %s gerado em %s", orcamento.id, datetime.now().strftime("%d/%m/%Y %H:%M"))
