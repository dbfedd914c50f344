from datetime import datetime

import pytest

ANO = datetime.now().year


def _criar_orcamento(client, cliente_id, servico_id, quantidade=3):
    resposta = client.post("/api/orcamentos/", json={
        "cliente_id": cliente_id,
        "descricao": "Pintura da fachada",
        "itens_servico": [{"catalogo_id": servico_id, "quantidade": quantidade}],
    })
    assert resposta.status_code == 201
    return resposta.json()


def test_criar_e_buscar_orcamento(client, acme, pintura):
    criado = _criar_orcamento(client, acme.id, pintura.id)

    assert criado["id"] == f"001/{ANO}"
    assert criado["valor_total"] == 300
    assert criado["status"] == "Pendente"
    assert criado["nome_cliente"] == "Acme"
    assert criado["total_servicos"] == 300
    assert criado["progresso"] == 0

    detalhe = client.get(f"/api/orcamentos/{criado['id']}")
    assert detalhe.status_code == 200
    assert detalhe.json()["itens_servico"][0]["preco_unitario"] == 100


def test_orcamento_inexistente_404(client):
    resposta = client.get(f"/api/orcamentos/999/{ANO}")
    assert resposta.status_code == 404
    assert resposta.json()["detail"] == "Orçamento não encontrado."


def test_editar_orcamento(client, acme, pintura, cimento):
    criado = _criar_orcamento(client, acme.id, pintura.id)
    resposta = client.put(f"/api/orcamentos/{criado['id']}", json={
        "itens_material": [{"catalogo_id": cimento.id, "quantidade": 2}],
        "id": "outro",
    })
    assert resposta.status_code == 200
    dados = resposta.json()
    assert dados["id"] == criado["id"]
    assert dados["data"] == criado["data"]
    assert dados["valor_total"] == 300 + 90


def test_alterar_status_e_acompanhamento(client, acme, pintura):
    criado = _criar_orcamento(client, acme.id, pintura.id)

    resposta = client.patch(f"/api/orcamentos/{criado['id']}/status", json={"status": "Concluído"})
    assert resposta.status_code == 200
    assert resposta.json()["status"] == "Concluído"

    quadro = client.get("/api/acompanhamento").json()
    assert [o["id"] for o in quadro["Concluído"]] == [criado["id"]]
    assert quadro["Pendente"] == []


def test_status_invalido(client, acme, pintura):
    criado = _criar_orcamento(client, acme.id, pintura.id)
    resposta = client.patch(f"/api/orcamentos/{criado['id']}/status", json={"status": "Arquivado"})
    assert resposta.status_code == 422


def test_fluxo_de_tarefas(client, acme, pintura):
    orcamento_id = _criar_orcamento(client, acme.id, pintura.id)["id"]
    base = f"/api/orcamentos/{orcamento_id}/tarefas"

    vazia = client.post(base, json={"etapa": "Planejamento", "descricao": "  "})
    assert vazia.status_code == 400

    ids = []
    for etapa, descricao in [("Planejamento", "Medição"), ("Execução", "Lixar"), ("Execução", "Pintar"), ("Execução", "Limpeza")]:
        resposta = client.post(base, json={"etapa": etapa, "descricao": descricao})
        assert resposta.status_code == 201
        ids.append(resposta.json()["id"])

    for tarefa_id in ids[:2]:
        resposta = client.patch(f"{base}/{tarefa_id}", json={"status": "Concluído"})
        assert resposta.status_code == 200

    listagem = client.get(base).json()
    assert listagem["progresso"] == 50
    assert [t["descricao"] for t in listagem["etapas"]["Execução"]] == ["Lixar", "Pintar", "Limpeza"]

    sem_confirmar = client.delete(f"{base}/{ids[3]}")
    assert sem_confirmar.status_code == 400

    removida = client.delete(f"{base}/{ids[3]}", params={"confirmar": "true"})
    assert removida.status_code == 204
    assert client.get(base).json()["progresso"] == pytest.approx(200 / 3)

    inexistente = client.patch(f"{base}/nao-existe", json={"status": "Concluído"})
    assert inexistente.status_code == 404


def test_pdf(client, acme, pintura):
    orcamento_id = _criar_orcamento(client, acme.id, pintura.id)["id"]
    resposta = client.get(f"/api/orcamentos/{orcamento_id}/pdf")

    assert resposta.status_code == 200
    assert resposta.headers["content-type"] == "application/pdf"
    assert resposta.content.startswith(b"%PDF")


def test_whatsapp(client, acme, pintura):
    orcamento_id = _criar_orcamento(client, acme.id, pintura.id)["id"]
    dados = client.get(f"/api/orcamentos/{orcamento_id}/whatsapp").json()

    assert dados["whatsapp_link"].startswith("https://wa.me/92988091790?text=")
    assert "*VALOR TOTAL:* R$ 300,00" in dados["whatsapp_message"]


def test_dashboard(client, acme, pintura):
    _criar_orcamento(client, acme.id, pintura.id)
    _criar_orcamento(client, acme.id, pintura.id, quantidade=2)

    dados = client.get("/api/dashboard").json()
    assert dados["total_clientes"] == 1
    assert dados["total_orcamentos"] == 2
    assert dados["receita_total"] == 500
    assert len(dados["receita_mensal"]) == 12
    assert dados["receita_mensal"][datetime.now().month - 1]["valor"] == 500


def test_crud_de_clientes(client):
    criado = client.post("/api/clientes/", json={"nome": "Beta", "telefone": "92 90000-0000"})
    assert criado.status_code == 201
    cliente_id = criado.json()["id"]

    atualizado = client.put(f"/api/clientes/{cliente_id}", json={"email": "beta@exemplo.com"})
    assert atualizado.json()["email"] == "beta@exemplo.com"
    assert atualizado.json()["nome"] == "Beta"

    assert client.delete(f"/api/clientes/{cliente_id}").status_code == 204
    assert client.get(f"/api/clientes/{cliente_id}").status_code == 404


def test_cliente_removido_mantem_orcamento(client, acme, pintura):
    orcamento_id = _criar_orcamento(client, acme.id, pintura.id)["id"]
    client.delete(f"/api/clientes/{acme.id}")

    detalhe = client.get(f"/api/orcamentos/{orcamento_id}").json()
    assert detalhe["cliente_id"] == acme.id
    assert detalhe["nome_cliente"] == "Cliente não encontrado"


def test_catalogo(client):
    servico = client.post("/api/servicos/", json={"nome": "Gesso", "preco_base": 60, "unidade": "m²"}).json()
    material = client.post("/api/materiais/", json={"nome": "Tinta", "preco_unitario": 120}).json()

    assert client.put(f"/api/servicos/{servico['id']}", json={"preco_base": 70}).json()["preco_base"] == 70
    assert [m["nome"] for m in client.get("/api/materiais/").json()] == ["Tinta"]
    assert client.delete(f"/api/materiais/{material['id']}").status_code == 204
    assert client.delete(f"/api/materiais/{material['id']}").status_code == 404


def test_assistente_sem_chave(client):
    resposta = client.post("/api/assistente", json={"pergunta": "Quanto faturei?"})
    assert resposta.status_code == 200
    assert resposta.json()["sucesso"] is False


def test_put_so_quantidade_mantem_preco(client, acme, pintura):
    orcamento_id = _criar_orcamento(client, acme.id, pintura.id)["id"]
    client.put(f"/api/servicos/{pintura.id}", json={"preco_base": 250})

    resposta = client.put(f"/api/orcamentos/{orcamento_id}", json={
        "itens_servico": [{"catalogo_id": pintura.id, "quantidade": 4}],
    })
    dados = resposta.json()
    assert dados["itens_servico"][0]["preco_unitario"] == 100
    assert dados["valor_total"] == 400
