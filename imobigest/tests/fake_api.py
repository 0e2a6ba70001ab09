import json

import httpx

from imobigest.api import ApiClient, StaticTokenProvider

BASE_URL = 'http://api.teste'


class FakeApi:
    """
    API REST falsa para os testes, servida por httpx.MockTransport.

    `rotas` mapeia (método, caminho) para (status, corpo_json) ou para uma
    função que recebe o httpx.Request. Rotas desconhecidas devolvem 404.
    """

    def __init__(self, rotas=None):
        self.rotas = dict(rotas or {})
        self.chamadas = []

    def __call__(self, request):
        self.chamadas.append(request)
        resposta = self.rotas.get((request.method, request.url.path))
        if resposta is None:
            return httpx.Response(404, json={'message': 'Not Found'})
        if callable(resposta):
            return resposta(request)
        status, corpo = resposta
        if corpo is None:
            return httpx.Response(status)
        return httpx.Response(status, json=corpo)

    @property
    def transport(self):
        return httpx.MockTransport(self)

    def client(self, token='token-teste'):
        return ApiClient(BASE_URL, StaticTokenProvider(token), timeout=5, transport=self.transport)

    def settings(self):
        """Valor para override_settings(IMOBIGEST_API=...)."""
        return {
            'base_url': BASE_URL,
            'timeout': 5,
            'token_cookie': 'token',
            'token_max_age': 7 * 24 * 60 * 60,
            'transport': self.transport,
        }

    def pedidos(self):
        """Lista de (método, caminho) na ordem em que foram feitos."""
        return [(r.method, r.url.path) for r in self.chamadas]

    def corpos(self, method, path):
        return [json.loads(r.content) for r in self.chamadas if r.method == method and r.url.path == path]


def venda_json(id=1, descricao='Casa dos Ipês', valor=500000, data='2024-03-10T10:00:00',
               forma='A_VISTA', parcelas=0, id_imobiliaria=1, **extra):
    data = {
        'id': id,
        'descricaoImovel': descricao,
        'valorTotal': valor,
        'dataVenda': data,
        'formaPagamento': forma,
        'qtdParcelas': parcelas,
        'compradorNome': 'Ana Souza',
        'compradorContato': 'ana@exemplo.com',
        'idImobiliaria': id_imobiliaria,
    }
    data.update(extra)
    return data
