import json
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from imobigest.models import FiltrosVenda, FormaPagamento, StatusParcela, Venda
from imobigest.vendas_search import (
    VendaSearchController, build_query_params, carregar_dados_auxiliares, filtrar_localmente,
)

from .fake_api import FakeApi, venda_json


def pagina_spring(vendas, numero=0, total=None):
    return {
        'content': vendas,
        'pageable': {'pageNumber': numero, 'pageSize': 10},
        'totalElements': len(vendas) if total is None else total,
    }


VENDAS = [
    venda_json(1, 'Casa dos Ipês', 500000, '2024-03-10T10:00:00', id_imobiliaria=1),
    venda_json(2, 'Apartamento Centro', 320000, '2024-03-31T23:00:00', 'PARCELADO', 10, id_imobiliaria=2),
    venda_json(3, 'Sobrado CASA VERDE', 750000, '2024-04-01T09:00:00', id_imobiliaria=1),
    venda_json(4, 'Terreno', 90000, '2024-02-28T12:00:00', 'PARCELADO', 5, id_imobiliaria=2),
]


class QueryParamsTests(SimpleTestCase):

    def test_sem_filtros_so_paginacao(self):
        self.assertEqual(build_query_params(FiltrosVenda(), 1, 10), [
            ('page', '0'), ('limit', '10'), ('sortBy', 'valorTotal'), ('sortOrder', 'DESC'),
        ])

    def test_filtros_preenchidos(self):
        filtros = FiltrosVenda(
            descricao='  casa ',
            valor_min=Decimal('0'),
            valor_max=Decimal('600000'),
            data_inicio=date(2024, 1, 1),
            forma_pagamento=FormaPagamento.PARCELADO,
            id_imobiliaria=3,
            status_parcela=StatusParcela.ATRASADO,
        )
        params = dict(build_query_params(filtros, 3, 20))

        self.assertEqual(params['descricao'], 'casa')
        self.assertNotIn('valorMin', params)
        self.assertEqual(params['valorMax'], '600000')
        self.assertEqual(params['dataInicio'], '2024-01-01')
        self.assertNotIn('dataFim', params)
        self.assertEqual(params['formaPagamento'], 'PARCELADO')
        self.assertEqual(params['idImobiliaria'], '3')
        self.assertNotIn('idProfissional', params)
        self.assertEqual(params['statusParcela'], 'ATRASADO')
        self.assertEqual(params['page'], '2')
        self.assertEqual(params['limit'], '20')


class FiltroLocalTests(SimpleTestCase):

    def setUp(self):
        self.vendas = [Venda.model_validate(v) for v in VENDAS]

    def ids(self, filtros):
        return [v.id for v in filtrar_localmente(self.vendas, filtros)]

    def test_descricao_sem_diferenciar_maiusculas(self):
        self.assertEqual(self.ids(FiltrosVenda(descricao='casa')), [1, 3])

    def test_intervalo_de_datas_inclusivo(self):
        filtros = FiltrosVenda(data_inicio=date(2024, 2, 28), data_fim=date(2024, 3, 31))
        self.assertEqual(self.ids(filtros), [1, 2, 4])

    def test_intervalo_de_valores_inclusivo(self):
        filtros = FiltrosVenda(valor_min=Decimal('320000'), valor_max=Decimal('500000'))
        self.assertEqual(self.ids(filtros), [1, 2])

    def test_forma_e_imobiliaria(self):
        filtros = FiltrosVenda(forma_pagamento=FormaPagamento.PARCELADO, id_imobiliaria=2)
        self.assertEqual(self.ids(filtros), [2, 4])

    def test_profissional_e_status_ignorados(self):
        filtros = FiltrosVenda(id_profissional=9, status_parcela=StatusParcela.PAGO)
        self.assertEqual(self.ids(filtros), [1, 2, 3, 4])


class VendaSearchControllerTests(SimpleTestCase):

    def test_busca_remota(self):
        api = FakeApi({('GET', '/venda/search'): (200, pagina_spring(VENDAS[:2], numero=1, total=25))})
        controller = VendaSearchController(api.client(), itens_por_pagina=10)

        resultado = controller.set_pagina(2)

        self.assertEqual(controller.modo, 'remoto')
        self.assertEqual([v.id for v in resultado.vendas], [1, 2])
        self.assertEqual(resultado.total_itens, 25)
        self.assertEqual(resultado.pagina_atual, 2)
        self.assertEqual(resultado.total_paginas, 3)
        self.assertIsNone(controller.erro)
        self.assertFalse(controller.carregando)
        self.assertEqual(api.chamadas[0].url.params['page'], '1')

    def test_fallback_quando_search_nao_existe(self):
        api = FakeApi({('GET', '/venda'): (200, VENDAS)})
        controller = VendaSearchController(api.client(), itens_por_pagina=1)

        resultado = controller.aplicar_filtros(FiltrosVenda(descricao='casa'))

        self.assertEqual(api.pedidos(), [('GET', '/venda/search'), ('GET', '/venda')])
        self.assertEqual(controller.modo, 'local')
        self.assertEqual(resultado.total_itens, 2)
        self.assertEqual(resultado.total_paginas, 2)
        self.assertEqual([v.id for v in resultado.vendas], [1])

        resultado = controller.set_pagina(2)
        self.assertEqual([v.id for v in resultado.vendas], [3])

    def test_fallback_quando_search_proibido(self):
        api = FakeApi({
            ('GET', '/venda/search'): (403, {'message': 'Forbidden'}),
            ('GET', '/venda'): (200, {'vendas': VENDAS}),
        })
        controller = VendaSearchController(api.client())

        resultado = controller.refresh()

        self.assertEqual(controller.modo, 'local')
        self.assertEqual(resultado.total_itens, 4)

    def test_outros_erros_limpam_a_lista(self):
        api = FakeApi({('GET', '/venda/search'): (500, {'message': 'Falha interna'})})
        controller = VendaSearchController(api.client())
        controller.vendas = [Venda.model_validate(VENDAS[0])]
        controller.total_itens = 1

        resultado = controller.refresh()

        self.assertEqual(controller.erro, 'Falha interna')
        self.assertEqual(resultado.vendas, [])
        self.assertEqual(resultado.total_itens, 0)
        self.assertEqual(api.pedidos(), [('GET', '/venda/search')])

    def test_aplicar_filtros_volta_para_pagina_1(self):
        api = FakeApi({('GET', '/venda/search'): (200, pagina_spring([]))})
        controller = VendaSearchController(api.client(), pagina=4)

        controller.aplicar_filtros(FiltrosVenda(descricao='casa'))

        self.assertEqual(controller.pagina_atual, 1)
        self.assertEqual(api.chamadas[-1].url.params['page'], '0')

    def test_mudar_de_pagina_mantem_filtros(self):
        api = FakeApi({('GET', '/venda/search'): (200, pagina_spring([]))})
        controller = VendaSearchController(api.client())
        controller.aplicar_filtros(FiltrosVenda(descricao='casa'))

        controller.set_pagina(3)

        self.assertEqual(api.chamadas[-1].url.params['descricao'], 'casa')
        self.assertEqual(api.chamadas[-1].url.params['page'], '2')

    def test_pagina_minima_e_1(self):
        api = FakeApi({('GET', '/venda/search'): (200, pagina_spring([]))})
        controller = VendaSearchController(api.client())
        controller.set_pagina(0)
        self.assertEqual(api.chamadas[-1].url.params['page'], '0')

    def test_limpar_filtros(self):
        api = FakeApi({('GET', '/venda/search'): (200, pagina_spring([]))})
        controller = VendaSearchController(api.client(), filtros=FiltrosVenda(descricao='casa'), pagina=2)

        controller.limpar_filtros()

        self.assertEqual(controller.filtros_aplicados, FiltrosVenda())
        self.assertEqual(controller.pagina_atual, 1)
        self.assertNotIn('descricao', api.chamadas[-1].url.params)

    def test_resposta_obsoleta_e_descartada(self):
        controller = VendaSearchController(FakeApi().client())
        antiga = controller._nova_geracao()
        nova = controller._nova_geracao()

        self.assertTrue(controller._aplicar(nova, [], 7, 1, 'remoto'))
        self.assertFalse(controller._aplicar(antiga, [], 99, 5, 'local'))
        self.assertEqual(controller.total_itens, 7)
        self.assertEqual(controller.modo, 'remoto')

    def test_estado_na_sessao(self):
        filtros = FiltrosVenda(descricao='casa', valor_min=Decimal('1000'), data_fim=date(2024, 5, 1))
        controller = VendaSearchController(FakeApi().client(), filtros=filtros, pagina=3)

        dados = json.loads(json.dumps(controller.to_session()))
        restaurado = VendaSearchController.from_session(FakeApi().client(), dados)

        self.assertEqual(restaurado.filtros_aplicados, filtros)
        self.assertEqual(restaurado.pagina_atual, 3)

    def test_sessao_invalida_usa_padrao(self):
        restaurado = VendaSearchController.from_session(FakeApi().client(), {'filtros': {'data_inicio': 'xx'}})
        self.assertEqual(restaurado.filtros_aplicados, FiltrosVenda())
        self.assertEqual(restaurado.pagina_atual, 1)


class DadosAuxiliaresTests(SimpleTestCase):

    def test_falhas_viram_listas_vazias(self):
        api = FakeApi({('GET', '/imobiliaria'): (200, [{'id': 1, 'nome': 'Central'}])})
        imobiliarias, profissionais = carregar_dados_auxiliares(api.client())
        self.assertEqual([i.nome for i in imobiliarias], ['Central'])
        self.assertEqual(profissionais, [])
