import os
import tempfile
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from .fake_api import FakeApi, venda_json


class RelatorioVendasCommandTests(SimpleTestCase):

    def setUp(self):
        self.api = FakeApi({('GET', '/venda'): (200, [
            venda_json(1, valor=100000, data='2024-01-10T10:00:00', imobiliaria={'id': 1, 'nome': 'Central'}),
            venda_json(2, valor=200000, data='2024-02-20T10:00:00', imobiliaria={'id': 2, 'nome': 'Sul'}),
            venda_json(3, valor=400000, data='2024-05-01T10:00:00', imobiliaria={'id': 1, 'nome': 'Central'}),
        ])})
        override = self.settings(IMOBIGEST_API=self.api.settings())
        override.enable()
        self.addCleanup(override.disable)

    def test_relatorio_do_periodo(self):
        out = StringIO()
        call_command('relatorio_vendas', '2024-01-01', '2024-03-31', '--token', 'abc', stdout=out)

        saida = out.getvalue()
        self.assertIn('2 vendas entre 01/01/2024 e 31/03/2024: R$ 300.000,00', saida)
        self.assertIn('Sul: 1 venda(s), R$ 200.000,00', saida)
        self.assertIn('2024-01: 1 venda(s)', saida)
        self.assertNotIn('2024-05', saida)
        self.assertEqual(self.api.chamadas[0].headers['Authorization'], 'Bearer abc')

    def test_exporta_csv(self):
        with tempfile.TemporaryDirectory() as pasta:
            caminho = os.path.join(pasta, 'vendas.csv')
            call_command('relatorio_vendas', '2024-01-01', '2024-12-31', '--token', 'abc', '--csv', caminho,
                         stdout=StringIO())
            with open(caminho, encoding='utf-8') as f:
                linhas = f.read().splitlines()
        self.assertEqual(len(linhas), 4)

    def test_data_invalida(self):
        with self.assertRaises(CommandError):
            call_command('relatorio_vendas', '01/01/2024', '2024-12-31', '--token', 'abc', stdout=StringIO())

    def test_sem_token(self):
        with mock.patch.dict(os.environ), self.assertRaises(CommandError) as ctx:
            os.environ.pop('IMOBIGEST_API_TOKEN', None)
            call_command('relatorio_vendas', '2024-01-01', '2024-12-31', stdout=StringIO())
        self.assertEqual(str(ctx.exception), 'Token de autenticação não encontrado')
