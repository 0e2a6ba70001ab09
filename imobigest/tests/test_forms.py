from datetime import date
from decimal import Decimal

from django import forms
from django.test import SimpleTestCase

from imobigest.forms import (
    ParcelaFormSet, VendaFiltroForm, VendaForm, clean_value, parcelas_do_formset,
)
from imobigest.models import FormaPagamento, Imobiliaria, Profissional, StatusParcela

IMOBILIARIAS = [Imobiliaria(id=1, nome='Central'), Imobiliaria(id=2, nome='Sul')]
PROFISSIONAIS = [Profissional(id=5, nome='Bia', id_imobiliaria=1)]


def dados_venda(**extra):
    data = {
        'descricao_imovel': 'Casa dos Ipês',
        'valor_total': '1.000,00',
        'data_venda': '2024-01-15T10:30',
        'forma_pagamento': 'PARCELADO',
        'qtd_parcelas': '3',
        'comprador_nome': 'Ana Souza',
        'comprador_contato': '',
        'id_imobiliaria': '1',
        'profissionais': ['5'],
    }
    data.update(extra)
    return data


class CleanValueTests(SimpleTestCase):

    def test_formatos(self):
        self.assertEqual(clean_value('R$ 1.234,56'), Decimal('1234.56'))
        self.assertEqual(clean_value('1234.56'), Decimal('1234.56'))
        self.assertEqual(clean_value('10,5%'), Decimal('10.5'))
        self.assertEqual(clean_value(7), Decimal('7'))
        self.assertIsNone(clean_value(''))

    def test_valor_invalido(self):
        with self.assertRaises(forms.ValidationError):
            clean_value('abc')


class VendaFormTests(SimpleTestCase):

    def form(self, **extra):
        return VendaForm(dados_venda(**extra), imobiliarias=IMOBILIARIAS, profissionais=PROFISSIONAIS)

    def test_venda_parcelada(self):
        form = self.form()
        self.assertTrue(form.is_valid(), form.errors)

        venda = form.to_venda()
        self.assertEqual(venda.valor_total, Decimal('1000.00'))
        self.assertEqual(venda.qtd_parcelas, 3)
        self.assertEqual(venda.forma_pagamento, FormaPagamento.PARCELADO)
        self.assertEqual(venda.id_imobiliaria, 1)
        self.assertEqual(form.cleaned_data['profissionais'], [5])

    def test_a_vista_zera_parcelas(self):
        form = self.form(forma_pagamento='A_VISTA', qtd_parcelas='12')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_venda().qtd_parcelas, 0)

    def test_parcelado_exige_quantidade(self):
        form = self.form(qtd_parcelas='')
        self.assertFalse(form.is_valid())
        self.assertIn('qtd_parcelas', form.errors)

    def test_valor_pequeno_demais_para_as_parcelas(self):
        # 0,05 em 10x daria uma última parcela negativa
        form = self.form(valor_total='0,05', qtd_parcelas='10')
        self.assertFalse(form.is_valid())
        self.assertIn('qtd_parcelas', form.errors)

        self.assertTrue(self.form(valor_total='0,10', qtd_parcelas='10').is_valid())

    def test_valor_precisa_ser_positivo(self):
        form = self.form(valor_total='0')
        self.assertFalse(form.is_valid())
        self.assertIn('valor_total', form.errors)

    def test_profissional_de_fora_da_lista(self):
        form = self.form(profissionais=['99'])
        self.assertFalse(form.is_valid())
        self.assertIn('profissionais', form.errors)


class VendaFiltroFormTests(SimpleTestCase):

    def form(self, data):
        return VendaFiltroForm(data, imobiliarias=IMOBILIARIAS, profissionais=PROFISSIONAIS)

    def test_to_filtros(self):
        form = self.form({'descricao': ' casa ', 'valor_min': '100.000,00', 'data_inicio': '2024-01-01',
                          'forma_pagamento': 'A_VISTA', 'id_imobiliaria': '2', 'status_parcela': ''})
        self.assertTrue(form.is_valid(), form.errors)

        filtros = form.to_filtros()
        self.assertEqual(filtros.descricao, 'casa')
        self.assertEqual(filtros.valor_min, Decimal('100000.00'))
        self.assertEqual(filtros.data_inicio, date(2024, 1, 1))
        self.assertEqual(filtros.forma_pagamento, FormaPagamento.A_VISTA)
        self.assertEqual(filtros.id_imobiliaria, 2)
        self.assertIsNone(filtros.id_profissional)
        self.assertIsNone(filtros.status_parcela)

    def test_datas_invertidas(self):
        form = self.form({'data_inicio': '2024-05-01', 'data_fim': '2024-01-01'})
        self.assertFalse(form.is_valid())

    def test_valores_invertidos(self):
        form = self.form({'valor_min': '500', 'valor_max': '100'})
        self.assertFalse(form.is_valid())

    def test_vazio_e_valido(self):
        form = self.form({})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_filtros().descricao, '')


class ParcelaFormSetTests(SimpleTestCase):

    def test_rascunho_editado(self):
        data = {
            'parcelas-TOTAL_FORMS': '2',
            'parcelas-INITIAL_FORMS': '2',
            'parcelas-0-id': '',
            'parcelas-0-numero_parcela': '2',
            'parcelas-0-valor_parcela': '600,00',
            'parcelas-0-data_vencimento': '2024-03-15',
            'parcelas-0-status': 'PENDENTE',
            'parcelas-1-id': '31',
            'parcelas-1-numero_parcela': '1',
            'parcelas-1-valor_parcela': '400',
            'parcelas-1-data_vencimento': '2024-02-15',
            'parcelas-1-status': 'PAGO',
        }
        formset = ParcelaFormSet(data, prefix='parcelas')
        self.assertTrue(formset.is_valid(), formset.errors)

        parcelas = parcelas_do_formset(formset)

        self.assertEqual([p.numero_parcela for p in parcelas], [1, 2])
        self.assertEqual(parcelas[0].id, 31)
        self.assertEqual(parcelas[0].status, StatusParcela.PAGO)
        self.assertEqual(parcelas[1].valor_parcela, Decimal('600.00'))
        self.assertEqual(parcelas[1].data_vencimento.date(), date(2024, 3, 15))
