import calendar
import logging
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

from .api import ApiError, validar_lista
from .models import FormaPagamento, Parcela, StatusParcela

logger = logging.getLogger(__name__)

CENTAVO = Decimal('0.01')

CAMPOS_EDITAVEIS = ('valor_parcela', 'data_vencimento', 'status')


def adicionar_meses(data, meses):
    """
    Avança `meses` meses no calendário mantendo o dia.
    Se o mês de destino for mais curto, usa o último dia dele (31/01 + 1 -> 28/02).
    """
    mes_zero = data.month - 1 + meses
    ano = data.year + mes_zero // 12
    mes = mes_zero % 12 + 1
    dia = min(data.day, calendar.monthrange(ano, mes)[1])
    return data.replace(year=ano, month=mes, day=dia)


def parcela_base(valor_total, qtd_parcelas):
    """Valor das parcelas 1..N-1: total/N arredondado para centavos, meio para cima."""
    return (Decimal(str(valor_total)) / qtd_parcelas).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def gerar_parcelas(valor_total, qtd_parcelas, data_venda, forma_pagamento, id_venda=0):
    """
    Divide o valor da venda em parcelas mensais.

    Todas as parcelas recebem o valor arredondado (meio para cima) de total/qtd,
    menos a última, que fica com o resto para a soma bater exatamente com o total.
    A parcela i vence i meses depois da data da venda.
    """
    valor_total = Decimal(str(valor_total or 0))
    if isinstance(data_venda, date) and not isinstance(data_venda, datetime):
        data_venda = datetime.combine(data_venda, time.min)
    qtd_parcelas = int(qtd_parcelas or 0)

    if forma_pagamento != FormaPagamento.PARCELADO or qtd_parcelas <= 0 or valor_total <= 0:
        return []

    valor_base = parcela_base(valor_total, qtd_parcelas)

    parcelas = []
    for i in range(1, qtd_parcelas + 1):
        if i == qtd_parcelas:
            valor = valor_total - valor_base * (qtd_parcelas - 1)
        else:
            valor = valor_base
        parcelas.append(Parcela(
            numero_parcela=i,
            valor_parcela=valor,
            data_vencimento=adicionar_meses(data_venda, i),
            status=StatusParcela.PENDENTE,
            id_venda=id_venda or 0,
        ))
    return parcelas


def chave_rascunho(valor_total, qtd_parcelas, data_venda):
    """
    Valor, quantidade e dia da venda de que um rascunho de parcelas foi gerado.
    Se a venda submetida tiver outra chave, o rascunho está desatualizado.
    """
    valor = Decimal(str(valor_total or 0)).quantize(CENTAVO)
    if isinstance(data_venda, datetime):
        if timezone.is_aware(data_venda):
            data_venda = timezone.localtime(data_venda)
        data_venda = data_venda.date()
    return f'{valor}|{int(qtd_parcelas or 0)}|{data_venda.isoformat()}'


def atualizar_parcela_local(parcelas, indice, campo, valor):
    """
    Altera um campo de uma parcela do rascunho, sem mexer nas outras.
    Não reequilibra valores: a soma pode deixar de bater com o total.
    """
    if campo not in CAMPOS_EDITAVEIS:
        raise ValueError(f"Campo '{campo}' não pode ser editado")
    return [
        parcela.model_copy(update={campo: valor}) if i == indice else parcela
        for i, parcela in enumerate(parcelas)
    ]


def soma_parcelas(parcelas):
    return sum((p.valor_parcela for p in parcelas), Decimal('0'))


class ParcelaService:
    """Leitura e gravação das parcelas de uma venda na API."""

    def __init__(self, api):
        self.api = api

    def listar_por_venda(self, id_venda):
        data = self.api.get(f'/parcela/venda/{id_venda}', erro_padrao='Erro ao carregar parcelas')
        parcelas = validar_lista(Parcela, data or [], erro='Erro ao carregar parcelas')
        return sorted(parcelas, key=lambda p: p.numero_parcela)

    def carregar_para_edicao(self, id_venda, valor_total, qtd_parcelas, data_venda, forma_pagamento):
        """
        Parcelas de uma venda existente.
        Sem parcelas gravadas (ou se a leitura falhar) gera o rascunho a partir do formulário.
        Devolve (parcelas, erro).
        """
        try:
            parcelas = self.listar_por_venda(id_venda)
        except ApiError as e:
            logger.warning("Erro ao carregar parcelas da venda %s: %s. Gerando automaticamente.", id_venda, e.message)
            return gerar_parcelas(valor_total, qtd_parcelas, data_venda, forma_pagamento, id_venda), 'Erro ao carregar parcelas'

        if not parcelas:
            logger.info("Venda %s sem parcelas gravadas, gerando automaticamente", id_venda)
            return gerar_parcelas(valor_total, qtd_parcelas, data_venda, forma_pagamento, id_venda), None
        return parcelas, None

    def criar_parcelas(self, id_venda, parcelas, forma_pagamento):
        """
        Grava as parcelas uma a uma, em ordem.
        Se uma falhar, as anteriores ficam gravadas.
        """
        if forma_pagamento != FormaPagamento.PARCELADO or not parcelas:
            return []

        criadas = []
        for parcela in sorted(parcelas, key=lambda p: p.numero_parcela):
            payload = parcela.model_copy(update={'id': None, 'id_venda': id_venda}).to_api(exclude_none=True)
            criadas.append(self.api.post('/parcela', json=payload, erro_padrao='Erro ao criar parcela'))
        logger.info("%s parcelas criadas para a venda %s", len(criadas), id_venda)
        return criadas

    def atualizar_parcela(self, parcela):
        if not parcela.id:
            return None
        return self.api.put(f'/parcela/{parcela.id}', json=parcela.to_api(), erro_padrao='Erro ao atualizar parcela')

    def deletar_parcela(self, id_parcela):
        self.api.delete(f'/parcela/{id_parcela}', erro_padrao='Erro ao deletar parcela')

    def substituir_parcelas(self, id_venda, parcelas, forma_pagamento):
        """Apaga todas as parcelas gravadas da venda e recria o rascunho inteiro."""
        try:
            existentes = self.listar_por_venda(id_venda)
        except ApiError as e:
            if e.status_code is None:
                raise
            logger.warning("Não foi possível listar parcelas da venda %s: %s", id_venda, e.message)
            existentes = []

        for parcela in existentes:
            if parcela.id:
                self.deletar_parcela(parcela.id)

        return self.criar_parcelas(id_venda, parcelas, forma_pagamento)
