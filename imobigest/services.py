import calendar
import logging
from datetime import date
from decimal import Decimal

from .api import ApiError, validar, validar_lista
from .models import (
    Cargo, Comissao, ConfigComissao, DashboardApiResponse, DashboardData,
    FormaPagamento, Imobiliaria, Profissional, ProfissionalCargo, Venda,
)
from .parcelas import ParcelaService

logger = logging.getLogger(__name__)


# ---
# Comissões
# ---
class ComissaoService:

    def __init__(self, api):
        self.api = api

    def listar_profissionais_completo(self):
        """Profissionais com imobiliária e cargos (para o formulário de comissão)."""
        data = self.api.get('/profissional/completo', erro_padrao='Erro ao carregar profissionais')
        return validar_lista(Profissional, data or [])

    @staticmethod
    def profissionais_da_imobiliaria(profissionais, id_imobiliaria):
        if not id_imobiliaria:
            return []
        return [p for p in profissionais if p.imobiliaria_id == id_imobiliaria]

    @staticmethod
    def cargos_do_profissional(profissional):
        # Todos os cargos do profissional entram na comissão
        return [cargo.id for cargo in profissional.cargos]

    def comissoes_da_venda(self, id_venda):
        """
        Comissões já gravadas para a venda.
        Se /comissao/venda/{id} falhar, busca todas e filtra por idVenda.
        """
        try:
            data = self.api.get(f'/comissao/venda/{id_venda}')
            return validar_lista(Comissao, data or [])
        except ApiError as e:
            if e.status_code is None:
                raise
            logger.info("Endpoint específico de comissões falhou (%s), filtrando /comissao", e.status_code)

        todas = validar_lista(Comissao, self.api.get('/comissao') or [])
        return [c for c in todas if c.id_venda == int(id_venda)]

    def criar_comissao(self, id_venda, id_profissional, ids_cargos):
        if not ids_cargos:
            raise ApiError('Nenhum cargo selecionado para a comissão')
        payload = {
            'idVenda': int(id_venda),
            'idProfissional': int(id_profissional),
            'idsCargos': [int(i) for i in ids_cargos],
        }
        return self.api.post('/comissao/com-cargo', json=payload, erro_padrao='Erro ao criar comissão')

    def criar_comissoes(self, id_venda, selecionados):
        """`selecionados` é uma lista de (id_profissional, ids_cargos)."""
        return [self.criar_comissao(id_venda, id_prof, ids_cargos) for id_prof, ids_cargos in selecionados]

    def atualizar_comissoes(self, id_venda, selecionados):
        """Apaga as comissões da venda e recria a partir da seleção atual."""
        if not selecionados:
            return []
        self.api.delete(f'/comissao/venda/{id_venda}', erro_padrao='Erro ao remover comissões')
        return self.criar_comissoes(id_venda, selecionados)


# ---
# Vendas
# ---
class VendaService:

    def __init__(self, api):
        self.api = api
        self.parcelas = ParcelaService(api)
        self.comissoes = ComissaoService(api)

    def obter(self, id_venda):
        return validar(Venda, self.api.get(f'/venda/{id_venda}', erro_padrao='Venda não encontrada'))

    def listar(self):
        data = self.api.get('/venda', erro_padrao='Erro ao buscar vendas')
        if isinstance(data, dict):
            data = data.get('vendas') or data.get('data') or []
        return validar_lista(Venda, data or [])

    def deletar(self, id_venda):
        self.api.delete(f'/venda/{id_venda}', erro_padrao='Erro ao deletar venda')
        logger.info("Venda %s deletada", id_venda)

    def salvar(self, venda, parcelas, selecionados, venda_id=None):
        """
        Cria ou atualiza a venda e depois as comissões e parcelas, em sequência.

        Não há rollback: se uma etapa falhar, as anteriores ficam gravadas e o
        ApiError sobe para quem chamou.
        Devolve (id_venda, mensagem_de_sucesso).
        """
        criando = venda_id is None
        if criando and not selecionados:
            raise ApiError('Selecione pelo menos um profissional para a comissão')

        payload = venda.to_api(exclude={'id', 'imobiliaria'})
        if criando:
            resposta = self.api.post('/venda', json=payload, erro_padrao='Erro ao criar venda')
        else:
            resposta = self.api.put(f'/venda/{venda_id}', json=payload, erro_padrao='Erro ao atualizar venda')

        parcelado = venda.forma_pagamento == FormaPagamento.PARCELADO

        if criando:
            novo_id = (resposta or {}).get('id')
            if not novo_id:
                raise ApiError('Resposta da API sem o id da venda criada')
            logger.info("Venda %s criada", novo_id)
            self.comissoes.criar_comissoes(novo_id, selecionados)
            if parcelado:
                self.parcelas.criar_parcelas(novo_id, parcelas, venda.forma_pagamento)
                return novo_id, 'Venda, comissões e parcelas criadas com sucesso!'
            return novo_id, 'Venda e comissões criadas com sucesso!'

        logger.info("Venda %s atualizada", venda_id)
        if selecionados:
            self.comissoes.atualizar_comissoes(venda_id, selecionados)
        if parcelado:
            self.parcelas.substituir_parcelas(venda_id, parcelas, venda.forma_pagamento)

        if parcelado and selecionados:
            mensagem = 'Venda, comissões e parcelas atualizadas com sucesso!'
        elif selecionados:
            mensagem = 'Venda e comissões atualizadas com sucesso!'
        elif parcelado:
            mensagem = 'Venda e parcelas atualizadas com sucesso!'
        else:
            mensagem = 'Venda atualizada com sucesso!'
        return venda_id, mensagem


# ---
# Cadastros: imobiliárias, cargos, profissionais e configuração de comissão
# ---
class CadastroService:

    def __init__(self, api):
        self.api = api

    # Imobiliárias
    def listar_imobiliarias(self):
        return validar_lista(Imobiliaria, self.api.get('/imobiliaria', erro_padrao='Erro ao carregar imobiliárias') or [])

    def obter_imobiliaria(self, id_imobiliaria):
        return validar(Imobiliaria, self.api.get(f'/imobiliaria/{id_imobiliaria}', erro_padrao='Imobiliária não encontrada'))

    def salvar_imobiliaria(self, nome, meta, id_imobiliaria=None):
        payload = {'nome': nome, 'meta': float(meta or 0)}
        if id_imobiliaria is None:
            return self.api.post('/imobiliaria', json=payload, erro_padrao='Erro ao criar imobiliária')
        return self.api.put(f'/imobiliaria/{id_imobiliaria}', json=payload, erro_padrao='Erro ao atualizar imobiliária')

    def deletar_imobiliaria(self, id_imobiliaria):
        self.api.delete(f'/imobiliaria/{id_imobiliaria}', erro_padrao='Erro ao deletar imobiliária')

    # Cargos
    def listar_cargos(self):
        return validar_lista(Cargo, self.api.get('/cargo', erro_padrao='Erro ao carregar cargos') or [])

    def obter_cargo(self, id_cargo):
        return validar(Cargo, self.api.get(f'/cargo/{id_cargo}', erro_padrao='Cargo não encontrado'))

    def salvar_cargo(self, nome, comissao_automatica, id_cargo=None):
        payload = {'nome': nome, 'comissaoAutomatica': bool(comissao_automatica)}
        if id_cargo is None:
            return self.api.post('/cargo', json=payload, erro_padrao='Erro ao criar cargo')
        return self.api.put(f'/cargo/{id_cargo}', json=payload, erro_padrao='Erro ao atualizar cargo')

    def deletar_cargo(self, id_cargo):
        self.api.delete(f'/cargo/{id_cargo}', erro_padrao='Erro ao deletar cargo')

    # Profissionais
    def listar_profissionais(self):
        data = self.api.get('/profissional/completo', erro_padrao='Erro ao carregar profissionais')
        return validar_lista(Profissional, data or [])

    def obter_profissional(self, id_profissional):
        return validar(Profissional, self.api.get(f'/profissional/{id_profissional}', erro_padrao='Profissional não encontrado'))

    def salvar_profissional(self, nome, id_imobiliaria, id_profissional=None):
        payload = {'nome': nome, 'idImobiliaria': int(id_imobiliaria)}
        if id_profissional is None:
            return self.api.post('/profissional', json=payload, erro_padrao='Erro ao criar profissional')
        return self.api.put(f'/profissional/{id_profissional}', json=payload, erro_padrao='Erro ao atualizar profissional')

    def deletar_profissional(self, id_profissional):
        self.api.delete(f'/profissional/{id_profissional}', erro_padrao='Erro ao deletar profissional')

    def cargos_do_profissional(self, id_profissional):
        data = self.api.get(f'/profissional-cargo/profissional/{id_profissional}', erro_padrao='Erro ao carregar cargos do profissional')
        return validar_lista(ProfissionalCargo, data or [])

    def adicionar_cargo(self, id_profissional, id_cargo):
        payload = {'idProfissional': int(id_profissional), 'idCargo': int(id_cargo)}
        return self.api.post('/profissional-cargo', json=payload, erro_padrao='Erro ao adicionar cargo')

    def remover_cargo(self, id_profissional_cargo):
        self.api.delete(f'/profissional-cargo/{id_profissional_cargo}', erro_padrao='Erro ao remover cargo')

    # Configuração de comissão por imobiliária
    def listar_config_comissao(self, id_imobiliaria):
        data = self.api.get(
            f'/config-comissao/imobiliaria/{id_imobiliaria}',
            erro_padrao='Erro ao carregar configurações de comissão',
        )
        return validar_lista(ConfigComissao, data or [])

    def salvar_config_comissao(self, id_imobiliaria, id_cargo, percentual, id_config=None):
        payload = {
            'idImobiliaria': int(id_imobiliaria),
            'idCargo': int(id_cargo),
            'percentual': float(percentual),
        }
        if id_config is None:
            return self.api.post('/config-comissao', json=payload, erro_padrao='Erro ao criar configuração de comissão')
        return self.api.put(f'/config-comissao/{id_config}', json=payload, erro_padrao='Erro ao atualizar configuração de comissão')

    def deletar_config_comissao(self, id_config):
        self.api.delete(f'/config-comissao/{id_config}', erro_padrao='Erro ao excluir configuração de comissão')


# ---
# Dashboard
# ---
def periodo_padrao(hoje=None):
    """Ano corrente inteiro: 01/01 a 31/12."""
    hoje = hoje or date.today()
    return date(hoje.year, 1, 1), date(hoje.year, 12, 31)


class DashboardService:

    def __init__(self, api):
        self.api = api

    def dados_por_periodo(self, id_imobiliaria, data_inicio, data_fim):
        data = self.api.get(
            f'/dashboard/periodo/{id_imobiliaria}',
            params={'dataInicio': data_inicio.isoformat(), 'dataFim': data_fim.isoformat()},
            erro_padrao='Erro ao buscar dados do dashboard por período',
        )
        return self.transformar(validar(DashboardApiResponse, data or {}), id_imobiliaria, data_inicio, data_fim)

    def dados_do_mes(self, id_imobiliaria, periodo=None):
        params = {'periodo': periodo} if periodo else None
        data = self.api.get(
            f'/dashboard/{id_imobiliaria}',
            params=params,
            erro_padrao='Erro ao buscar dados do dashboard',
        )
        return self.transformar(validar(DashboardApiResponse, data or {}), id_imobiliaria)

    def _nome_imobiliaria(self, id_imobiliaria):
        imobiliarias = validar_lista(Imobiliaria, self.api.get('/imobiliaria', erro_padrao='Erro ao buscar imobiliárias') or [])
        imobiliaria = next((i for i in imobiliarias if i.id == int(id_imobiliaria)), None)
        return imobiliaria.nome if imobiliaria else 'Imobiliária'

    def transformar(self, resposta, id_imobiliaria, data_inicio=None, data_fim=None, hoje=None):
        """Converte a resposta crua de /dashboard para o formato mostrado na página."""
        hoje = hoje or date.today()
        if data_inicio is None:
            data_inicio = hoje.replace(day=1)
        if data_fim is None:
            data_fim = hoje.replace(day=calendar.monthrange(hoje.year, hoje.month)[1])

        return DashboardData(
            imobiliaria={
                'id': int(id_imobiliaria),
                'nome': self._nome_imobiliaria(id_imobiliaria),
                'meta': resposta.meta_imobiliaria,
            },
            resumo={
                'meta_imobiliaria': resposta.meta_imobiliaria,
                'falta_para_meta': resposta.valor_para_meta,
                'comissao_geral_total': resposta.comissao_geral_total,
            },
            medias={
                'mensal_ano_comissao': resposta.media_mensal_ano_comissao or Decimal('0'),
                'periodo_comissao': resposta.media_periodo_comissao or Decimal('0'),
            },
            comissoes_por_cargo=resposta.comissoes_por_cargo or [],
            comissoes_automaticas_por_cargo=resposta.comissoes_automaticas_por_cargo or [],
            comissoes_manuais_por_cargo=resposta.comissoes_manuais_por_cargo or [],
            periodo={
                'ano': data_inicio.year,
                'mes': data_inicio.month,
                'data_inicio': data_inicio,
                'data_fim': data_fim,
            },
        )
