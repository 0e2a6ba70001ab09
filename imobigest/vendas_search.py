import itertools
import logging

from .api import ApiError, validar, validar_lista
from .models import FiltrosVenda, Imobiliaria, PaginaVendas, Profissional, Venda

logger = logging.getLogger(__name__)

SESSION_KEY = 'venda_search'

ITENS_POR_PAGINA_PADRAO = 10


def build_query_params(filtros, pagina, itens_por_pagina=ITENS_POR_PAGINA_PADRAO):
    """
    Monta os parâmetros de /venda/search.
    Só entram os filtros preenchidos; a página vai em base 0 (convenção do Spring).
    """
    params = []

    descricao = (filtros.descricao or '').strip()
    if descricao:
        params.append(('descricao', descricao))
    if filtros.valor_min is not None and filtros.valor_min > 0:
        params.append(('valorMin', str(filtros.valor_min)))
    if filtros.valor_max is not None and filtros.valor_max > 0:
        params.append(('valorMax', str(filtros.valor_max)))
    if filtros.data_inicio:
        params.append(('dataInicio', filtros.data_inicio.isoformat()))
    if filtros.data_fim:
        params.append(('dataFim', filtros.data_fim.isoformat()))
    if filtros.forma_pagamento:
        params.append(('formaPagamento', str(filtros.forma_pagamento.value)))
    if filtros.id_imobiliaria is not None and filtros.id_imobiliaria > 0:
        params.append(('idImobiliaria', str(filtros.id_imobiliaria)))
    if filtros.id_profissional is not None and filtros.id_profissional > 0:
        params.append(('idProfissional', str(filtros.id_profissional)))
    if filtros.status_parcela:
        params.append(('statusParcela', str(filtros.status_parcela.value)))

    params.append(('page', str(pagina - 1)))
    params.append(('limit', str(itens_por_pagina)))
    params.append(('sortBy', 'valorTotal'))
    params.append(('sortOrder', 'DESC'))
    return params


def filtrar_localmente(vendas, filtros):
    """
    Aplica os filtros em memória quando a API não oferece /venda/search.

    Profissional e status de parcela ficam de fora: dependem de comissões e
    parcelas, que não vêm em /venda.
    """
    descricao = (filtros.descricao or '').strip().lower()

    def passa(venda):
        if descricao and descricao not in (venda.descricao_imovel or '').lower():
            return False
        if filtros.valor_min and venda.valor_total < filtros.valor_min:
            return False
        if filtros.valor_max and venda.valor_total > filtros.valor_max:
            return False
        if filtros.data_inicio and venda.data < filtros.data_inicio:
            return False
        if filtros.data_fim and venda.data > filtros.data_fim:
            return False
        if filtros.forma_pagamento and venda.forma_pagamento != filtros.forma_pagamento:
            return False
        if filtros.id_imobiliaria and venda.imobiliaria_id != filtros.id_imobiliaria:
            return False
        return True

    return [v for v in vendas if passa(v)]


def paginar(itens, pagina, itens_por_pagina):
    inicio = (pagina - 1) * itens_por_pagina
    return itens[inicio:inicio + itens_por_pagina]


def _lista_do_fallback(data):
    # /venda pode devolver a lista crua ou embrulhada em 'vendas' / 'data'
    if isinstance(data, dict):
        for chave in ('vendas', 'data'):
            if isinstance(data.get(chave), list):
                return data[chave]
        return []
    if isinstance(data, list):
        return data
    return []


class VendaSearchController:
    """
    Estado da lista de vendas: filtros aplicados, página, resultado e erro.

    Tenta primeiro a busca paginada da API; se ela não existir (404) ou não for
    permitida (403), busca /venda inteira e filtra/pagina localmente.
    Cada busca recebe um número de geração; só a resposta da busca mais recente é aplicada.
    """

    def __init__(self, api, itens_por_pagina=ITENS_POR_PAGINA_PADRAO, filtros=None, pagina=1):
        self.api = api
        self.itens_por_pagina = itens_por_pagina
        self.filtros_aplicados = filtros or FiltrosVenda()
        self.pagina_atual = max(int(pagina or 1), 1)

        self.vendas = []
        self.total_itens = 0
        self.erro = None
        self.carregando = False
        self.modo = None

        self._geracoes = itertools.count(1)
        self._geracao_atual = 0

    @property
    def total_paginas(self):
        return self.resultado().total_paginas

    def resultado(self):
        return PaginaVendas(
            vendas=self.vendas,
            total_itens=self.total_itens,
            pagina_atual=self.pagina_atual,
            itens_por_pagina=self.itens_por_pagina,
        )

    # --- Ações do utilizador ---

    def aplicar_filtros(self, filtros):
        """Troca os filtros e volta para a página 1."""
        self.filtros_aplicados = filtros
        self.pagina_atual = 1
        return self.buscar(self.filtros_aplicados, self.pagina_atual)

    def limpar_filtros(self):
        return self.aplicar_filtros(FiltrosVenda())

    def set_pagina(self, pagina):
        """Muda de página mantendo os filtros."""
        self.pagina_atual = max(int(pagina), 1)
        return self.buscar(self.filtros_aplicados, self.pagina_atual)

    def refresh(self):
        """Repete a última busca (após criar, editar ou apagar uma venda)."""
        return self.buscar(self.filtros_aplicados, self.pagina_atual)

    # --- Busca ---

    def _nova_geracao(self):
        self._geracao_atual = next(self._geracoes)
        return self._geracao_atual

    def _aplicar(self, geracao, vendas, total, pagina, modo, erro=None):
        if geracao != self._geracao_atual:
            logger.debug("Descartando resposta obsoleta da busca %s", geracao)
            return False
        self.vendas = vendas
        self.total_itens = total
        self.pagina_atual = pagina
        self.modo = modo
        self.erro = erro
        self.carregando = False
        return True

    def buscar(self, filtros, pagina):
        geracao = self._nova_geracao()
        self.carregando = True
        self.erro = None

        params = build_query_params(filtros, pagina, self.itens_por_pagina)
        logger.info("Buscando vendas com filtros: %s", params)

        try:
            try:
                data = self.api.get('/venda/search', params=params, erro_padrao='Erro ao buscar vendas')
            except ApiError as e:
                if e.status_code not in (403, 404):
                    raise
                logger.info("Endpoint /venda/search não disponível (%s), usando /venda com filtros locais", e.status_code)
                data = self.api.get('/venda', erro_padrao='Erro ao buscar vendas')
                self._resultado_local(geracao, data, filtros, pagina)
            else:
                self._resultado_remoto(geracao, data, pagina)
        except ApiError as e:
            logger.error("Erro ao buscar vendas: %s", e.message)
            self._aplicar(geracao, [], 0, pagina, self.modo, erro=e.message)

        return self.resultado()

    def _resultado_remoto(self, geracao, data, pagina):
        data = data if isinstance(data, dict) else {}
        conteudo = data.get('content') if isinstance(data.get('content'), list) else []
        vendas = validar_lista(Venda, conteudo, erro='Erro ao buscar vendas')

        pageable = data.get('pageable') or {}
        if isinstance(pageable, dict) and pageable.get('pageNumber') is not None:
            pagina = int(pageable['pageNumber']) + 1

        self._aplicar(geracao, vendas, int(data.get('totalElements') or 0), pagina, 'remoto')

    def _resultado_local(self, geracao, data, filtros, pagina):
        vendas = validar_lista(Venda, _lista_do_fallback(data), erro='Erro ao buscar vendas')
        filtradas = filtrar_localmente(vendas, filtros)
        self._aplicar(
            geracao,
            paginar(filtradas, pagina, self.itens_por_pagina),
            len(filtradas),
            pagina,
            'local',
        )

    # --- Sessão ---

    def to_session(self):
        return {
            'filtros': self.filtros_aplicados.model_dump(mode='json'),
            'pagina': self.pagina_atual,
        }

    @classmethod
    def from_session(cls, api, data, itens_por_pagina=ITENS_POR_PAGINA_PADRAO):
        data = data or {}
        try:
            filtros = validar(FiltrosVenda, data.get('filtros') or {})
        except ApiError:
            filtros = FiltrosVenda()
        return cls(api, itens_por_pagina=itens_por_pagina, filtros=filtros, pagina=data.get('pagina') or 1)


def carregar_dados_auxiliares(api):
    """Imobiliárias e profissionais para os selects do filtro. Falhas viram listas vazias."""
    imobiliarias, profissionais = [], []
    try:
        imobiliarias = validar_lista(Imobiliaria, api.get('/imobiliaria'))
    except ApiError as e:
        logger.error("Erro ao carregar imobiliárias: %s", e.message)
    try:
        profissionais = validar_lista(Profissional, api.get('/profissional'))
    except ApiError as e:
        logger.error("Erro ao carregar profissionais: %s", e.message)
    return imobiliarias, profissionais
