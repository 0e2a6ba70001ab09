import logging

from django.conf import settings
from django.contrib import messages
from django.http import HttpResponse
from django.shortcuts import redirect, render
from django.utils import timezone
from django.views.decorators.http import require_POST

from .api import ApiError, api_client_for
from .decorators import anonymous_only, token_required
from .forms import (
    DashboardFiltroForm, LoginForm, ParcelaForm, ParcelaFormSet, VendaFiltroForm, VendaForm,
    parcelas_do_formset,
)
from .models import FormaPagamento, StatusParcela
from .parcelas import atualizar_parcela_local, chave_rascunho, gerar_parcelas, soma_parcelas
from .relatorios import exportar_csv, relatorio_vendas
from .services import CadastroService, ComissaoService, DashboardService, VendaService, periodo_padrao
from .vendas_search import SESSION_KEY, VendaSearchController, carregar_dados_auxiliares

logger = logging.getLogger(__name__)


def _id_ou_none(valor):
    try:
        return int(valor)
    except (TypeError, ValueError):
        return None


# ---
# View 1: Login / Logout
# ---
@anonymous_only
def login_view(request):
    """
    Autentica na API e guarda o token num cookie (7 dias).
    """
    form = LoginForm(request.POST or None)

    if request.method == 'POST' and form.is_valid():
        try:
            token = api_client_for(request).login(form.cleaned_data['email'], form.cleaned_data['senha'])
        except ApiError as e:
            form.add_error(None, e.message)
        else:
            conf = settings.IMOBIGEST_API
            response = redirect('home')
            response.set_cookie(conf['token_cookie'], token, max_age=conf['token_max_age'], samesite='Lax')
            logger.info("Login efetuado para %s", form.cleaned_data['email'])
            return response

    return render(request, 'imobigest/login.html', {'form': form})


def logout_view(request):
    request.session.pop(SESSION_KEY, None)
    response = redirect('login')
    response.delete_cookie(settings.IMOBIGEST_API['token_cookie'])
    return response


# ---
# View 2: Dashboard (home)
# ---
@token_required
def home(request):
    """
    Comissões e meta de uma imobiliária no período escolhido.
    Sem filtros: primeira imobiliária e o ano corrente.
    ?visao=mes mostra o mês corrente (/dashboard/{id}).
    """
    api = api_client_for(request)

    imobiliarias = []
    try:
        imobiliarias = CadastroService(api).listar_imobiliarias()
    except ApiError as e:
        messages.error(request, e.message)

    data_inicio, data_fim = periodo_padrao()
    id_imobiliaria = imobiliarias[0].id if imobiliarias else None

    mes_atual = request.GET.get('visao') == 'mes'

    if request.GET and not mes_atual:
        form = DashboardFiltroForm(request.GET, imobiliarias=imobiliarias)
        if form.is_valid():
            data_inicio = form.cleaned_data['data_inicio']
            data_fim = form.cleaned_data['data_fim']
            id_imobiliaria = form.cleaned_data['imobiliaria'] or id_imobiliaria
        else:
            id_imobiliaria = None
    else:
        id_imobiliaria = _id_ou_none(request.GET.get('imobiliaria')) or id_imobiliaria
        form = DashboardFiltroForm(
            imobiliarias=imobiliarias,
            initial={'imobiliaria': id_imobiliaria, 'data_inicio': data_inicio, 'data_fim': data_fim},
        )

    dados, erro = None, None
    if id_imobiliaria:
        try:
            if mes_atual:
                dados = DashboardService(api).dados_do_mes(id_imobiliaria)
            else:
                dados = DashboardService(api).dados_por_periodo(id_imobiliaria, data_inicio, data_fim)
        except ApiError as e:
            logger.error("Erro ao carregar dashboard da imobiliária %s: %s", id_imobiliaria, e.message)
            erro = e.message

    context = {
        'form': form,
        'dados': dados,
        'erro': erro,
    }
    return render(request, 'imobigest/home.html', context)


# ---
# View 3: Lista de vendas (filtros + paginação)
# ---
@token_required
def vendas(request):
    """
    Lista paginada de vendas.
    ?acao=filtrar aplica os filtros do formulário, ?acao=limpar limpa-os,
    ?pagina=N muda de página. Filtros e página ficam na sessão.
    """
    api = api_client_for(request)
    imobiliarias, profissionais = carregar_dados_auxiliares(api)
    controller = VendaSearchController.from_session(
        api, request.session.get(SESSION_KEY), settings.IMOBIGEST_ITENS_POR_PAGINA,
    )

    form = None
    acao = request.GET.get('acao')
    if acao == 'filtrar':
        form = VendaFiltroForm(request.GET, imobiliarias=imobiliarias, profissionais=profissionais)
        if form.is_valid():
            controller.aplicar_filtros(form.to_filtros())
        else:
            controller.refresh()
    elif acao == 'limpar':
        controller.limpar_filtros()
    elif 'pagina' in request.GET:
        controller.set_pagina(_id_ou_none(request.GET['pagina']) or 1)
    else:
        controller.refresh()

    if form is None:
        form = VendaFiltroForm(
            initial=VendaFiltroForm.initial_from(controller.filtros_aplicados),
            imobiliarias=imobiliarias,
            profissionais=profissionais,
        )

    request.session[SESSION_KEY] = controller.to_session()

    resultado = controller.resultado()
    context = {
        'form': form,
        'resultado': resultado,
        'paginas': range(1, resultado.total_paginas + 1),
        'erro': controller.erro,
        'modo': controller.modo,
    }
    return render(request, 'imobigest/vendas.html', context)


@token_required
def vendas_relatorio(request):
    """Totais de todas as vendas (pandas). ?formato=csv descarrega a lista."""
    try:
        todas = VendaService(api_client_for(request)).listar()
    except ApiError as e:
        messages.error(request, e.message)
        return redirect('vendas')

    if request.GET.get('formato') == 'csv':
        response = HttpResponse(content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = 'attachment; filename="vendas.csv"'
        exportar_csv(todas, response)
        return response

    return render(request, 'imobigest/vendas_relatorio.html', {'relatorio': relatorio_vendas(todas)})


# ---
# View 4: Criar / editar venda
# ---
def _parcelas_formset(parcelas):
    return ParcelaFormSet(initial=[ParcelaForm.initial_from(p) for p in parcelas], prefix='parcelas')


def _venda_form(request, venda_id=None):
    """
    Formulário de venda com comissões e parcelas.

    acao=gerar  -> (re)gera as parcelas a partir do valor, quantidade e data.
    acao=salvar -> grava venda, comissões e parcelas, por esta ordem.
    """
    api = api_client_for(request)
    service = VendaService(api)

    try:
        imobiliarias = CadastroService(api).listar_imobiliarias()
        todos_profissionais = service.comissoes.listar_profissionais_completo()
        venda = service.obter(venda_id) if venda_id else None
    except ApiError as e:
        messages.error(request, e.message)
        return redirect('vendas')

    if request.method == 'POST':
        id_imobiliaria = _id_ou_none(request.POST.get('id_imobiliaria'))
    else:
        id_imobiliaria = venda.imobiliaria_id if venda else None

    # Sem imobiliária escolhida, mostra todos os profissionais
    if id_imobiliaria:
        profissionais = ComissaoService.profissionais_da_imobiliaria(todos_profissionais, id_imobiliaria)
    else:
        profissionais = todos_profissionais

    parcelas = None
    origem = request.POST.get('parcelas_origem', '')
    form_kwargs = {'imobiliarias': imobiliarias, 'profissionais': profissionais}

    if request.method == 'POST':
        form = VendaForm(request.POST, **form_kwargs)
        formset = ParcelaFormSet(request.POST, prefix='parcelas')
        acao = request.POST.get('acao', 'salvar')

        if form.is_valid():
            nova = form.to_venda()
            parcelado = nova.forma_pagamento == FormaPagamento.PARCELADO
            chave = chave_rascunho(nova.valor_total, nova.qtd_parcelas, nova.data_venda)

            if acao == 'gerar':
                parcelas = gerar_parcelas(
                    nova.valor_total, nova.qtd_parcelas, nova.data_venda, nova.forma_pagamento, venda_id or 0,
                )
                formset = _parcelas_formset(parcelas)
                origem = chave
            else:
                pronto = True
                if not parcelado:
                    # À vista: nenhuma parcela é gravada
                    parcelas = []
                elif formset.total_form_count() != nova.qtd_parcelas or origem != chave:
                    # Rascunho ausente ou feito para outro valor, quantidade ou data
                    parcelas = gerar_parcelas(
                        nova.valor_total, nova.qtd_parcelas, nova.data_venda, nova.forma_pagamento, venda_id or 0,
                    )
                    formset = _parcelas_formset(parcelas)
                    origem = chave
                elif formset.is_valid():
                    parcelas = parcelas_do_formset(formset, nova.data_venda)
                else:
                    pronto = False

                if pronto:
                    ids = set(form.cleaned_data.get('profissionais') or [])
                    selecionados = [
                        (p.id, ComissaoService.cargos_do_profissional(p))
                        for p in todos_profissionais if p.id in ids
                    ]
                    try:
                        _, mensagem = service.salvar(nova, parcelas, selecionados, venda_id)
                    except ApiError as e:
                        logger.error("Erro ao salvar venda: %s", e.message)
                        messages.error(request, e.message)
                    else:
                        messages.success(request, mensagem)
                        return redirect('vendas')
    else:
        if venda is None:
            agora = timezone.localtime().replace(second=0, microsecond=0)
            form = VendaForm(initial={'data_venda': agora, 'forma_pagamento': FormaPagamento.A_VISTA}, **form_kwargs)
            parcelas = []
        else:
            initial = VendaForm.initial_from(venda)
            try:
                comissoes = service.comissoes.comissoes_da_venda(venda_id)
                initial['profissionais'] = sorted({c.id_profissional for c in comissoes})
            except ApiError as e:
                messages.warning(request, f'Não foi possível carregar as comissões: {e.message}')
            form = VendaForm(initial=initial, **form_kwargs)

            parcelas = []
            if venda.forma_pagamento == FormaPagamento.PARCELADO:
                parcelas, erro = service.parcelas.carregar_para_edicao(
                    venda_id, venda.valor_total, venda.qtd_parcelas, venda.data_venda, venda.forma_pagamento,
                )
                if erro:
                    messages.warning(request, erro)
                origem = chave_rascunho(venda.valor_total, venda.qtd_parcelas, venda.data_venda)
        formset = _parcelas_formset(parcelas)

    context = {
        'form': form,
        'formset': formset,
        'venda': venda,
        'venda_id': venda_id,
        'soma_parcelas': soma_parcelas(parcelas) if parcelas else None,
        'parcelas_origem': origem,
        'page_title': 'Editar Venda' if venda_id else 'Nova Venda',
    }
    return render(request, 'imobigest/venda_form.html', context)


@token_required
def venda_criar(request):
    return _venda_form(request)


@token_required
def venda_editar(request, venda_id):
    return _venda_form(request, venda_id)


@token_required
def venda_excluir(request, venda_id):
    service = VendaService(api_client_for(request))

    if request.method == 'POST':
        try:
            service.deletar(venda_id)
            messages.success(request, 'Venda deletada com sucesso!')
        except ApiError as e:
            messages.error(request, e.message)
        return redirect('vendas')

    try:
        venda = service.obter(venda_id)
    except ApiError as e:
        messages.error(request, e.message)
        return redirect('vendas')
    return render(request, 'imobigest/venda_confirm_delete.html', {'venda': venda})


@token_required
def venda_parcelas(request, venda_id):
    """Parcelas gravadas de uma venda, com o estado de cada uma."""
    service = VendaService(api_client_for(request))
    try:
        venda = service.obter(venda_id)
        parcelas = service.parcelas.listar_por_venda(venda_id)
    except ApiError as e:
        messages.error(request, e.message)
        return redirect('vendas')

    context = {
        'venda': venda,
        'parcelas': parcelas,
        'soma_parcelas': soma_parcelas(parcelas),
    }
    return render(request, 'imobigest/venda_parcelas.html', context)


@token_required
@require_POST
def parcela_status(request, venda_id, parcela_id):
    """Marca uma parcela gravada com um novo status (ex: PAGO)."""
    status = request.POST.get('status')
    if status not in StatusParcela.values:
        messages.error(request, 'Status inválido.')
        return redirect('venda_parcelas', venda_id=venda_id)

    service = VendaService(api_client_for(request))
    try:
        parcelas = service.parcelas.listar_por_venda(venda_id)
        indice = next((i for i, p in enumerate(parcelas) if p.id == parcela_id), None)
        if indice is None:
            raise ApiError('Parcela não encontrada')
        parcelas = atualizar_parcela_local(parcelas, indice, 'status', StatusParcela(status))
        service.parcelas.atualizar_parcela(parcelas[indice])
        messages.success(request, 'Parcela atualizada com sucesso!')
    except ApiError as e:
        messages.error(request, e.message)
    return redirect('venda_parcelas', venda_id=venda_id)
