# imobigest/cadastro_views.py

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect
from django.urls import reverse, reverse_lazy
from django.views.generic import FormView, TemplateView, View

from .api import ApiError, api_client_for
from .decorators import tem_token
from .forms import CargoForm, ConfigComissaoForm, ImobiliariaForm, ProfissionalCargoForm, ProfissionalForm
from .services import CadastroService


# ---
# Mixins
# ---
class TokenRequiredMixin:
    """
    Equivalente ao decorator @token_required para Vistas Baseadas em Classes.
    Deixa em self.cadastros o serviço já ligado ao token do utilizador.
    """

    def dispatch(self, request, *args, **kwargs):
        if not tem_token(request):
            return redirect(settings.LOGIN_URL)
        self.api = api_client_for(request)
        self.cadastros = CadastroService(self.api)
        return super().dispatch(request, *args, **kwargs)


class ApiFormView(TokenRequiredMixin, FormView):
    """
    Formulário de criação/edição gravado na API.
    Subclasses definem carregar() (só na edição) e salvar(cleaned_data).
    """
    template_name = 'imobigest/cadastro_form.html'
    page_title = ''
    mensagem_sucesso = ''
    objeto = None

    def carregar(self):
        return None

    def salvar(self, cleaned_data):
        raise NotImplementedError

    def get_erro_url(self):
        return self.get_success_url()

    def get(self, request, *args, **kwargs):
        try:
            self.objeto = self.carregar()
        except ApiError as e:
            messages.error(request, e.message)
            return redirect(self.get_erro_url())
        return super().get(request, *args, **kwargs)

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['page_title'] = self.page_title
        context['cancel_url'] = self.get_success_url()
        return context

    def form_valid(self, form):
        try:
            self.salvar(form.cleaned_data)
        except ApiError as e:
            form.add_error(None, e.message)
            return self.form_invalid(form)
        messages.success(self.request, self.mensagem_sucesso)
        return super().form_valid(form)


class ApiDeleteView(TokenRequiredMixin, TemplateView):
    """(Delete) - Página de confirmação; o POST apaga na API."""
    template_name = 'imobigest/cadastro_confirm_delete.html'
    success_url = None
    page_title = ''
    mensagem_sucesso = ''

    def deletar(self):
        raise NotImplementedError

    def get_success_url(self):
        return self.success_url

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['page_title'] = self.page_title
        context['cancel_url'] = self.get_success_url()
        return context

    def post(self, request, *args, **kwargs):
        try:
            self.deletar()
            messages.success(request, self.mensagem_sucesso)
        except ApiError as e:
            messages.error(request, e.message)
        return redirect(self.get_success_url())


# ---
# Configurações: imobiliárias e cargos
# ---
class ConfiguracoesView(TokenRequiredMixin, TemplateView):
    """(Read) - Lista imobiliárias e cargos."""
    template_name = 'imobigest/configuracoes.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['imobiliarias'] = []
        context['cargos'] = []
        try:
            context['imobiliarias'] = self.cadastros.listar_imobiliarias()
        except ApiError as e:
            messages.error(self.request, e.message)
        try:
            context['cargos'] = self.cadastros.listar_cargos()
        except ApiError as e:
            messages.error(self.request, e.message)
        return context


class ImobiliariaCreateView(ApiFormView):
    form_class = ImobiliariaForm
    success_url = reverse_lazy('configuracoes')
    page_title = 'Nova Imobiliária'
    mensagem_sucesso = 'Imobiliária criada com sucesso!'

    def salvar(self, cleaned_data):
        self.cadastros.salvar_imobiliaria(cleaned_data['nome'], cleaned_data.get('meta'))


class ImobiliariaUpdateView(ImobiliariaCreateView):
    page_title = 'Editar Imobiliária'
    mensagem_sucesso = 'Imobiliária atualizada com sucesso!'

    def carregar(self):
        return self.cadastros.obter_imobiliaria(self.kwargs['pk'])

    def get_initial(self):
        if self.objeto is None:
            return {}
        return {'nome': self.objeto.nome, 'meta': self.objeto.meta}

    def salvar(self, cleaned_data):
        self.cadastros.salvar_imobiliaria(cleaned_data['nome'], cleaned_data.get('meta'), self.kwargs['pk'])


class ImobiliariaDeleteView(ApiDeleteView):
    success_url = reverse_lazy('configuracoes')
    page_title = 'Excluir Imobiliária'
    mensagem_sucesso = 'Imobiliária deletada com sucesso!'

    def deletar(self):
        self.cadastros.deletar_imobiliaria(self.kwargs['pk'])


class CargoCreateView(ApiFormView):
    form_class = CargoForm
    success_url = reverse_lazy('configuracoes')
    page_title = 'Novo Cargo'
    mensagem_sucesso = 'Cargo criado com sucesso!'

    def salvar(self, cleaned_data):
        self.cadastros.salvar_cargo(cleaned_data['nome'], cleaned_data['comissao_automatica'])


class CargoUpdateView(CargoCreateView):
    page_title = 'Editar Cargo'
    mensagem_sucesso = 'Cargo atualizado com sucesso!'

    def carregar(self):
        return self.cadastros.obter_cargo(self.kwargs['pk'])

    def get_initial(self):
        if self.objeto is None:
            return {}
        return {'nome': self.objeto.nome, 'comissao_automatica': self.objeto.comissao_automatica}

    def salvar(self, cleaned_data):
        self.cadastros.salvar_cargo(cleaned_data['nome'], cleaned_data['comissao_automatica'], self.kwargs['pk'])


class CargoDeleteView(ApiDeleteView):
    success_url = reverse_lazy('configuracoes')
    page_title = 'Excluir Cargo'
    mensagem_sucesso = 'Cargo deletado com sucesso!'

    def deletar(self):
        self.cadastros.deletar_cargo(self.kwargs['pk'])


# ---
# Configuração de comissão por imobiliária
# ---
class ConfigComissaoView(ApiFormView):
    """
    Percentuais de comissão de cada cargo numa imobiliária.
    ?editar=<id> carrega uma configuração existente no formulário.
    """
    form_class = ConfigComissaoForm
    template_name = 'imobigest/config_comissao.html'
    mensagem_sucesso = 'Configuração de comissão salva com sucesso!'

    def get_success_url(self):
        return reverse('config_comissao', kwargs={'pk': self.kwargs['pk']})

    def dispatch(self, request, *args, **kwargs):
        self.cargos = []
        self.configs = []
        return super().dispatch(request, *args, **kwargs)

    def get_erro_url(self):
        return reverse('configuracoes')

    def carregar(self):
        imobiliaria = self.cadastros.obter_imobiliaria(self.kwargs['pk'])
        self.cargos = self.cadastros.listar_cargos()
        self.configs = self.cadastros.listar_config_comissao(self.kwargs['pk'])
        return imobiliaria

    def post(self, request, *args, **kwargs):
        try:
            self.objeto = self.carregar()
        except ApiError as e:
            messages.error(request, e.message)
            return redirect(self.get_erro_url())
        return super().post(request, *args, **kwargs)

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs['cargos'] = self.cargos
        return kwargs

    def _editando(self):
        valor = self.request.POST.get('id_config') or self.request.GET.get('editar')
        try:
            id_config = int(valor)
        except (TypeError, ValueError):
            return None
        return next((c for c in self.configs if c.id == id_config), None)

    def get_initial(self):
        config = self._editando()
        if config is None:
            return {}
        return {'id_cargo': config.id_cargo, 'percentual': config.percentual}

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['imobiliaria'] = self.objeto
        context['page_title'] = f"Comissões - {self.objeto.nome}" if self.objeto else 'Comissões'
        context['configs'] = [(c, c.nome_cargo(self.cargos)) for c in self.configs]
        context['editando'] = self._editando()
        context['cancel_url'] = reverse('configuracoes')
        return context

    def salvar(self, cleaned_data):
        editando = self._editando()
        self.cadastros.salvar_config_comissao(
            self.kwargs['pk'],
            cleaned_data['id_cargo'],
            cleaned_data['percentual'],
            editando.id if editando else None,
        )


class ConfigComissaoDeleteView(TokenRequiredMixin, View):

    def post(self, request, pk, config_id):
        try:
            self.cadastros.deletar_config_comissao(config_id)
            messages.success(request, 'Configuração de comissão excluída com sucesso!')
        except ApiError as e:
            messages.error(request, e.message)
        return redirect('config_comissao', pk=pk)


# ---
# Profissionais
# ---
class ProfissionalListView(TokenRequiredMixin, TemplateView):
    """(Read) - Profissionais, opcionalmente filtrados por imobiliária (?imobiliaria=<id>)."""
    template_name = 'imobigest/profissionais.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        profissionais, imobiliarias = [], []
        try:
            imobiliarias = self.cadastros.listar_imobiliarias()
            profissionais = self.cadastros.listar_profissionais()
        except ApiError as e:
            messages.error(self.request, e.message)

        selecionada = self.request.GET.get('imobiliaria') or ''
        if selecionada.isdigit():
            profissionais = [p for p in profissionais if p.imobiliaria_id == int(selecionada)]

        context['profissionais'] = profissionais
        context['imobiliarias'] = imobiliarias
        context['imobiliaria_selecionada'] = selecionada
        return context


class ProfissionalCreateView(ApiFormView):
    form_class = ProfissionalForm
    success_url = reverse_lazy('profissionais')
    page_title = 'Novo Profissional'
    mensagem_sucesso = 'Profissional criado com sucesso!'

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        try:
            kwargs['imobiliarias'] = self.cadastros.listar_imobiliarias()
        except ApiError as e:
            messages.error(self.request, e.message)
        return kwargs

    def salvar(self, cleaned_data):
        self.cadastros.salvar_profissional(cleaned_data['nome'], cleaned_data['id_imobiliaria'])


class ProfissionalUpdateView(ProfissionalCreateView):
    """(Update) - Dados do profissional e gestão dos seus cargos."""
    template_name = 'imobigest/profissional_form.html'
    page_title = 'Editar Profissional'
    mensagem_sucesso = 'Profissional atualizado com sucesso!'

    def carregar(self):
        return self.cadastros.obter_profissional(self.kwargs['pk'])

    def get_initial(self):
        if self.objeto is None:
            return {}
        return {'nome': self.objeto.nome, 'id_imobiliaria': self.objeto.imobiliaria_id}

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        cargos, profissional_cargos = [], []
        try:
            cargos = self.cadastros.listar_cargos()
            profissional_cargos = self.cadastros.cargos_do_profissional(self.kwargs['pk'])
        except ApiError as e:
            messages.error(self.request, e.message)
        atribuidos = {pc.id_cargo for pc in profissional_cargos}
        nomes = {c.id: c.nome for c in cargos}
        context['profissional_cargos'] = [
            (pc, pc.cargo.nome if pc.cargo else nomes.get(pc.id_cargo, 'Cargo não encontrado'))
            for pc in profissional_cargos
        ]
        context['cargo_form'] = ProfissionalCargoForm(cargos=[c for c in cargos if c.id not in atribuidos])
        context['profissional_id'] = self.kwargs['pk']
        return context

    def salvar(self, cleaned_data):
        self.cadastros.salvar_profissional(cleaned_data['nome'], cleaned_data['id_imobiliaria'], self.kwargs['pk'])


class ProfissionalDeleteView(ApiDeleteView):
    success_url = reverse_lazy('profissionais')
    page_title = 'Excluir Profissional'
    mensagem_sucesso = 'Profissional deletado com sucesso!'

    def deletar(self):
        self.cadastros.deletar_profissional(self.kwargs['pk'])


class ProfissionalCargoAddView(TokenRequiredMixin, View):

    def post(self, request, pk):
        try:
            form = ProfissionalCargoForm(request.POST, cargos=self.cadastros.listar_cargos())
            if form.is_valid():
                self.cadastros.adicionar_cargo(pk, form.cleaned_data['id_cargo'])
                messages.success(request, 'Cargo adicionado com sucesso!')
            else:
                messages.error(request, 'Selecione um cargo válido.')
        except ApiError as e:
            messages.error(request, e.message)
        return redirect('profissional_update', pk=pk)


class ProfissionalCargoRemoveView(TokenRequiredMixin, View):

    def post(self, request, pk, profissional_cargo_id):
        try:
            self.cadastros.remover_cargo(profissional_cargo_id)
            messages.success(request, 'Cargo removido com sucesso!')
        except ApiError as e:
            messages.error(request, e.message)
        return redirect('profissional_update', pk=pk)
