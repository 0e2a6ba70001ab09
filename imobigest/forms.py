from datetime import datetime, time
from decimal import Decimal, InvalidOperation

from django import forms

from .models import FiltrosVenda, FormaPagamento, Parcela, StatusParcela, Venda
from .parcelas import parcela_base


def clean_value(value_str):
    """
    Converte valores monetários digitados ("R$ 1.234,56", "1234.56", "10,5%") em Decimal.
    Com vírgula assume formato brasileiro; sem vírgula, ponto decimal.
    """
    if value_str is None or value_str == '':
        return None
    if isinstance(value_str, (int, float, Decimal)):
        return Decimal(str(value_str))
    value_str = str(value_str).strip().replace("R$", "").replace("%", "").strip()
    if ',' in value_str:
        value_str = value_str.replace(".", "").replace(",", ".")
    try:
        return Decimal(value_str)
    except InvalidOperation:
        raise forms.ValidationError('Valor inválido.')


class MoedaField(forms.DecimalField):
    """DecimalField que aceita o formato brasileiro (R$ 1.234,56)."""

    def to_python(self, value):
        if value in self.empty_values:
            return None
        return super().to_python(clean_value(value))


def _opcoes(itens, vazio='Todas'):
    return [('', vazio)] + [(str(i.id), i.nome) for i in itens]


class LoginForm(forms.Form):
    email = forms.EmailField(label="Email")
    senha = forms.CharField(label="Senha", widget=forms.PasswordInput)


# ---
# Filtros da lista de vendas
# ---
class VendaFiltroForm(forms.Form):
    descricao = forms.CharField(label="Descrição do imóvel", required=False)
    valor_min = MoedaField(label="Valor mínimo", required=False, min_value=0, decimal_places=2)
    valor_max = MoedaField(label="Valor máximo", required=False, min_value=0, decimal_places=2)
    data_inicio = forms.DateField(label="Data inicial", required=False, widget=forms.DateInput(attrs={'type': 'date'}))
    data_fim = forms.DateField(label="Data final", required=False, widget=forms.DateInput(attrs={'type': 'date'}))
    forma_pagamento = forms.ChoiceField(
        label="Forma de pagamento", required=False,
        choices=[('', 'Todas')] + list(FormaPagamento.choices),
    )
    id_imobiliaria = forms.TypedChoiceField(label="Imobiliária", required=False, coerce=int, empty_value=None)
    id_profissional = forms.TypedChoiceField(label="Profissional", required=False, coerce=int, empty_value=None)
    status_parcela = forms.ChoiceField(
        label="Status da parcela", required=False,
        choices=[('', 'Todos')] + list(StatusParcela.choices),
    )

    def __init__(self, *args, imobiliarias=(), profissionais=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['id_imobiliaria'].choices = _opcoes(imobiliarias)
        self.fields['id_profissional'].choices = _opcoes(profissionais, vazio='Todos')

    def clean(self):
        cleaned_data = super().clean()
        inicio, fim = cleaned_data.get('data_inicio'), cleaned_data.get('data_fim')
        if inicio and fim and inicio > fim:
            raise forms.ValidationError('A data inicial não pode ser posterior à data final.')
        vmin, vmax = cleaned_data.get('valor_min'), cleaned_data.get('valor_max')
        if vmin and vmax and vmin > vmax:
            raise forms.ValidationError('O valor mínimo não pode ser maior que o valor máximo.')
        return cleaned_data

    def to_filtros(self):
        cd = self.cleaned_data
        return FiltrosVenda(
            descricao=(cd.get('descricao') or '').strip(),
            valor_min=cd.get('valor_min'),
            valor_max=cd.get('valor_max'),
            data_inicio=cd.get('data_inicio'),
            data_fim=cd.get('data_fim'),
            forma_pagamento=cd.get('forma_pagamento') or None,
            id_imobiliaria=cd.get('id_imobiliaria'),
            id_profissional=cd.get('id_profissional'),
            status_parcela=cd.get('status_parcela') or None,
        )

    @staticmethod
    def initial_from(filtros):
        data = filtros.model_dump()
        data['forma_pagamento'] = filtros.forma_pagamento.value if filtros.forma_pagamento else ''
        data['status_parcela'] = filtros.status_parcela.value if filtros.status_parcela else ''
        return data


# ---
# Venda
# ---
class VendaForm(forms.Form):
    descricao_imovel = forms.CharField(label="Descrição do imóvel", max_length=255)
    valor_total = MoedaField(label="Valor total (R$)", min_value=Decimal('0.01'), decimal_places=2, max_digits=14)
    data_venda = forms.DateTimeField(
        label="Data da venda",
        input_formats=['%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M', '%Y-%m-%d'],
        widget=forms.DateTimeInput(attrs={'type': 'datetime-local'}, format='%Y-%m-%dT%H:%M'),
    )
    forma_pagamento = forms.ChoiceField(label="Forma de pagamento", choices=FormaPagamento.choices)
    qtd_parcelas = forms.IntegerField(label="Quantidade de parcelas", min_value=0, required=False)
    comprador_nome = forms.CharField(label="Nome do comprador", max_length=255)
    comprador_contato = forms.CharField(label="Contato do comprador", max_length=255, required=False)
    id_imobiliaria = forms.TypedChoiceField(label="Imobiliária", coerce=int)
    profissionais = forms.TypedMultipleChoiceField(
        label="Profissionais da comissão", coerce=int, required=False,
        widget=forms.CheckboxSelectMultiple,
    )

    def __init__(self, *args, imobiliarias=(), profissionais=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['id_imobiliaria'].choices = _opcoes(imobiliarias, vazio='Selecione uma imobiliária')
        self.fields['profissionais'].choices = [(p.id, p.nome) for p in profissionais]

    def clean(self):
        cleaned_data = super().clean()
        forma = cleaned_data.get('forma_pagamento')
        if forma == FormaPagamento.PARCELADO:
            qtd = cleaned_data.get('qtd_parcelas')
            valor = cleaned_data.get('valor_total')
            if not qtd:
                self.add_error('qtd_parcelas', 'Informe a quantidade de parcelas.')
            elif valor and valor - parcela_base(valor, qtd) * (qtd - 1) < 0:
                # A última parcela ficaria negativa (ex: R$ 0,05 em 10x)
                self.add_error('qtd_parcelas', 'Valor total insuficiente para esta quantidade de parcelas.')
        else:
            # À vista não tem parcelas
            cleaned_data['qtd_parcelas'] = 0
        return cleaned_data

    def to_venda(self):
        cd = self.cleaned_data
        return Venda(
            descricao_imovel=cd['descricao_imovel'],
            valor_total=cd['valor_total'],
            data_venda=cd['data_venda'],
            forma_pagamento=cd['forma_pagamento'],
            qtd_parcelas=cd.get('qtd_parcelas') or 0,
            comprador_nome=cd['comprador_nome'],
            comprador_contato=cd.get('comprador_contato') or '',
            id_imobiliaria=cd['id_imobiliaria'],
        )

    @staticmethod
    def initial_from(venda):
        return {
            'descricao_imovel': venda.descricao_imovel,
            'valor_total': venda.valor_total,
            'data_venda': venda.data_venda,
            'forma_pagamento': venda.forma_pagamento.value,
            'qtd_parcelas': venda.qtd_parcelas,
            'comprador_nome': venda.comprador_nome,
            'comprador_contato': venda.comprador_contato,
            'id_imobiliaria': venda.imobiliaria_id,
        }


class ParcelaForm(forms.Form):
    id = forms.IntegerField(required=False, widget=forms.HiddenInput)
    numero_parcela = forms.IntegerField(min_value=1, widget=forms.HiddenInput)
    valor_parcela = MoedaField(label="Valor (R$)", min_value=0, decimal_places=2, max_digits=14)
    data_vencimento = forms.DateField(label="Vencimento", widget=forms.DateInput(attrs={'type': 'date'}, format='%Y-%m-%d'))
    status = forms.ChoiceField(label="Status", choices=StatusParcela.choices)

    @staticmethod
    def initial_from(parcela):
        return {
            'id': parcela.id,
            'numero_parcela': parcela.numero_parcela,
            'valor_parcela': parcela.valor_parcela,
            'data_vencimento': parcela.data_vencimento.date(),
            'status': parcela.status.value,
        }


ParcelaFormSet = forms.formset_factory(ParcelaForm, extra=0)


def parcelas_do_formset(formset, hora_venda=None):
    """Rascunho de parcelas a partir do formset já validado, na ordem do número."""
    parcelas = []
    for form in formset:
        cd = form.cleaned_data
        if not cd:
            continue
        if hora_venda is not None:
            vencimento = datetime.combine(cd['data_vencimento'], hora_venda.timetz())
        else:
            vencimento = datetime.combine(cd['data_vencimento'], time.min)
        parcelas.append(Parcela(
            id=cd.get('id'),
            numero_parcela=cd['numero_parcela'],
            valor_parcela=cd['valor_parcela'],
            data_vencimento=vencimento,
            status=cd['status'],
        ))
    return sorted(parcelas, key=lambda p: p.numero_parcela)


# ---
# Cadastros
# ---
class ImobiliariaForm(forms.Form):
    nome = forms.CharField(label="Nome", max_length=255)
    meta = MoedaField(label="Meta (R$)", min_value=0, decimal_places=2, max_digits=14, required=False)


class CargoForm(forms.Form):
    nome = forms.CharField(label="Nome", max_length=255)
    comissao_automatica = forms.BooleanField(label="Comissão automática", required=False)


class ProfissionalForm(forms.Form):
    nome = forms.CharField(label="Nome", max_length=255)
    id_imobiliaria = forms.TypedChoiceField(label="Imobiliária", coerce=int)

    def __init__(self, *args, imobiliarias=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['id_imobiliaria'].choices = _opcoes(imobiliarias, vazio='Selecione uma imobiliária')


class ProfissionalCargoForm(forms.Form):
    id_cargo = forms.TypedChoiceField(label="Cargo", coerce=int)

    def __init__(self, *args, cargos=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['id_cargo'].choices = _opcoes(cargos, vazio='Selecione um cargo')


class ConfigComissaoForm(forms.Form):
    """
    Percentual de comissão de um cargo numa imobiliária.
    """
    id_cargo = forms.TypedChoiceField(label="Cargo", coerce=int)
    percentual = MoedaField(
        label="Percentual (%)", min_value=0, max_value=100, decimal_places=2,
        help_text="O valor da percentagem (ex: 10.5 para 10.5%).",
    )

    def __init__(self, *args, cargos=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['id_cargo'].choices = _opcoes(cargos, vazio='Selecione um cargo')


class DashboardFiltroForm(forms.Form):
    imobiliaria = forms.TypedChoiceField(label="Imobiliária", coerce=int, required=False, empty_value=None)
    data_inicio = forms.DateField(label="Data inicial", widget=forms.DateInput(attrs={'type': 'date'}))
    data_fim = forms.DateField(label="Data final", widget=forms.DateInput(attrs={'type': 'date'}))

    def __init__(self, *args, imobiliarias=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['imobiliaria'].choices = _opcoes(imobiliarias, vazio='Selecione uma imobiliária')
