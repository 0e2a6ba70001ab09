from decimal import Decimal, InvalidOperation

from django import template

register = template.Library()


@register.filter(name='add_class')
def add_class(field, css_class):
    """
    Filtro de template que adiciona uma classe CSS
    a um campo de formulário do Django.
    """
    return field.as_widget(attrs={'class': css_class})


@register.filter(name='moeda')
def moeda(value):
    """Formata em reais: 1234.5 -> 'R$ 1.234,50'."""
    try:
        valor = Decimal(str(value or 0))
    except InvalidOperation:
        return value
    sinal = '-' if valor < 0 else ''
    texto = f"{abs(valor):,.2f}"  # 1,234.50
    texto = texto.replace(',', 'X').replace('.', ',').replace('X', '.')
    return f"{sinal}R$ {texto}"


@register.filter(name='valor_ou_na')
def valor_ou_na(value):
    """Valores ausentes do dashboard aparecem como 'N/A'."""
    if value is None:
        return 'N/A'
    return moeda(value)


@register.filter(name='status_css')
def status_css(status):
    return {
        'PAGO': 'status-pago',
        'ATRASADO': 'status-atrasado',
    }.get(str(status), 'status-pendente')
