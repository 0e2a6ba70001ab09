import math
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from django.db import models
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator
from pydantic.alias_generators import to_camel


# A API (Spring) espera números no JSON, não strings
Dinheiro = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used='json')]


class ApiModel(BaseModel):
    """
    Base dos payloads da API REST.
    Os campos são snake_case no Python e camelCase no JSON (ex: valor_total <-> valorTotal).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )

    def to_api(self, **kwargs):
        """Serializa para o JSON esperado pela API (aliases camelCase)."""
        return self.model_dump(mode='json', by_alias=True, **kwargs)


# ---
# Enumerações
# ---
class FormaPagamento(models.TextChoices):
    A_VISTA = "A_VISTA", "À vista"
    PARCELADO = "PARCELADO", "Parcelado"


class StatusParcela(models.TextChoices):
    PENDENTE = "PENDENTE", "Pendente"
    PAGO = "PAGO", "Pago"
    ATRASADO = "ATRASADO", "Atrasado"


class TipoComissao(models.TextChoices):
    AUTOMATICA = "AUTOMATICA", "Automática"
    MANUAL = "MANUAL", "Manual"


# ---
# Cadastros de apoio
# ---
class Imobiliaria(ApiModel):
    id: int
    nome: str
    meta: Optional[Decimal] = None

    def __str__(self):
        return self.nome


class Cargo(ApiModel):
    id: int
    nome: str
    comissao_automatica: bool = False

    def __str__(self):
        return self.nome


class Profissional(ApiModel):
    id: int
    nome: str
    id_imobiliaria: Optional[int] = None
    imobiliaria: Optional[Imobiliaria] = None
    cargos: List[Cargo] = Field(default_factory=list)

    @property
    def imobiliaria_id(self):
        # A API devolve ora o objeto, ora só o id
        if self.imobiliaria is not None:
            return self.imobiliaria.id
        return self.id_imobiliaria

    def __str__(self):
        return self.nome


class ProfissionalCargo(ApiModel):
    id: int
    id_profissional: int
    id_cargo: int
    cargo: Optional[Cargo] = None


class ConfigComissao(ApiModel):
    id: int
    id_imobiliaria: Optional[int] = None
    id_cargo: Optional[int] = None
    cargo: Optional[Cargo] = None
    percentual: Decimal = Decimal('0')

    def nome_cargo(self, cargos=()):
        if self.cargo is not None:
            return self.cargo.nome
        if self.id_cargo is not None:
            cargo = next((c for c in cargos if c.id == self.id_cargo), None)
            return cargo.nome if cargo else 'Cargo não encontrado'
        return 'Cargo não informado'


# ---
# Vendas, parcelas e comissões
# ---
class Venda(ApiModel):
    id: Optional[int] = None
    descricao_imovel: str = ''
    valor_total: Dinheiro = Decimal('0')
    data_venda: datetime
    forma_pagamento: FormaPagamento = FormaPagamento.A_VISTA
    qtd_parcelas: int = 0
    comprador_nome: str = ''
    comprador_contato: str = ''
    id_imobiliaria: Optional[int] = None
    imobiliaria: Optional[Imobiliaria] = None

    @model_validator(mode='after')
    def _parcelas_so_quando_parcelado(self):
        # Quantidade de parcelas só tem sentido em vendas parceladas
        if self.forma_pagamento != FormaPagamento.PARCELADO:
            self.qtd_parcelas = 0
        return self

    @property
    def data(self) -> date:
        return self.data_venda.date()

    @property
    def imobiliaria_id(self):
        if self.id_imobiliaria is not None:
            return self.id_imobiliaria
        return self.imobiliaria.id if self.imobiliaria else None

    @property
    def nome_imobiliaria(self):
        return self.imobiliaria.nome if self.imobiliaria else ''


class Parcela(ApiModel):
    id: Optional[int] = None
    numero_parcela: int = Field(ge=1)
    valor_parcela: Dinheiro
    data_vencimento: datetime
    status: StatusParcela = StatusParcela.PENDENTE
    id_venda: int = 0


class Comissao(ApiModel):
    id: Optional[int] = None
    id_venda: int
    id_profissional: int
    ids_cargos: List[int] = Field(default_factory=list)
    tipo_comissao: Optional[TipoComissao] = None
    valor_comissao: Optional[Decimal] = None


# ---
# Busca de vendas
# ---
class FiltrosVenda(ApiModel):
    """
    Critérios de filtro da lista de vendas.
    Todos opcionais: um campo vazio não restringe nada.
    """
    descricao: str = ''
    valor_min: Optional[Decimal] = None
    valor_max: Optional[Decimal] = None
    data_inicio: Optional[date] = None
    data_fim: Optional[date] = None
    forma_pagamento: Optional[FormaPagamento] = None
    id_imobiliaria: Optional[int] = None
    id_profissional: Optional[int] = None
    status_parcela: Optional[StatusParcela] = None


class PaginaVendas(ApiModel):
    vendas: List[Venda] = Field(default_factory=list)
    total_itens: int = 0
    pagina_atual: int = 1
    itens_por_pagina: int = 10

    @property
    def total_paginas(self):
        if self.itens_por_pagina <= 0:
            return 0
        return math.ceil(self.total_itens / self.itens_por_pagina)


# ---
# Dashboard
# ---
class ComissaoPorCargo(ApiModel):
    nome_cargo: str
    valor_comissao: Decimal = Decimal('0')


class DashboardApiResponse(ApiModel):
    """Formato cru devolvido por /dashboard."""
    meta_imobiliaria: Optional[Decimal] = None
    valor_para_meta: Optional[Decimal] = None
    comissao_geral_total: Optional[Decimal] = None
    media_mensal_ano_comissao: Optional[Decimal] = None
    media_periodo_comissao: Optional[Decimal] = None
    comissoes_por_cargo: Optional[List[ComissaoPorCargo]] = None
    comissoes_automaticas_por_cargo: Optional[List[ComissaoPorCargo]] = None
    comissoes_manuais_por_cargo: Optional[List[ComissaoPorCargo]] = None


class DashboardImobiliaria(ApiModel):
    id: int
    nome: str
    meta: Optional[Decimal] = None


class DashboardResumo(ApiModel):
    meta_imobiliaria: Optional[Decimal] = None
    falta_para_meta: Optional[Decimal] = None
    comissao_geral_total: Optional[Decimal] = None


class DashboardMedias(ApiModel):
    mensal_ano_comissao: Decimal = Decimal('0')
    periodo_comissao: Decimal = Decimal('0')


class DashboardPeriodo(ApiModel):
    ano: int
    mes: int
    data_inicio: date
    data_fim: date


class DashboardData(ApiModel):
    imobiliaria: DashboardImobiliaria
    resumo: DashboardResumo
    medias: DashboardMedias
    comissoes_por_cargo: List[ComissaoPorCargo] = Field(default_factory=list)
    comissoes_automaticas_por_cargo: List[ComissaoPorCargo] = Field(default_factory=list)
    comissoes_manuais_por_cargo: List[ComissaoPorCargo] = Field(default_factory=list)
    periodo: DashboardPeriodo
