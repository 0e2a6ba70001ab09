from django.urls import path
from django.views.generic import RedirectView

from . import views  # Login, dashboard e vendas
from . import cadastro_views  # CRUD de imobiliárias, cargos e profissionais

urlpatterns = [
    path('', RedirectView.as_view(pattern_name='home', permanent=False)),

    # Autenticação
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),

    # Dashboard
    path('home/', views.home, name='home'),

    # Vendas
    path('vendas/', views.vendas, name='vendas'),
    path('vendas/relatorio/', views.vendas_relatorio, name='vendas_relatorio'),
    path('vendas/nova/', views.venda_criar, name='venda_criar'),
    path('vendas/<int:venda_id>/editar/', views.venda_editar, name='venda_editar'),
    path('vendas/<int:venda_id>/excluir/', views.venda_excluir, name='venda_excluir'),
    path('vendas/<int:venda_id>/parcelas/', views.venda_parcelas, name='venda_parcelas'),
    path('vendas/<int:venda_id>/parcelas/<int:parcela_id>/status/',
         views.parcela_status,
         name='parcela_status'),

    # Configurações: imobiliárias e cargos
    path('configuracoes/',
         cadastro_views.ConfiguracoesView.as_view(),
         name='configuracoes'),

    path('configuracoes/imobiliarias/criar/',
         cadastro_views.ImobiliariaCreateView.as_view(),
         name='imobiliaria_create'),

    path('configuracoes/imobiliarias/editar/<int:pk>/',
         cadastro_views.ImobiliariaUpdateView.as_view(),
         name='imobiliaria_update'),

    path('configuracoes/imobiliarias/eliminar/<int:pk>/',
         cadastro_views.ImobiliariaDeleteView.as_view(),
         name='imobiliaria_delete'),

    path('configuracoes/imobiliarias/<int:pk>/comissoes/',
         cadastro_views.ConfigComissaoView.as_view(),
         name='config_comissao'),

    path('configuracoes/imobiliarias/<int:pk>/comissoes/eliminar/<int:config_id>/',
         cadastro_views.ConfigComissaoDeleteView.as_view(),
         name='config_comissao_delete'),

    path('configuracoes/cargos/criar/',
         cadastro_views.CargoCreateView.as_view(),
         name='cargo_create'),

    path('configuracoes/cargos/editar/<int:pk>/',
         cadastro_views.CargoUpdateView.as_view(),
         name='cargo_update'),

    path('configuracoes/cargos/eliminar/<int:pk>/',
         cadastro_views.CargoDeleteView.as_view(),
         name='cargo_delete'),

    # Profissionais
    path('profissionais/',
         cadastro_views.ProfissionalListView.as_view(),
         name='profissionais'),

    path('profissionais/criar/',
         cadastro_views.ProfissionalCreateView.as_view(),
         name='profissional_create'),

    path('profissionais/editar/<int:pk>/',
         cadastro_views.ProfissionalUpdateView.as_view(),
         name='profissional_update'),

    path('profissionais/eliminar/<int:pk>/',
         cadastro_views.ProfissionalDeleteView.as_view(),
         name='profissional_delete'),

    path('profissionais/<int:pk>/cargos/adicionar/',
         cadastro_views.ProfissionalCargoAddView.as_view(),
         name='profissional_cargo_add'),

    path('profissionais/<int:pk>/cargos/remover/<int:profissional_cargo_id>/',
         cadastro_views.ProfissionalCargoRemoveView.as_view(),
         name='profissional_cargo_remove'),
]
