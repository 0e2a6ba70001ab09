"""
URL configuration for config project.

Todas as páginas ficam na aplicação imobigest; não há admin nem
autenticação do Django (o login é feito na API).
"""
from django.urls import path, include

# Configuração para servir Static files durante o desenvolvimento (DEBUG=True)
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('', include('imobigest.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
