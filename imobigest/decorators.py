from functools import wraps

from django.conf import settings
from django.shortcuts import redirect


def tem_token(request):
    return bool(request.COOKIES.get(settings.IMOBIGEST_API['token_cookie']))


def token_required(view_func):
    """
    Decorator para views que exigem o cookie de autenticação da API.
    Sem token, redireciona para o login.
    """
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not tem_token(request):
            return redirect(settings.LOGIN_URL)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def anonymous_only(view_func):
    """Quem já tem token não precisa ver o login: vai direto para o dashboard."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if tem_token(request):
            return redirect('home')
        return view_func(request, *args, **kwargs)
    return _wrapped_view
