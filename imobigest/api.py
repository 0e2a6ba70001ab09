import logging

import httpx
from django.conf import settings
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Falha ao falar com a API REST. `message` já vem pronta para mostrar ao utilizador."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TokenAusenteError(ApiError):
    def __init__(self):
        super().__init__('Token de autenticação não encontrado')


class ConexaoError(ApiError):
    def __init__(self, detalhe=''):
        super().__init__('Erro de conexão com o servidor')
        self.detalhe = detalhe


# ---
# Acesso ao token
# ---
class CookieTokenProvider:
    """Lê o token de autenticação do cookie do browser."""

    def __init__(self, request, cookie_name=None):
        self.request = request
        self.cookie_name = cookie_name or settings.IMOBIGEST_API['token_cookie']

    def get_token(self):
        return self.request.COOKIES.get(self.cookie_name) or None


class StaticTokenProvider:
    """Token fixo, usado pelos comandos de gestão."""

    def __init__(self, token):
        self.token = token

    def get_token(self):
        return self.token or None


def _mensagem_do_servidor(response):
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get('message') or None
    return None


class ApiClient:
    """
    Cliente HTTP da API do ImobiGest.
    Todas as chamadas levam 'Authorization: Bearer <token>'; sem token nada é enviado.
    """

    def __init__(self, base_url, token_provider, timeout=None, transport=None):
        self.base_url = base_url.rstrip('/')
        self.token_provider = token_provider
        self.timeout = timeout
        self.transport = transport

    def _client(self, headers=None):
        return httpx.Client(
            base_url=self.base_url,
            headers=headers or {},
            timeout=self.timeout,
            transport=self.transport,
        )

    def request(self, method, path, params=None, json=None, erro_padrao=None):
        token = self.token_provider.get_token()
        if not token:
            raise TokenAusenteError()

        headers = {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        }
        logger.debug("%s %s params=%s", method, path, params)

        try:
            with self._client(headers) as client:
                response = client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            logger.error("Falha de rede em %s %s: %s", method, path, e)
            raise ConexaoError(str(e))

        if response.is_error:
            mensagem = _mensagem_do_servidor(response)
            if not mensagem:
                mensagem = erro_padrao or f'Erro HTTP {response.status_code}'
            logger.warning("%s %s -> %s (%s)", method, path, response.status_code, mensagem)
            raise ApiError(mensagem, status_code=response.status_code)

        return response

    @staticmethod
    def _json(response):
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def get(self, path, params=None, erro_padrao=None):
        return self._json(self.request('GET', path, params=params, erro_padrao=erro_padrao))

    def post(self, path, json=None, erro_padrao=None):
        return self._json(self.request('POST', path, json=json, erro_padrao=erro_padrao))

    def put(self, path, json=None, erro_padrao=None):
        return self._json(self.request('PUT', path, json=json, erro_padrao=erro_padrao))

    def delete(self, path, erro_padrao=None):
        return self._json(self.request('DELETE', path, erro_padrao=erro_padrao))

    def login(self, email, senha):
        """Autentica na API e devolve o token. Não precisa de token prévio."""
        try:
            with self._client({'Content-Type': 'application/json'}) as client:
                response = client.post('/auth/login', json={'email': email, 'senha': senha})
        except httpx.RequestError as e:
            logger.error("Falha de rede no login: %s", e)
            raise ConexaoError(str(e))

        if response.is_error:
            texto = response.text or 'Credenciais inválidas'
            raise ApiError(f'Erro {response.status_code}: {texto}', status_code=response.status_code)

        token = (self._json(response) or {}).get('token')
        if not token:
            raise ApiError('Resposta de login sem token')
        return token


def validar(modelo, data, erro='Resposta inválida da API'):
    """Valida um payload contra um modelo pydantic; formato inesperado vira ApiError."""
    try:
        return modelo.model_validate(data)
    except ValidationError as e:
        logger.error("Payload inválido para %s: %s", modelo.__name__, e)
        raise ApiError(erro)


def validar_lista(modelo, data, erro='Resposta inválida da API'):
    if not isinstance(data, list):
        logger.error("Esperava lista de %s, recebi %s", modelo.__name__, type(data).__name__)
        raise ApiError(erro)
    return [validar(modelo, item, erro) for item in data]


def api_client_for(request):
    """Cliente da API para o utilizador do pedido atual (token vindo do cookie)."""
    conf = settings.IMOBIGEST_API
    return ApiClient(
        base_url=conf['base_url'],
        token_provider=CookieTokenProvider(request, conf['token_cookie']),
        timeout=conf.get('timeout'),
        transport=conf.get('transport'),
    )
