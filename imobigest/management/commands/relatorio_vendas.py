import os
from datetime import datetime

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from imobigest.api import ApiClient, ApiError, StaticTokenProvider
from imobigest.relatorios import exportar_csv, relatorio_vendas
from imobigest.services import VendaService
from imobigest.templatetags.form_utils import moeda


class Command(BaseCommand):
    help = 'Gera o relatório de vendas de um período a partir da API ImobiGest'

    def add_arguments(self, parser):
        parser.add_argument('start_date', type=str, help='Data inicial (YYYY-MM-DD)')
        parser.add_argument('end_date', type=str, help='Data final (YYYY-MM-DD)')
        parser.add_argument('--token', type=str, default=None,
                            help='Token da API (por omissão, a variável IMOBIGEST_API_TOKEN)')
        parser.add_argument('--csv', type=str, default=None, help='Grava as vendas do período neste ficheiro CSV')

    def handle(self, *args, **options):
        try:
            start_date = datetime.strptime(options['start_date'], '%Y-%m-%d').date()
            end_date = datetime.strptime(options['end_date'], '%Y-%m-%d').date()
        except ValueError:
            raise CommandError("Formato de data inválido. Use YYYY-MM-DD.")
        if start_date > end_date:
            raise CommandError("A data inicial não pode ser posterior à data final.")

        token = options['token'] or os.environ.get('IMOBIGEST_API_TOKEN')
        conf = settings.IMOBIGEST_API
        api = ApiClient(
            base_url=conf['base_url'],
            token_provider=StaticTokenProvider(token),
            timeout=conf.get('timeout'),
            transport=conf.get('transport'),
        )

        self.stdout.write(f"Buscando vendas na API ({conf['base_url']})...")
        try:
            vendas = VendaService(api).listar()
        except ApiError as e:
            raise CommandError(e.message)

        vendas = [v for v in vendas if start_date <= v.data <= end_date]
        relatorio = relatorio_vendas(vendas)

        self.stdout.write(self.style.SUCCESS(
            f"{relatorio['total_vendas']} vendas entre {start_date:%d/%m/%Y} e {end_date:%d/%m/%Y}: "
            f"{moeda(relatorio['valor_total'])}"
        ))

        self.stdout.write("Por imobiliária:")
        for linha in relatorio['vendas_por_imobiliaria']:
            self.stdout.write(f"  {linha['imobiliaria']}: {linha['quantidade']} venda(s), {moeda(linha['valor_total'])}")

        self.stdout.write("Por mês:")
        for linha in relatorio['vendas_por_mes']:
            self.stdout.write(f"  {linha['mes']}: {linha['quantidade']} venda(s), {moeda(linha['valor_total'])}")

        if options['csv']:
            linhas = exportar_csv(vendas, options['csv'])
            self.stdout.write(self.style.SUCCESS(f"{linhas} vendas gravadas em {options['csv']}"))
