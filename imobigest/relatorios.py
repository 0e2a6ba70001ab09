from decimal import Decimal

import pandas as pd


def vendas_para_dataframe(vendas):
    """Uma linha por venda, com as colunas usadas nos relatórios."""
    linhas = [
        {
            'id': v.id,
            'descricao': v.descricao_imovel,
            'imobiliaria': v.nome_imobiliaria or (f'#{v.imobiliaria_id}' if v.imobiliaria_id else 'N/A'),
            'data_venda': pd.Timestamp(v.data_venda),
            'forma_pagamento': str(v.forma_pagamento.value),
            'qtd_parcelas': v.qtd_parcelas,
            'valor_total': v.valor_total,
        }
        for v in vendas
    ]
    colunas = ['id', 'descricao', 'imobiliaria', 'data_venda', 'forma_pagamento', 'qtd_parcelas', 'valor_total']
    return pd.DataFrame(linhas, columns=colunas)


def _soma(serie):
    # Soma em Decimal para não perder centavos
    return sum(serie, Decimal('0'))


def relatorio_vendas(vendas):
    """
    Totais das vendas: geral, por imobiliária e por mês (YYYY-MM).
    Devolve um dicionário pronto para o template ou para JSON.
    """
    df = vendas_para_dataframe(vendas)

    if df.empty:
        return {
            'total_vendas': 0,
            'valor_total': Decimal('0'),
            'vendas_por_imobiliaria': [],
            'vendas_por_mes': [],
        }

    por_imobiliaria = (
        df.groupby('imobiliaria')
        .agg(quantidade=('id', 'size'), valor_total=('valor_total', _soma))
        .reset_index()
        .sort_values('valor_total', ascending=False)
    )

    df['mes'] = df['data_venda'].apply(lambda d: d.strftime('%Y-%m'))
    por_mes = (
        df.groupby('mes')
        .agg(quantidade=('id', 'size'), valor_total=('valor_total', _soma))
        .reset_index()
        .sort_values('mes')
    )

    return {
        'total_vendas': int(len(df)),
        'valor_total': _soma(df['valor_total']),
        'vendas_por_imobiliaria': [
            {'imobiliaria': row.imobiliaria, 'quantidade': int(row.quantidade), 'valor_total': row.valor_total}
            for row in por_imobiliaria.itertuples(index=False)
        ],
        'vendas_por_mes': [
            {'mes': row.mes, 'quantidade': int(row.quantidade), 'valor_total': row.valor_total}
            for row in por_mes.itertuples(index=False)
        ],
    }


def exportar_csv(vendas, caminho):
    df = vendas_para_dataframe(vendas)
    df['data_venda'] = df['data_venda'].apply(lambda d: d.strftime('%Y-%m-%d'))
    df.to_csv(caminho, index=False, sep=';')
    return len(df)
