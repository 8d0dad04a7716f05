from flask import current_app

from models import Transaction, TransactionType
from ledger.errors import ValidationError

TYPE_TITLES = {
    TransactionType.RECHARGE.value: 'Recharge',
    TransactionType.WITHDRAWAL.value: 'Withdrawal',
    TransactionType.INCOME.value: 'Daily Income',
    TransactionType.INVESTMENT.value: 'Product Investment',
    TransactionType.REFERRAL.value: 'Referral Bonus',
}

SORT_ORDERS = {
    'date-desc': (Transaction.created_at.desc(), Transaction.id.desc()),
    'date-asc': (Transaction.created_at.asc(), Transaction.id.asc()),
    'amount-desc': (Transaction.amount.desc(), Transaction.id.desc()),
    'amount-asc': (Transaction.amount.asc(), Transaction.id.asc()),
}


def map_transaction_to_activity(transaction):
    activity = transaction.to_dict()
    activity['title'] = TYPE_TITLES.get(transaction.type, 'Transaction')
    return activity


def list_activity(user_id, tx_type='all', sort='date-desc', page=1, page_size=None):
    """Transaction history for one user, filtered, sorted and paginated."""
    if page_size is None:
        page_size = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_page_size = current_app.config.get('MAX_PAGE_SIZE', 100)

    if page < 1:
        raise ValidationError('Page must be greater than 0')
    if page_size < 1 or page_size > max_page_size:
        raise ValidationError(f'Page size must be between 1 and {max_page_size}')

    tx_type = tx_type or 'all'
    if tx_type != 'all' and tx_type not in TYPE_TITLES:
        raise ValidationError(f'Unknown transaction type: {tx_type}')
    if sort not in SORT_ORDERS:
        raise ValidationError(f'Unknown sort order: {sort}')

    query = Transaction.query.filter(Transaction.user_id == user_id)
    if tx_type != 'all':
        query = query.filter(Transaction.type == tx_type)

    total = query.count()
    items = (query.order_by(*SORT_ORDERS[sort])
             .offset((page - 1) * page_size)
             .limit(page_size)
             .all())

    return {
        'items': [map_transaction_to_activity(tx) for tx in items],
        'page': page,
        'pageSize': page_size,
        'total': total,
        'hasMore': page * page_size < total,
        'type': tx_type,
        'sort': sort,
    }
