from .dealers import Dealer
from .inventory import ProductBatch
from .requests import RequestStatus, TransferRequest
from .invoices import Invoice, Payment
from .ledger import LedgerEvent, DocumentSequence

__all__ = [
    'Dealer',
    'ProductBatch',
    'RequestStatus', 'TransferRequest',
    'Invoice', 'Payment',
    'LedgerEvent', 'DocumentSequence',
]
