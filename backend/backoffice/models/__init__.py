from .auth import User, SessionToken
from .resellers import Reseller, StockRequest
from .inventory import Device, DeviceStatus
from .consignments import Consignment, ConsignmentMovement
from .ledger import DebtLedgerEntry
from .payments import Payment
from .cash import CashBox, CashMovement
from .communications import AuditLog, Notification, ChatConversation, ChatConversationMember, ChatMessage

__all__ = [
    'User', 'SessionToken',
    'Reseller', 'StockRequest',
    'Device', 'DeviceStatus',
    'Consignment', 'ConsignmentMovement',
    'DebtLedgerEntry',
    'Payment',
    'CashBox', 'CashMovement',
    'AuditLog', 'Notification', 'ChatConversation', 'ChatConversationMember', 'ChatMessage',
]
