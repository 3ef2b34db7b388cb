from fnb_erp.models.tenant import Tenant
from fnb_erp.models.user import User
from fnb_erp.models.catalog import Category, Item, Location, Supplier
from fnb_erp.models.sequence import SequenceCounter
from fnb_erp.models.inventory import InventoryPosition, InventoryTransaction
from fnb_erp.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from fnb_erp.models.receiving import Receiving, ReceivingLine
from fnb_erp.models.internal_request import InternalRequest, InternalRequestLine
from fnb_erp.models.transfer import Transfer, TransferLine
from fnb_erp.models.audit_log import AuditLog
