from lotledger.models.tenant import Tenant
from lotledger.models.category import Category
from lotledger.models.inventory import (
    InboundAttachment,
    InboundMovement,
    InventoryBalance,
    OutboundMovement,
)
from lotledger.models.history import RecordHistory
