from enum import Enum

class Role(str, Enum):
    owner = "owner"
    manager = "manager"
    appraiser = "appraiser"

class OrderStatus(str, Enum):
    open = "open"
    closed = "closed"
    cancelled = "cancelled"

class PaymentStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partial"
    paid = "paid"

class AppraisalType(str, Enum):
    purchase = "purchase"
    refinance = "refinance"

class PropertyType(str, Enum):
    singleFamily = "singleFamily"
    singleFamilyFHA = "singleFamilyFHA"
    condo = "condo"
    multiFamily = "multiFamily"
    multiFamilyFHA = "multiFamilyFHA"
