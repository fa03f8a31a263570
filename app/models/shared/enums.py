from enum import Enum

# Enums
class RequisitionStatus(str, Enum):
    CREATED = "created"
    PROCESSED = "processed"

class OrderStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"

class PrincipalRole(str, Enum):
    STAFF = "staff"
    ADMIN = "admin"

class ActiveOrdersScope(str, Enum):
    GLOBAL = "global"
    SUBMITTER = "submitter"

class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ATTACH = "ATTACH"
    DETACH = "DETACH"
    SET_PRIMARY = "SET_PRIMARY"
    SUBMIT = "SUBMIT"
    DELIVER = "DELIVER"
    ADJUST = "ADJUST"
