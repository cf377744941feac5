from .audit_log import AuditLog
from .goods_receipt import GoodsReceiptItem, GoodsReceiptNote
from .order import AssignedOrderItem, Order, OrderItem
from .purchase_order import Payment, PurchaseOrder, PurchaseOrderItem
from .rbac import Permission, Role, RolePermission, UserRole
from .user import User
from .vendor import VendorProfile

__all__ = [
    "AssignedOrderItem",
    "AuditLog",
    "GoodsReceiptItem",
    "GoodsReceiptNote",
    "Order",
    "OrderItem",
    "Payment",
    "Permission",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Role",
    "RolePermission",
    "User",
    "UserRole",
    "VendorProfile",
]
