# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses. Los montos usan Decimal para que
# los totales de venta no acumulen error de redondeo.
# ==============================================================================

from .entities import (
    # Errores
    PosSyncError,
    ValidationError,

    # Enumeraciones
    PaymentType,
    UserRole,
    MutationAction,
    Outcome,
    SaleState,
    StockPolicy,
    CountStatus,

    # Hojas remotas
    SHEET_PRODUCTS,
    SHEET_SALES,
    SHEET_CUSTOMERS,
    SHEET_USERS,
    SHEET_APPS,
    SHEET_PURCHASES,

    # Entidades
    Product,
    Sale,
    SaleItem,
    Purchase,
    PurchaseItem,
    Customer,
    User,
    ExternalApp,
    AppData,
    COLLECTIONS,
)

__all__ = [
    'PosSyncError',
    'ValidationError',
    'PaymentType',
    'UserRole',
    'MutationAction',
    'Outcome',
    'SaleState',
    'StockPolicy',
    'CountStatus',
    'SHEET_PRODUCTS',
    'SHEET_SALES',
    'SHEET_CUSTOMERS',
    'SHEET_USERS',
    'SHEET_APPS',
    'SHEET_PURCHASES',
    'Product',
    'Sale',
    'SaleItem',
    'Purchase',
    'PurchaseItem',
    'Customer',
    'User',
    'ExternalApp',
    'AppData',
    'COLLECTIONS',
]
