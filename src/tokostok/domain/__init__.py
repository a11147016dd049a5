from .models import (
    PurchaseItem,
    PurchaseTransaction,
    SaleItem,
    SaleTransaction,
    StockItem,
    StockSummary,
    VariantStock,
)
from .errors import (
    ApiError,
    AppError,
    BusinessError,
    ConfigurationError,
    DuplicateCodeError,
    EmptyResponseError,
    HttpError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    SubmitInProgressError,
    ValidationError,
)

__all__ = [
    "StockItem",
    "VariantStock",
    "SaleItem",
    "SaleTransaction",
    "PurchaseItem",
    "PurchaseTransaction",
    "StockSummary",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "DuplicateCodeError",
    "SubmitInProgressError",
    "ConfigurationError",
    "ApiError",
    "RequestTimeoutError",
    "NetworkError",
    "HttpError",
    "InvalidResponseError",
    "BusinessError",
    "EmptyResponseError",
]
