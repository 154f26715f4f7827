from transport_admin.schemas.common.base import BaseSchema, BaseCreateSchema, BaseUpdateSchema, BaseResponseSchema
from transport_admin.schemas.common.pagination import PaginationParams, PaginationMeta

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
    "PaginationParams",
    "PaginationMeta",
]
