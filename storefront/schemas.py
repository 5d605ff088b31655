"""
Request body / query schemas (pydantic).
JSON 필드는 camelCase, 파이썬 속성은 snake_case 로 사용합니다.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from .constants import KitType, MAX_ITEM_QTY, MIN_ITEM_QTY, OrderStatus, ProductQuality, TransactionType


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# --- Auth ---

class RegisterIn(Schema):
    email: str = Field(..., pattern=r'^[^@\s]+@[^@\s]+\.[^@\s]+$', max_length=255)
    password: str = Field(..., min_length=6)
    name: Optional[str] = Field(None, min_length=2, max_length=60)


class LoginIn(Schema):
    email: str
    password: str


# --- Orders ---

class OrderItemIn(Schema):
    product_id: int
    variant_id: int
    qty: int = Field(..., ge=MIN_ITEM_QTY, le=MAX_ITEM_QTY)


class CreateOrderIn(Schema):
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=6, max_length=50)
    address: str = Field(..., min_length=5, max_length=300)
    notes: Optional[str] = None
    items: List[OrderItemIn] = Field(..., min_length=1)
    custom_name: Optional[str] = Field(None, max_length=50)
    custom_number: Optional[int] = Field(None, ge=1, le=99)
    has_patch: bool = False


class UpdateOrderIn(Schema):
    status: Optional[OrderStatus] = None
    deposit_amount: Optional[int] = Field(None, gt=0)

    @model_validator(mode='after')
    def _require_change(self):
        if self.status is None and self.deposit_amount is None:
            raise ValueError('status or depositAmount is required')
        return self


class OrderQuery(Schema):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    status: Optional[OrderStatus] = None
    search: Optional[str] = None


# --- Catalog ---

class ImageIn(Schema):
    image_url: str = Field(..., min_length=1, max_length=500)
    image_public_id: Optional[str] = Field(None, max_length=200)
    order: Optional[int] = Field(None, ge=0)


class VariantIn(Schema):
    name: str = Field(..., min_length=1, max_length=100)
    stock: int = Field(0, ge=0)
    price: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=80)
    image_url: Optional[str] = Field(None, max_length=500)


class ProductCreateIn(Schema):
    title: str = Field(..., min_length=2, max_length=200)
    base_price: int = Field(..., ge=0)
    description: Optional[str] = None
    kit: Optional[KitType] = None
    quality: Optional[ProductQuality] = None
    season_label: Optional[str] = Field(None, max_length=50)
    season_start: Optional[int] = Field(None, ge=1900, le=2100)
    variants: List[VariantIn] = Field(..., min_length=1)
    images: List[ImageIn] = Field(default_factory=list)


class ProductUpdateIn(Schema):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    base_price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    kit: Optional[KitType] = None
    quality: Optional[ProductQuality] = None
    season_label: Optional[str] = Field(None, max_length=50)
    season_start: Optional[int] = Field(None, ge=1900, le=2100)


class VariantUpdateIn(Schema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=80)
    image_url: Optional[str] = Field(None, max_length=500)
    restock: Optional[int] = Field(None, gt=0) # 재고는 증가만 허용 (차감은 결제 처리에서만)


class ImagesIn(Schema):
    images: List[ImageIn] = Field(..., min_length=1)


class BulkDeleteIn(Schema):
    ids: List[int] = Field(..., min_length=1)


class ProductQuery(Schema):
    search: Optional[str] = None
    sort: str = Field('createdAt:desc', pattern=r'^[a-zA-Z_]+:(asc|desc)$')
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1, le=50)
    kit: Optional[KitType] = None
    quality: Optional[ProductQuality] = None
    mine: bool = False


# --- Ledger ---

class TransactionCreateIn(Schema):
    type: TransactionType
    amount: int = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=80)
    occurred_at: Optional[datetime] = None
    images: List[ImageIn] = Field(default_factory=list)


class TransactionUpdateIn(Schema):
    type: Optional[TransactionType] = None
    amount: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=80)
    occurred_at: Optional[datetime] = None


class TransactionQuery(Schema):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort: str = Field('occurredAt:desc', pattern=r'^(occurredAt|createdAt|amount):(asc|desc)$')
    mine: bool = False
