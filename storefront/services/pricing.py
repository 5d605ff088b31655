"""
주문 금액 계산 (순수 함수).

DB 세션이나 시간에 의존하지 않으며, 같은 입력에 대해 항상 같은 결과를 반환합니다.
재고 확인은 주문 생성 시점의 '소프트 체크'이며, 최종 확인은 결제(paid) 전환 시
CatalogStore.decrement_stock 에서 이루어집니다.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from storefront.errors import OutOfStockError, ProductMismatchError, ValidationError


@dataclass(frozen=True)
class ShopSettings:
    custom_name_price: int = 15000
    custom_number_price: int = 10000
    patch_price: int = 20000
    record_full_payment: bool = False
    sale_category: str = 'sale'
    deposit_category: str = 'sale/deposit'
    balance_category: str = 'sale/balance'

    @classmethod
    def from_config(cls, config):
        return cls(
            custom_name_price=int(config.get('CUSTOM_NAME_PRICE', cls.custom_name_price)),
            custom_number_price=int(config.get('CUSTOM_NUMBER_PRICE', cls.custom_number_price)),
            patch_price=int(config.get('PATCH_PRICE', cls.patch_price)),
            record_full_payment=bool(config.get('LEDGER_RECORD_FULL_PAYMENT', cls.record_full_payment)),
            sale_category=config.get('SALE_CATEGORY', cls.sale_category),
            deposit_category=config.get('DEPOSIT_CATEGORY', cls.deposit_category),
            balance_category=config.get('BALANCE_CATEGORY', cls.balance_category),
        )


@dataclass(frozen=True)
class VariantSnapshot:
    id: int
    product_id: int
    product_title: str
    name: str
    stock: int
    base_price: int
    price: Optional[int] = None
    image_url: str = ''

    @property
    def unit_price(self):
        return self.price if self.price is not None else self.base_price

    @property
    def label(self):
        return f"{self.product_title} ({self.name})"


@dataclass(frozen=True)
class RequestedItem:
    product_id: int
    variant_id: int
    quantity: int


@dataclass(frozen=True)
class LineItem:
    product_id: int
    variant_id: int
    title: str
    unit_price: int
    quantity: int
    image_url: str

    @property
    def amount(self):
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Quote:
    line_items: List[LineItem]
    subtotal: int
    surcharges: Dict[str, int] = field(default_factory=dict)

    @property
    def total_price(self):
        return self.subtotal + sum(self.surcharges.values())


class PricingEngine:
    def __init__(self, settings=None):
        self.settings = settings or ShopSettings()

    def surcharges(self, custom_name=None, custom_number=None, has_patch=False):
        """커스텀 옵션 추가 요금 (주문 당 1회)"""
        extras = {}
        if custom_name:
            extras['customName'] = self.settings.custom_name_price
        if custom_number is not None:
            extras['customNumber'] = self.settings.custom_number_price
        if has_patch:
            extras['patch'] = self.settings.patch_price
        return extras

    def quote(self, items, catalog, custom_name=None, custom_number=None, has_patch=False):
        """
        items: RequestedItem 목록
        catalog: {variant_id: VariantSnapshot}
        """
        if not items:
            raise ValidationError('no items')

        requested_qty = {}
        line_items = []
        for item in items:
            variant = catalog.get(item.variant_id)
            if variant is None or variant.product_id != item.product_id:
                raise ProductMismatchError(
                    f"variant {item.variant_id} does not belong to product {item.product_id}"
                )

            # 같은 옵션이 여러 줄에 나뉘어 들어와도 합산해서 확인
            requested_qty[variant.id] = requested_qty.get(variant.id, 0) + item.quantity
            if variant.stock < requested_qty[variant.id]:
                raise OutOfStockError(detail=variant.label)

            line_items.append(LineItem(
                product_id=variant.product_id,
                variant_id=variant.id,
                title=variant.label,
                unit_price=variant.unit_price,
                quantity=item.quantity,
                image_url=variant.image_url or '',
            ))

        subtotal = sum(li.amount for li in line_items)
        return Quote(
            line_items=line_items,
            subtotal=subtotal,
            surcharges=self.surcharges(custom_name, custom_number, has_patch),
        )
