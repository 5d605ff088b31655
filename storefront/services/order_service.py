"""
주문 상태 머신.

    pending --(paid)-----> paid       (재고 차감 + 잔금 장부 기록)
    pending --(canceled)-> canceled   (재고/장부 변화 없음)

paid / canceled 는 종료 상태이며, 종료 상태에서의 전환 요청은 조용히 무시하지 않고
InvalidTransitionError 로 거절합니다 (중복 결제 요청 감지용).

재고는 주문 생성 시 소프트 체크만 하고, paid 전환의 단일 DB 트랜잭션 안에서
조건부 UPDATE 로 차감합니다. 전환 중 어느 단계에서든 실패하면 상태/재고/장부 모두 롤백됩니다.
"""
from datetime import datetime
from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from storefront import db
from storefront.constants import OrderStatus, Role, TransactionType
from storefront.errors import (
    ForbiddenError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    OutOfStockError,
    ShopError,
    ValidationError,
)
from storefront.models import Order, OrderItem, Product
from storefront.services.catalog import CatalogStore
from storefront.services.ledger import LedgerService
from storefront.services.pricing import PricingEngine, RequestedItem, ShopSettings


class OrderService:
    def __init__(self, settings=None, pricing=None, catalog=CatalogStore, ledger=LedgerService):
        self.settings = settings or ShopSettings()
        self.pricing = pricing or PricingEngine(self.settings)
        self.catalog = catalog
        self.ledger = ledger

    @classmethod
    def from_config(cls, config):
        return cls(settings=ShopSettings.from_config(config))

    # --- 생성 ---

    def create(self, data, actor=None):
        """
        주문 생성 (비회원 가능). 재고는 건드리지 않습니다.
        data: schemas.CreateOrderIn
        """
        requested = [
            RequestedItem(product_id=i.product_id, variant_id=i.variant_id, quantity=i.qty)
            for i in data.items
        ]
        catalog = self.catalog.find_variants([r.variant_id for r in requested])
        quote = self.pricing.quote(
            requested,
            catalog,
            custom_name=data.custom_name,
            custom_number=data.custom_number,
            has_patch=data.has_patch,
        )

        order = Order(
            user_id=actor.id if actor else None,
            status=OrderStatus.PENDING.value,
            name=data.name,
            phone=data.phone,
            address=data.address,
            notes=data.notes,
            subtotal=quote.subtotal,
            custom_name=data.custom_name or None,
            custom_number=data.custom_number,
            has_patch=data.has_patch,
            total_price=quote.total_price,
        )
        for li in quote.line_items:
            order.items.append(OrderItem(
                product_id=li.product_id,
                variant_id=li.variant_id,
                title=li.title,
                price=li.unit_price,
                quantity=li.quantity,
                image_url=li.image_url,
            ))

        db.session.add(order)
        self._commit()
        current_app.logger.info(
            f"Order {order.id} created (user={order.user_id}, subtotal={order.subtotal}, total={order.total_price})"
        )
        return order

    # --- 조회 ---

    def get(self, order_id, for_update=False):
        query = Order.query.filter_by(id=order_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        order = query.first()
        if not order:
            raise NotFoundError(f"order {order_id} not found")
        return order

    def get_for_actor(self, order_id, actor):
        order = self.get(order_id)
        if not actor.is_admin and order.user_id != actor.id:
            # 다른 사람 주문의 존재 여부는 노출하지 않음
            raise NotFoundError(f"order {order_id} not found")
        return order

    def list_orders(self, actor, query):
        q = Order.query.options(selectinload(Order.items))
        if not actor.is_admin:
            q = q.filter(Order.user_id == actor.id)
        if query.status:
            q = q.filter(Order.status == query.status.value)
        return q.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
            page=query.page, per_page=query.limit, error_out=False
        )

    def list_seller_orders(self, actor, query):
        """판매자 본인 상품이 포함된 주문 (관리자도 본인 상품 기준)"""
        owned = db.session.query(OrderItem.order_id).join(Product, Product.id == OrderItem.product_id)\
                                                     .filter(Product.owner_id == actor.id)
        q = Order.query.filter(Order.id.in_(owned))
        if query.status:
            q = q.filter(Order.status == query.status.value)
        if query.search:
            term = f"%{query.search}%"
            conditions = [Order.name.ilike(term), Order.phone.ilike(term)]
            if query.search.isdigit():
                conditions.append(Order.id == int(query.search))
            q = q.filter(or_(*conditions))

        pagination = q.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
            page=query.page, per_page=query.limit, error_out=False
        )
        owned_product_ids = {
            pid for (pid,) in db.session.query(Product.id).filter(Product.owner_id == actor.id)
        }
        return pagination, owned_product_ids

    # --- 상태 전환 / 결제 ---

    def transition(self, order_id, status, actor):
        return self.update(order_id, actor, status=status)

    def record_deposit(self, order_id, amount, actor):
        return self.update(order_id, actor, deposit_amount=amount)

    def update(self, order_id, actor, status=None, deposit_amount=None):
        """
        관리자 전용. 선금 기록과 상태 전환을 하나의 DB 트랜잭션으로 처리합니다.
        """
        if actor is None or actor.role != Role.ADMIN:
            raise ForbiddenError('admin role required')
        if status is None and deposit_amount is None:
            raise ValidationError('status or depositAmount is required')
        try:
            target = OrderStatus(status) if status is not None else None
        except ValueError:
            raise ValidationError(f"unknown order status: {status}")

        try:
            order = self.get(order_id, for_update=True)
            if deposit_amount is not None:
                self._apply_deposit(order, deposit_amount, actor)
            if target is not None:
                self._apply_transition(order, target, actor)
            db.session.commit()
        except ShopError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f"Order {order_id} update failed")
            raise InternalError(str(e))

        return order

    def _apply_deposit(self, order, amount, actor):
        if order.deposit_transaction_id is not None:
            # 이미 선금 기록됨 - 장부를 다시 쓰지 않음
            current_app.logger.info(f"Order {order.id} deposit already recorded, skipping")
            return
        if order.order_status.is_terminal or order.balance_paid_at is not None:
            # 주문의 장부 수입 합계는 total_price 를 넘지 않음
            raise InvalidTransitionError(f"cannot record a deposit on a {order.status} order")
        if amount is None or amount <= 0:
            raise ValidationError('depositAmount must be a positive integer')
        if amount > order.total_price:
            raise ValidationError('depositAmount exceeds totalPrice')

        now = datetime.utcnow()
        entry = self.ledger.record(
            user_id=self._ledger_owner(order, actor),
            type=TransactionType.INCOME,
            amount=amount,
            description=f"Order #{order.id} deposit",
            category=self.settings.deposit_category,
            occurred_at=now,
            order_id=order.id,
        )
        order.deposit_amount = amount
        order.deposit_paid_at = now
        order.deposit_transaction_id = entry.id
        current_app.logger.info(f"Order {order.id} deposit {amount} recorded (tx #{entry.id})")

    def _apply_transition(self, order, target, actor):
        current = order.order_status
        if current.is_terminal:
            raise InvalidTransitionError(f"order {order.id} is already {current.value}")
        if target == current:
            return

        if target == OrderStatus.PAID:
            self._decrement_stock(order)
            self._settle_balance(order, actor)
        order.status = target.value
        current_app.logger.info(f"Order {order.id}: {current.value} -> {target.value} by user {actor.id}")

    def _decrement_stock(self, order):
        # 같은 옵션 라인은 합산, id 순서로 처리해서 락 순서를 고정
        totals = {}
        labels = {}
        for item in order.items:
            if item.variant_id is None:
                continue
            totals[item.variant_id] = totals.get(item.variant_id, 0) + item.quantity
            labels.setdefault(item.variant_id, item.title)

        for variant_id in sorted(totals):
            if not self.catalog.decrement_stock(variant_id, totals[variant_id]):
                raise OutOfStockError(detail=labels[variant_id])

    def _settle_balance(self, order, actor):
        now = datetime.utcnow()
        if order.deposit_transaction_id is not None:
            remaining = order.total_price - (order.deposit_amount or 0)
            if remaining > 0:
                entry = self.ledger.record(
                    user_id=self._ledger_owner(order, actor),
                    type=TransactionType.INCOME,
                    amount=remaining,
                    description=f"Order #{order.id} balance",
                    category=self.settings.balance_category,
                    occurred_at=now,
                    order_id=order.id,
                )
                order.balance_transaction_id = entry.id
            order.balance_paid_at = now
        elif self.settings.record_full_payment:
            entry = self.ledger.record(
                user_id=self._ledger_owner(order, actor),
                type=TransactionType.INCOME,
                amount=order.total_price,
                description=f"Order #{order.id} payment",
                category=self.settings.sale_category,
                occurred_at=now,
                order_id=order.id,
            )
            order.balance_transaction_id = entry.id
            order.balance_paid_at = now

    @staticmethod
    def _ledger_owner(order, actor):
        # 비회원 주문은 장부 소유자가 없으므로 처리한 관리자 기준
        return order.user_id if order.user_id is not None else actor.id

    @staticmethod
    def _commit():
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("Order commit failed")
            raise InternalError(str(e))


def get_order_service():
    return OrderService.from_config(current_app.config)
