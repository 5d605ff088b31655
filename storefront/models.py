# storefront/models.py
from datetime import datetime
import bcrypt
from sqlalchemy import CheckConstraint, UniqueConstraint
from . import db
from .constants import OrderStatus, Role


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(60), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=Role.CUSTOMER) # 'admin', 'seller', 'customer'
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    products = db.relationship('Product', backref='owner', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))

    @property
    def is_admin(self):
        return self.role == Role.ADMIN


class Product(db.Model):
    __tablename__ = 'products'
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    base_price = db.Column(db.Integer, nullable=False) # 최소 통화 단위

    # 메타데이터 (선택)
    kit = db.Column(db.String(20), nullable=True, index=True) # HOME, AWAY, THIRD, RETRO
    quality = db.Column(db.String(20), nullable=True, index=True) # FAN, PLAYER_VERSION
    season_label = db.Column(db.String(50), nullable=True)
    season_start = db.Column(db.Integer, nullable=True, index=True)

    instagram_post_id = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    variants = db.relationship('ProductVariant', backref='product', cascade='all, delete-orphan',
                               order_by='ProductVariant.id')
    images = db.relationship('ProductImage', backref='product', cascade='all, delete-orphan',
                             order_by='ProductImage.position')

    __table_args__ = (
        CheckConstraint('base_price >= 0', name='ck_product_base_price'),
    )

    @property
    def cover_image_url(self):
        return self.images[0].image_url if self.images else None


class ProductVariant(db.Model):
    __tablename__ = 'product_variants'
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)

    sku = db.Column(db.String(80), unique=True, nullable=True)
    name = db.Column(db.String(100), nullable=False) # 사이즈/옵션명
    stock = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Integer, nullable=True) # null 이면 상품 base_price 사용
    image_url = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('product_id', 'name', name='uq_variant_product_name'),
        CheckConstraint('stock >= 0', name='ck_variant_stock_non_negative'),
    )

    @property
    def unit_price(self):
        return self.price if self.price is not None else self.product.base_price


class ProductImage(db.Model):
    __tablename__ = 'product_images'
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    image_url = db.Column(db.String(500), nullable=False)
    image_public_id = db.Column(db.String(200), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Order(db.Model):
    """온라인 주문. 결제 상태(pending -> paid / canceled)만 관리합니다."""
    __tablename__ = 'orders'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True) # 비회원 주문은 NULL
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)

    # 연락처
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    address = db.Column(db.String(300), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # 커스텀 옵션
    custom_name = db.Column(db.String(50), nullable=True)
    custom_number = db.Column(db.Integer, nullable=True)
    has_patch = db.Column(db.Boolean, nullable=False, default=False)

    subtotal = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Integer, nullable=False)

    # 선금 / 잔금
    deposit_amount = db.Column(db.Integer, nullable=True)
    deposit_paid_at = db.Column(db.DateTime, nullable=True)
    deposit_transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id'), nullable=True)
    balance_paid_at = db.Column(db.DateTime, nullable=True)
    balance_transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id'), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    items = db.relationship('OrderItem', backref='order', cascade='all, delete-orphan', order_by='OrderItem.id')
    user = db.relationship('User', foreign_keys=[user_id])

    @property
    def order_status(self):
        return OrderStatus(self.status)

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'userId': self.user_id,
            'status': self.status,
            'name': self.name,
            'phone': self.phone,
            'address': self.address,
            'notes': self.notes,
            'subtotal': self.subtotal,
            'customName': self.custom_name,
            'customNumber': self.custom_number,
            'hasPatch': self.has_patch,
            'totalPrice': self.total_price,
            'depositAmount': self.deposit_amount,
            'depositPaidAt': _iso(self.deposit_paid_at),
            'depositTransactionId': self.deposit_transaction_id,
            'balancePaidAt': _iso(self.balance_paid_at),
            'balanceTransactionId': self.balance_transaction_id,
            'createdAt': _iso(self.created_at),
        }
        if include_items:
            data['items'] = [i.to_dict() for i in self.items]
        return data


class OrderItem(db.Model):
    """주문 시점 스냅샷. 생성 후 수정하지 않습니다."""
    __tablename__ = 'order_items'
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    variant_id = db.Column(db.Integer, db.ForeignKey('product_variants.id', ondelete='SET NULL'), nullable=True)

    title = db.Column(db.String(300), nullable=False) # 주문 시점 상품명 보존
    price = db.Column(db.Integer, nullable=False) # 주문 시점 단가
    quantity = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(500), nullable=False, default='')

    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_order_item_quantity'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'variantId': self.variant_id,
            'title': self.title,
            'price': self.price,
            'quantity': self.quantity,
            'imageUrl': self.image_url,
        }


class Transaction(db.Model):
    """수입/지출 장부 (append-only)"""
    __tablename__ = 'transactions'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    order_id = db.Column(db.Integer, nullable=True, index=True) # 주문 결제로 자동 생성된 경우 (orders.id)

    type = db.Column(db.String(10), nullable=False, index=True) # INCOME, EXPENSE
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(80), nullable=True)

    occurred_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    images = db.relationship('TransactionImage', backref='transaction', cascade='all, delete-orphan',
                             order_by='TransactionImage.position')

    __table_args__ = (
        CheckConstraint('amount >= 0', name='ck_transaction_amount'),
        db.Index('ix_transactions_user_occurred', 'user_id', 'occurred_at'),
    )

    @property
    def is_automatic(self):
        return self.order_id is not None

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'orderId': self.order_id,
            'type': self.type,
            'amount': self.amount,
            'description': self.description,
            'category': self.category,
            'occurredAt': _iso(self.occurred_at),
            'createdAt': _iso(self.created_at),
            'images': [{
                'id': img.id,
                'imageUrl': img.image_url,
                'imagePublicId': img.image_public_id,
                'order': img.position,
            } for img in self.images],
        }


class TransactionImage(db.Model):
    __tablename__ = 'transaction_images'
    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id', ondelete='CASCADE'), nullable=False, index=True)
    image_url = db.Column(db.String(500), nullable=False)
    image_public_id = db.Column(db.String(200), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


def _iso(value):
    return value.isoformat() if value else None
