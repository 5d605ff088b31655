from enum import Enum


class OrderStatus(str, Enum):
    PENDING = 'pending'
    PAID = 'paid'
    CANCELED = 'canceled'

    @property
    def is_terminal(self):
        return self in (OrderStatus.PAID, OrderStatus.CANCELED)


class TransactionType(str, Enum):
    INCOME = 'INCOME'
    EXPENSE = 'EXPENSE'


class Role:
    ADMIN = 'admin'
    SELLER = 'seller'
    CUSTOMER = 'customer'

    ALL = (ADMIN, SELLER, CUSTOMER)


class KitType(str, Enum):
    HOME = 'HOME'
    AWAY = 'AWAY'
    THIRD = 'THIRD'
    RETRO = 'RETRO'


class ProductQuality(str, Enum):
    FAN = 'FAN'
    PLAYER_VERSION = 'PLAYER_VERSION'


# 주문 당 라인 수량 제한
MIN_ITEM_QTY = 1
MAX_ITEM_QTY = 99
