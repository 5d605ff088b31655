from datetime import datetime
from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload
from storefront import db
from storefront.constants import TransactionType
from storefront.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from storefront.models import Transaction, TransactionImage


SORT_COLUMNS = {
    'occurredAt': Transaction.occurred_at,
    'createdAt': Transaction.created_at,
    'amount': Transaction.amount,
}


class LedgerService:
    @staticmethod
    def record(user_id, type, amount, description=None, category=None, occurred_at=None, order_id=None):
        """
        장부에 한 건 추가 (append-only).
        커밋하지 않습니다 - 주문 상태 전환과 같은 단위로 커밋되어야 하기 때문.
        """
        tx_type = TransactionType(type)
        if amount is None or amount < 0:
            raise ValidationError('amount must be >= 0')
        if user_id is None:
            raise ValidationError('ledger entry requires an owner')

        entry = Transaction(
            user_id=user_id,
            order_id=order_id,
            type=tx_type.value,
            amount=amount,
            description=description,
            category=category,
            occurred_at=occurred_at or datetime.utcnow(),
        )
        db.session.add(entry)
        db.session.flush() # ID 생성
        return entry

    # --- 수동 입력 (관리자/판매자) ---

    @staticmethod
    def create_manual(actor, data):
        entry = LedgerService.record(
            user_id=actor.id,
            type=data.type,
            amount=data.amount,
            description=data.description,
            category=data.category,
            occurred_at=data.occurred_at,
        )
        for position, image in enumerate(data.images):
            entry.images.append(TransactionImage(
                image_url=image.image_url,
                image_public_id=image.image_public_id,
                position=image.order if image.order is not None else position,
            ))
        db.session.commit()
        current_app.logger.info(f"Ledger {entry.type} {entry.amount} recorded by user {actor.id} (#{entry.id})")
        return entry

    @staticmethod
    def get(transaction_id):
        entry = db.session.get(Transaction, transaction_id)
        if not entry:
            raise NotFoundError(f"transaction {transaction_id} not found")
        return entry

    @staticmethod
    def _get_editable(transaction_id, actor):
        entry = LedgerService.get(transaction_id)
        if not actor.is_admin and entry.user_id != actor.id:
            raise ForbiddenError('not the transaction owner')
        if entry.is_automatic:
            raise ConflictError('order settlement entries are immutable', code='IMMUTABLE_ENTRY')
        return entry

    @staticmethod
    def update(transaction_id, actor, data):
        entry = LedgerService._get_editable(transaction_id, actor)

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if key == 'type' and value is not None:
                value = TransactionType(value).value
            if key in ('type', 'amount', 'occurred_at') and value is None:
                continue
            setattr(entry, key, value)

        db.session.commit()
        return entry

    @staticmethod
    def add_images(transaction_id, actor, images):
        entry = LedgerService._get_editable(transaction_id, actor)

        start = max((img.position for img in entry.images), default=-1) + 1
        created = []
        for offset, image in enumerate(images):
            img = TransactionImage(
                transaction_id=entry.id,
                image_url=image.image_url,
                image_public_id=image.image_public_id,
                position=image.order if image.order is not None else start + offset,
            )
            db.session.add(img)
            created.append(img)

        db.session.commit()
        return created

    @staticmethod
    def delete_image(transaction_id, image_id, actor):
        entry = LedgerService._get_editable(transaction_id, actor)
        image = TransactionImage.query.filter_by(id=image_id, transaction_id=entry.id).first()
        if not image:
            raise NotFoundError(f"image {image_id} not found")
        db.session.delete(image)
        db.session.commit()

    @staticmethod
    def delete(transaction_id, actor):
        entry = LedgerService._get_editable(transaction_id, actor)
        db.session.delete(entry)
        db.session.commit()

    @staticmethod
    def list(actor, query):
        q = Transaction.query.options(selectinload(Transaction.images))

        if query.type:
            q = q.filter(Transaction.type == query.type.value)
        if query.category:
            q = q.filter(Transaction.category.ilike(f"%{query.category}%"))
        if query.search:
            term = f"%{query.search}%"
            q = q.filter(or_(Transaction.description.ilike(term), Transaction.category.ilike(term)))
        if query.date_from:
            q = q.filter(Transaction.occurred_at >= query.date_from)
        if query.date_to:
            q = q.filter(Transaction.occurred_at <= query.date_to)
        if query.mine:
            q = q.filter(Transaction.user_id == actor.id)

        field_name, _, direction = query.sort.partition(':')
        column = SORT_COLUMNS[field_name]
        q = q.order_by(column.asc() if direction == 'asc' else column.desc(), Transaction.id.desc())

        pagination = q.paginate(page=query.page, per_page=query.limit, error_out=False)

        # 현재 페이지 기준 합계
        income_total = sum(t.amount for t in pagination.items if t.type == TransactionType.INCOME.value)
        expense_total = sum(t.amount for t in pagination.items if t.type == TransactionType.EXPENSE.value)

        return {
            'items': [t.to_dict() for t in pagination.items],
            'total': pagination.total,
            'page': query.page,
            'limit': query.limit,
            'incomeTotal': income_total,
            'expenseTotal': expense_total,
            'balance': income_total - expense_total,
        }

    @staticmethod
    def entries_for_order(order_id):
        return Transaction.query.filter_by(order_id=order_id).order_by(Transaction.id).all()

    @staticmethod
    def total_income_for_order(order_id):
        return db.session.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
            Transaction.order_id == order_id,
            Transaction.type == TransactionType.INCOME.value,
        ).scalar()
