import pytest
from storefront import create_app, db
from storefront.auth import Actor, issue_token
from storefront.config import TestConfig
from storefront.constants import Role
from storefront.models import Product, ProductImage, ProductVariant, User


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {'n': 0}

    def _make(role=Role.CUSTOMER, password='secret123'):
        counter['n'] += 1
        user = User(email=f"{role}{counter['n']}@example.com", name=f"{role} {counter['n']}", role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def seller(make_user):
    return make_user(Role.SELLER)


@pytest.fixture
def customer(make_user):
    return make_user(Role.CUSTOMER)


@pytest.fixture
def admin_actor(admin):
    return Actor(id=admin.id, role=admin.role)


@pytest.fixture
def auth_header(app):
    def _header(user):
        return {'Authorization': f"Bearer {issue_token(user)}"}
    return _header


@pytest.fixture
def make_product(app, seller):
    def _make(title='Club Home Jersey', base_price=10000, variants=(('M', 5, None),), owner=None):
        product = Product(owner_id=(owner or seller).id, title=title, base_price=base_price, kit='HOME')
        for name, stock, price in variants:
            product.variants.append(ProductVariant(name=name, stock=stock, price=price))
        product.images.append(ProductImage(image_url='https://img.example.com/jersey.jpg', position=0))
        db.session.add(product)
        db.session.commit()
        return product
    return _make


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def variant(product):
    return product.variants[0]
