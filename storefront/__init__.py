from celery import Celery, Task
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from pydantic import ValidationError as SchemaValidationError
from .config import Config

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()


def make_celery(app):
    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery = Celery(app.name, task_cls=FlaskTask)
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_always_eager=app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
        task_ignore_result=True,
    )
    celery.set_default()
    app.extensions['celery'] = celery
    return celery


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # 플러그인 초기화
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    CORS(app, origins=app.config['CORS_ORIGINS']) # SPA(Frontend)와의 통신을 위해 CORS 허용
    make_celery(app)

    from . import models  # noqa: F401  (메타데이터 등록)
    from . import tasks  # noqa: F401

    # API 블루프린트 등록
    from .api.auth import auth_bp
    from .api.health import health_bp
    from .api.products import product_bp, variant_bp
    from .api.orders import order_bp, seller_order_bp
    from .api.transactions import transaction_bp
    from .api.admin import admin_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(health_bp, url_prefix='/api/health')
    app.register_blueprint(product_bp, url_prefix='/api/products')
    app.register_blueprint(variant_bp, url_prefix='/api/variants')
    app.register_blueprint(order_bp, url_prefix='/api/orders')
    app.register_blueprint(seller_order_bp, url_prefix='/api/seller/orders')
    app.register_blueprint(transaction_bp, url_prefix='/api/transactions')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    _register_error_handlers(app)

    from .commands import create_admin_command, init_db_command
    app.cli.add_command(create_admin_command)
    app.cli.add_command(init_db_command)

    return app


def _register_error_handlers(app):
    from .errors import ShopError

    @app.errorhandler(ShopError)
    def handle_shop_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(error):
        first = error.errors()[0] if error.errors() else {}
        field = '.'.join(str(p) for p in first.get('loc', ()))
        message = f"{field}: {first.get('msg')}" if field else first.get('msg', 'invalid body')
        return jsonify({'error': 'BAD_REQUEST', 'message': message}), 400

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'NOT_FOUND'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'METHOD_NOT_ALLOWED'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception(f"Internal Server Error: {error}")
        return jsonify({'error': 'INTERNAL_ERROR'}), 500

    # JWT 오류도 동일한 포맷으로 반환
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': 'UNAUTHORIZED', 'message': reason}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'error': 'UNAUTHORIZED', 'message': reason}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'UNAUTHORIZED', 'message': 'token expired'}), 401
