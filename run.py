from sqlalchemy import inspect
from storefront import create_app, db
from storefront.config import Config

app = create_app(Config)


def ensure_tables():
    """마이그레이션 전 개발 환경용: 누락된 테이블만 생성"""
    with app.app_context():
        inspector = inspect(db.engine)
        missing = set(db.metadata.tables) - set(inspector.get_table_names())
        if missing:
            app.logger.info(f"Creating missing tables: {', '.join(sorted(missing))}")
            db.create_all()


if __name__ == '__main__':
    ensure_tables()
    app.run(debug=True, host='0.0.0.0', port=5000)
