import os
from datetime import timedelta


def _env_flag(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev_secret_key')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://storefront_user:storefront_pass@db:5432/storefront')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT 설정
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'jwt_secret_key')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv('JWT_EXPIRES_HOURS', '1')))

    # Celery 설정
    CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://redis:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://redis:6379/0')
    CELERY_TASK_ALWAYS_EAGER = _env_flag('CELERY_TASK_ALWAYS_EAGER')

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # 주문 커스텀 옵션 추가 요금 (최소 통화 단위)
    CUSTOM_NAME_PRICE = int(os.getenv('CUSTOM_NAME_PRICE', '15000'))
    CUSTOM_NUMBER_PRICE = int(os.getenv('CUSTOM_NUMBER_PRICE', '10000'))
    PATCH_PRICE = int(os.getenv('PATCH_PRICE', '20000'))

    # 장부 기록 규칙
    LEDGER_RECORD_FULL_PAYMENT = _env_flag('LEDGER_RECORD_FULL_PAYMENT')
    SALE_CATEGORY = 'sale'
    DEPOSIT_CATEGORY = 'sale/deposit'
    BALANCE_CATEGORY = 'sale/balance'

    # Instagram 자동 게시
    INSTAGRAM_AUTO_POST = _env_flag('INSTAGRAM_AUTO_POST')
    INSTAGRAM_ACCESS_TOKEN = os.getenv('INSTAGRAM_ACCESS_TOKEN', '')
    INSTAGRAM_ACCOUNT_ID = os.getenv('INSTAGRAM_ACCOUNT_ID', '')
    INSTAGRAM_API_BASE = os.getenv('INSTAGRAM_API_BASE', 'https://graph.instagram.com/v24.0')


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True
    INSTAGRAM_AUTO_POST = False
    LEDGER_RECORD_FULL_PAYMENT = False
