# storefront/commands.py
import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError
from . import db
from .constants import Role
from .models import User


@click.command("init-db")
@with_appcontext
def init_db_command():
    """모든 테이블을 생성/검증합니다."""
    db.create_all()
    click.echo("✅ DB 테이블 초기화/검증 완료.")


@click.command("create-admin")
@click.argument("email")
@click.argument("password")
@click.option("--name", default="Admin", help="표시 이름")
@with_appcontext
def create_admin_command(email, password, name):
    """관리자 계정을 생성하거나 기존 계정을 관리자로 승격합니다."""
    try:
        user = User.query.filter_by(email=email.lower()).first()
        if user:
            user.role = Role.ADMIN
            click.echo(f"ℹ️ 기존 계정 {email} 을(를) 관리자로 변경했습니다.")
        else:
            user = User(email=email.lower(), name=name, role=Role.ADMIN)
            user.set_password(password)
            db.session.add(user)
            click.echo(f"✅ 관리자 계정 생성됨 ({email})")

        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("create-admin failed")
        raise click.ClickException(f"오류 발생: {e}")
