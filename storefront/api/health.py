from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from storefront import db

health_bp = Blueprint('health', __name__)


@health_bp.route('', methods=['GET'])
def health():
    try:
        db.session.execute(text('SELECT 1'))
        return jsonify({'status': 'ok', 'db': 'ok'})
    except SQLAlchemyError as e:
        db.session.rollback()
        return jsonify({'status': 'error', 'db': str(e)}), 503
