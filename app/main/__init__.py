from flask import Blueprint, session
from datetime import datetime

bp = Blueprint('main', __name__)

# Makes 'now' and the signed-in user's details available in all templates
@bp.app_context_processor
def inject_globals():
    return {
        'now': datetime.utcnow(),
        'current_user_name': session.get('user_name'),
        'current_user_role': session.get('user_role'),
    }

# Import routes, filters, and forms at the bottom
from app.main import routes, filters, forms
