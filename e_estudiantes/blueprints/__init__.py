from .auth import auth_bp
from .notes import notes_bp
from .reviews import reviews_bp
from .planner import planner_bp
from .schemes import schemes_bp
from .ai import ai_bp
from .analytics import analytics_bp
from .admin import admin_bp

ALL_BLUEPRINTS = (auth_bp, notes_bp, reviews_bp, planner_bp, schemes_bp, ai_bp, analytics_bp, admin_bp)

__all__ = [
    'auth_bp',
    'notes_bp',
    'reviews_bp',
    'planner_bp',
    'schemes_bp',
    'ai_bp',
    'analytics_bp',
    'admin_bp',
    'ALL_BLUEPRINTS',
]
