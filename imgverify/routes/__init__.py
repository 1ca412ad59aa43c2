"""Flask routes package."""
from imgverify.routes.verify import verify_bp
from imgverify.routes.history import history_bp
from imgverify.routes.debug import debug_bp

__all__ = ['verify_bp', 'history_bp', 'debug_bp']
