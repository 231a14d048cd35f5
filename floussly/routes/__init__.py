from .core_routes import core
from .fee_routes import fees_bp
from .admin_routes import admin_bp

__all__ = ["core", "fees_bp", "admin_bp"]
