from .routes import router, StoreRegistry, get_registry

__all__ = ["router", "StoreRegistry", "get_registry"]
