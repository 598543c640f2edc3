from pulselink.http_api.routes import build_api_router

__all__ = ["build_api_router"]
