"""FastAPI ASGI application entrypoint for the service named by ``WEBNEST_SERVICE``."""

from .core.app_factory import create_application

app = create_application()

__all__ = ("app",)
