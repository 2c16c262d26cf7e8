from .application import build_session, create_app, start_api

__all__ = [
    "build_session",
    "create_app",
    "start_api",
]
