from .alignments import router as alignments_router
from .assets import router as assets_router
from .settings import router as settings_router

__all__ = [
    "alignments_router",
    "assets_router",
    "settings_router",
]
