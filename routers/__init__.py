from .customers import router as customers_router
from .session_blocks import router as session_blocks_router
from .appointments import router as appointments_router
from .maintenance import router as maintenance_router
from .studios import router as studios_router

__all__ = [
     "customers_router",
     "session_blocks_router",
     "appointments_router",
     "maintenance_router",
     "studios_router",
]
