from .obms import router as obms_router, viaturas_router
from .aeronaves import router as aeronaves_router, escala_router as escala_aeronaves_router
from .pessoas import router as militares_router, civis_router
from .plantoes import router as plantoes_router
from .servico_dia import router as servico_dia_router
from .escala_codec import router as escala_codec_router
from .dashboard import router as dashboard_router

__all__ = [
    "obms_router",
    "viaturas_router",
    "aeronaves_router",
    "escala_aeronaves_router",
    "militares_router",
    "civis_router",
    "plantoes_router",
    "servico_dia_router",
    "escala_codec_router",
    "dashboard_router",
]
