from app.models.logs import PipelineRun
from app.models.soil_cache import SoilCacheEntry

__all__ = [
    "PipelineRun",
    "SoilCacheEntry",
]
