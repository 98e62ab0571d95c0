from functools import lru_cache

from app.config import get_settings
from app.services.behavior_engine import BehaviorEngine, build_engine


@lru_cache
def get_engine() -> BehaviorEngine:
    """Process-wide engine (singleton). Tests override this dependency."""
    return build_engine(get_settings())
