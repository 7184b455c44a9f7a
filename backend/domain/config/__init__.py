from domain.config.priority_weights import (
    PRIORITY_WEIGHTS_PATH_ENV,
    PRIORITY_WEIGHTS_RELOAD_ENV,
    get_priority_weights,
    load_priority_weights,
)

__all__ = [
    "get_priority_weights",
    "load_priority_weights",
    "PRIORITY_WEIGHTS_PATH_ENV",
    "PRIORITY_WEIGHTS_RELOAD_ENV",
]
