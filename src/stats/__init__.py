"""
Statistics backends registry and factory.
"""

from .backend import StatisticsBackend
from .native import NativeStatistics
from .pool import Session, SessionPool
from .rserve import RserveSession, RserveStatistics

# Registry of available backends
BACKEND_REGISTRY = {
    "native": NativeStatistics,
    "rserve": RserveStatistics.from_config,
}


def get_backend(backend_name: str, config: dict | None = None) -> StatisticsBackend:
    """Factory to create a statistics backend

    Args:
        backend_name: Name of the backend ('native' or 'rserve')
        config: Configuration dict for the backend

    Returns:
        Instance of the backend

    Raises:
        ValueError: If backend_name is not registered
    """
    if backend_name not in BACKEND_REGISTRY:
        available = ", ".join(BACKEND_REGISTRY.keys())
        raise ValueError(f"Unknown backend '{backend_name}'. Available backends: {available}")

    return BACKEND_REGISTRY[backend_name](config)


def list_backends() -> list[str]:
    """List all available statistics backends"""
    return list(BACKEND_REGISTRY.keys())


__all__ = [
    "StatisticsBackend",
    "NativeStatistics",
    "RserveStatistics",
    "RserveSession",
    "Session",
    "SessionPool",
    "get_backend",
    "list_backends",
]
