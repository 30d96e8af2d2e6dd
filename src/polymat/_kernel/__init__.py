"""polymat Private Kernel Package (_kernel).

Array-level kernels consumed by the dense fast paths.

Modules:
    - provider: ``LinearAlgebraProvider`` interface and ``Norm`` selector
    - managed: NumPy implementation (default)
    - blas: ``scipy.linalg.blas`` implementation

Usage (Internal only):
    >>> from polymat._kernel import get_provider
    >>> get_provider().add_arrays(x, y, out)
"""

import logging
from typing import Dict, Optional

from .provider import LinearAlgebraProvider, Norm
from .managed import ManagedProvider
from .blas import BlasProvider
from .._config import config

logger = logging.getLogger("polymat.kernel")

__all__ = [
    'Norm',
    'LinearAlgebraProvider',
    'ManagedProvider',
    'BlasProvider',
    'get_provider',
    'set_provider',
]


_PROVIDER_TYPES = {
    "managed": ManagedProvider,
    "blas": BlasProvider,
}

# Provider instance cache, keyed by name
_provider_cache: Dict[str, LinearAlgebraProvider] = {}


def get_provider(name: Optional[str] = None) -> LinearAlgebraProvider:
    """Return the provider named ``name`` (default: the configured one).

    Raises:
        ValueError: If no provider is registered under ``name``.
    """
    if name is None:
        name = config.provider
    provider = _provider_cache.get(name)
    if provider is None:
        try:
            provider_type = _PROVIDER_TYPES[name]
        except KeyError:
            raise ValueError(
                f"Unknown provider {name!r}, expected one of {sorted(_PROVIDER_TYPES)}"
            ) from None
        provider = provider_type()
        _provider_cache[name] = provider
        logger.info("Initialized linear algebra provider %r", name)
    return provider


def set_provider(name: str) -> LinearAlgebraProvider:
    """Make ``name`` the globally active provider and return it."""
    previous = config.provider
    config.provider = name
    if previous != config.provider:
        logger.info("Switched linear algebra provider %r -> %r", previous, config.provider)
    return get_provider(config.provider)
