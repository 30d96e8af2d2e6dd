"""
polymat Config - Engine Configuration System

Provides process-wide settings for the matrix engine with thread-local
overrides. Settings control which linear algebra provider backs the dense
kernels, the tolerance used for approximate comparisons, the initial
capacity of CSR storages, and whether storage-specialized algorithms are
dispatched at all.

Example:
    >>> import polymat
    >>> polymat.get_config().compute.tolerance
    1e-10
    >>> with polymat.config.local(dispatch=DispatchConfig(specialize=False)):
    ...     c = a @ b   # runs the generic cell-by-cell algorithm
"""

from __future__ import annotations

import os
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("polymat.config")

# Environment variable selecting the default provider
PROVIDER_ENV_VAR = "POLYMAT_PROVIDER"

_KNOWN_PROVIDERS = ("managed", "blas")


# =============================================================================
# Configuration Classes
# =============================================================================

@dataclass
class ComputeConfig:
    """Configuration for numerical behavior."""
    tolerance: float = 1e-10       # Default tolerance for almost_equal
    csr_initial_capacity: int = 0  # Slots preallocated by an empty CSR storage


@dataclass
class DispatchConfig:
    """Configuration for operation dispatch."""
    specialize: bool = True        # False forces the generic fallback everywhere
    log_decisions: bool = True     # Emit DEBUG records on polymat.dispatch


def _default_provider_name() -> str:
    name = os.environ.get(PROVIDER_ENV_VAR, "managed").strip().lower()
    if name not in _KNOWN_PROVIDERS:
        logger.warning(
            "Ignoring unknown %s=%r, falling back to 'managed'", PROVIDER_ENV_VAR, name
        )
        return "managed"
    return name


# =============================================================================
# Global Configuration Manager
# =============================================================================

class PolymatConfig:
    """
    Global configuration manager for polymat.

    Provides thread-local configuration with context manager support.
    Configuration can be set globally or locally within a context.

    Example:
        # Global configuration
        polymat.config.compute.tolerance = 1e-8

        # Local configuration (context manager)
        with polymat.config.local(provider="blas"):
            result = a.multiply(b)
        # Back to global config
    """

    def __init__(self):
        self._global_provider = _default_provider_name()
        self._global_compute = ComputeConfig()
        self._global_dispatch = DispatchConfig()

        # Thread-local storage for context overrides
        self._local = threading.local()

        # Callbacks for config changes
        self._callbacks: Dict[str, List[Callable]] = {
            "provider": [],
            "compute": [],
            "dispatch": [],
        }

    # -------------------------------------------------------------------------
    # Property Accessors (with thread-local override support)
    # -------------------------------------------------------------------------

    @property
    def provider(self) -> str:
        """Name of the active linear algebra provider."""
        if getattr(self._local, "provider", None) is not None:
            return self._local.provider
        return self._global_provider

    @provider.setter
    def provider(self, value: str):
        value = value.strip().lower()
        if value not in _KNOWN_PROVIDERS:
            raise ValueError(
                f"Unknown provider {value!r}, expected one of {_KNOWN_PROVIDERS}"
            )
        self._global_provider = value
        self._notify("provider", value)

    @property
    def compute(self) -> ComputeConfig:
        """Get compute configuration."""
        if getattr(self._local, "compute", None) is not None:
            return self._local.compute
        return self._global_compute

    @compute.setter
    def compute(self, value: ComputeConfig):
        self._global_compute = value
        self._notify("compute", value)

    @property
    def dispatch(self) -> DispatchConfig:
        """Get dispatch configuration."""
        if getattr(self._local, "dispatch", None) is not None:
            return self._local.dispatch
        return self._global_dispatch

    @dispatch.setter
    def dispatch(self, value: DispatchConfig):
        self._global_dispatch = value
        self._notify("dispatch", value)

    # -------------------------------------------------------------------------
    # Convenience Properties
    # -------------------------------------------------------------------------

    @property
    def tolerance(self) -> float:
        """Tolerance used by almost_equal when none is given."""
        return self.compute.tolerance

    @tolerance.setter
    def tolerance(self, value: float):
        self._global_compute.tolerance = value

    @property
    def specialize(self) -> bool:
        """Whether storage-specialized algorithms are dispatched."""
        return self.dispatch.specialize

    # -------------------------------------------------------------------------
    # Context Manager Support
    # -------------------------------------------------------------------------

    def local(self, **kwargs) -> "_LocalConfigContext":
        """
        Create a local configuration context.

        Args:
            **kwargs: Configuration overrides (provider, compute, dispatch)

        Returns:
            Context manager
        """
        unknown = set(kwargs) - set(self._callbacks)
        if unknown:
            raise TypeError(f"Unknown configuration sections: {sorted(unknown)}")
        if kwargs.get("provider") is not None and kwargs["provider"] not in _KNOWN_PROVIDERS:
            raise ValueError(f"Unknown provider {kwargs['provider']!r}")
        return _LocalConfigContext(self, **kwargs)

    def _set_local(self, **kwargs):
        for key, value in kwargs.items():
            if value is not None:
                setattr(self._local, key, value)

    def _clear_local(self, keys: List[str]):
        for key in keys:
            if hasattr(self._local, key):
                setattr(self._local, key, None)

    # -------------------------------------------------------------------------
    # Callback Registration
    # -------------------------------------------------------------------------

    def on_change(self, config_name: str, callback: Callable):
        """
        Register callback for configuration changes.

        Args:
            config_name: Name of config ("provider", "compute", "dispatch")
            callback: Function to call when config changes
        """
        if config_name in self._callbacks:
            self._callbacks[config_name].append(callback)

    def _notify(self, config_name: str, value: Any):
        for callback in self._callbacks.get(config_name, []):
            try:
                callback(value)
            except Exception:
                logger.exception("Config callback for %r failed", config_name)

    # -------------------------------------------------------------------------
    # Reset / Serialization
    # -------------------------------------------------------------------------

    def reset(self):
        """Reset all configurations to defaults."""
        self._global_provider = _default_provider_name()
        self._global_compute = ComputeConfig()
        self._global_dispatch = DispatchConfig()

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "provider": self.provider,
            "compute": {
                "tolerance": self.compute.tolerance,
                "csr_initial_capacity": self.compute.csr_initial_capacity,
            },
            "dispatch": {
                "specialize": self.dispatch.specialize,
                "log_decisions": self.dispatch.log_decisions,
            },
        }

    def __repr__(self) -> str:
        return f"PolymatConfig({self.to_dict()})"


class _LocalConfigContext:
    """Context manager for local configuration override."""

    def __init__(self, config: PolymatConfig, **kwargs):
        self._config = config
        self._kwargs = kwargs
        self._keys = list(kwargs.keys())
        self._saved: Dict[str, Any] = {}

    def __enter__(self):
        # Nested contexts restore the outer override on exit
        for key in self._keys:
            self._saved[key] = getattr(self._config._local, key, None)
        self._config._set_local(**self._kwargs)
        return self._config

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._config._clear_local(self._keys)
        self._config._set_local(**self._saved)
        return False


# =============================================================================
# Global Instance
# =============================================================================

config = PolymatConfig()


# =============================================================================
# Convenience Functions
# =============================================================================

def get_config() -> PolymatConfig:
    """Get the global configuration instance."""
    return config


def set_tolerance(tolerance: float):
    """Set the default tolerance used by almost_equal."""
    if tolerance < 0:
        raise ValueError("tolerance must be non-negative")
    config.tolerance = tolerance


def set_specialize(enabled: bool = True):
    """Enable or disable storage-specialized algorithms globally."""
    config.dispatch = DispatchConfig(
        specialize=enabled,
        log_decisions=config.dispatch.log_decisions,
    )


def reset_config():
    """Reset global configuration to defaults."""
    config.reset()


__all__ = [
    "PROVIDER_ENV_VAR",
    "ComputeConfig",
    "DispatchConfig",
    "PolymatConfig",
    "config",
    "get_config",
    "set_tolerance",
    "set_specialize",
    "reset_config",
]
