"""
Backend selection and management.

Provides a unified interface to the numerical backends that fit the
least-squares problems underneath every model.
"""

from .base import BackendBase, LinearModelResult
from .cpu_fp64_backend import CPUBackendFP64


BACKENDS = ('auto', 'cpu')


def get_backend(backend='auto') -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str or BackendBase
        Backend selection:
        - 'auto': Best available backend (currently always the CPU)
        - 'cpu': CPU with NumPy (FP64, R-compatible)
        A BackendBase instance is returned unchanged.

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> backend = get_backend('cpu')
    >>> backend.name
    'cpu_fp64'
    """
    if isinstance(backend, BackendBase):
        return backend

    if backend in BACKENDS:
        return CPUBackendFP64()

    raise ValueError(
        f"Unknown backend: '{backend}'\n"
        f"Valid options: {', '.join(repr(b) for b in BACKENDS)}"
    )


def list_available_backends() -> list:
    """List names of available backends."""
    return ['cpu']


__all__ = [
    'get_backend',
    'list_available_backends',
    'BackendBase',
    'LinearModelResult',
    'CPUBackendFP64',
]
