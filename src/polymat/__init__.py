"""
polymat - Storage-Polymorphic Matrices

Double-precision matrices with one algebraic surface over four storages:
- Dense (column-major buffer, provider-backed kernels)
- Diagonal (main diagonal only)
- CSR (compressed sparse row)
- Knuth (circular row/column threaded lists)

Every operation picks a specialized algorithm for the storage kinds of
its operands and falls back to a generic cell-by-cell algorithm
otherwise, so any two matrices of any kinds can be combined.

Modules:
- storage: Storage kinds and their indexed contract
- matrix: Matrix facade, dispatch and algorithms
- config: Process-wide and thread-local settings

Architecture:
    ┌──────────────────────────────────────────────┐
    │  Matrix facade (validate, allocate, alias)   │
    ├──────────────────────────────────────────────┤
    │  Dispatch: specialization | generic fallback │
    ├──────────────────────────────────────────────┤
    │  Storage: DENSE | DIAGONAL | CSR | KNUTH     │
    └──────────────────────────────────────────────┘

Example:
    >>> import polymat as pm
    >>> a = pm.SparseMatrix.of_array([[1, 0], [0, 2]])
    >>> b = pm.DenseMatrix.of_array([[1, 1], [1, 1]])
    >>> (a + b).kind
    <StorageKind.DENSE: 'dense'>
    >>> pm.DiagonalMatrix.identity(4).trace()
    4.0
"""

__version__ = '0.1.0'

from . import storage
from . import matrix
from ._config import (
    ComputeConfig,
    DispatchConfig,
    config,
    get_config,
    set_tolerance,
    set_specialize,
    reset_config,
)
from ._errors import (
    PolymatError,
    NullArgumentError,
    DimensionMismatchError,
    IndexOutOfRangeError,
    NotSquareError,
    InvalidDiagonalWriteError,
    UnsupportedOperationError,
    SingularMatrixError,
)
from ._kernel import Norm, LinearAlgebraProvider, get_provider, set_provider
from ._vector import DenseVector
from .storage import StorageKind, Ownership, StorageInfo
from .matrix import (
    # Facade
    Matrix,
    DenseMatrix,
    DiagonalMatrix,
    SparseMatrix,
    KnuthSparseMatrix,
    ResultAlias,

    # Module-level operations
    stack,
    append,
    diagonal_stack,
    kronecker,
    convert,
    identity,
    from_numpy,
    to_numpy,
    from_scipy,
    to_scipy,
)

__all__ = [
    # Version
    '__version__',

    # Modules
    'storage',
    'matrix',

    # Configuration
    'ComputeConfig',
    'DispatchConfig',
    'config',
    'get_config',
    'set_tolerance',
    'set_specialize',
    'reset_config',

    # Errors
    'PolymatError',
    'NullArgumentError',
    'DimensionMismatchError',
    'IndexOutOfRangeError',
    'NotSquareError',
    'InvalidDiagonalWriteError',
    'UnsupportedOperationError',
    'SingularMatrixError',

    # Providers
    'Norm',
    'LinearAlgebraProvider',
    'get_provider',
    'set_provider',

    # Core types
    'DenseVector',
    'StorageKind',
    'Ownership',
    'StorageInfo',
    'Matrix',
    'DenseMatrix',
    'DiagonalMatrix',
    'SparseMatrix',
    'KnuthSparseMatrix',
    'ResultAlias',

    # Module-level operations
    'stack',
    'append',
    'diagonal_stack',
    'kronecker',
    'convert',
    'identity',
    'from_numpy',
    'to_numpy',
    'from_scipy',
    'to_scipy',
]
