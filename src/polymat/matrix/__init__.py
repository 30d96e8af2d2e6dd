"""polymat Matrix Module.

The matrix facade and the algorithms it dispatches to.

Type Hierarchy:

    Matrix
    ├── DenseMatrix        # DenseStorage, provider-backed fast paths
    ├── DiagonalMatrix     # DiagonalStorage, O(min(rows, cols)) algorithms
    ├── SparseMatrix       # CsrStorage, slot-walking algorithms
    └── KnuthSparseMatrix  # KnuthStorage, circle-walking algorithms

Dispatch:
    Each operation looks up a specialization registered for the storage
    kinds of its participants (``_dispatch.specialize``) and otherwise runs
    the generic algorithm (``_fallback``). Importing this package registers
    every algorithm.

Result Kinds:
    - operands of one kind: that kind
    - any dense operand: dense
    - otherwise: CSR
"""

from . import _fallback  # registers the generic algorithms
from ._dispatch import ResultAlias, alias_of, lookup, registered
from ._base import Matrix, combine_kinds, matrix_type
from ._dense import DenseMatrix
from ._diagonal import DiagonalMatrix
from ._sparse import SparseMatrix
from ._knuth import KnuthSparseMatrix
from ._ops import (
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
    # Facade
    'Matrix',
    'DenseMatrix',
    'DiagonalMatrix',
    'SparseMatrix',
    'KnuthSparseMatrix',

    # Dispatch
    'ResultAlias',
    'alias_of',
    'lookup',
    'registered',
    'combine_kinds',
    'matrix_type',

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
