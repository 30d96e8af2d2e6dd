"""Matrix storages.

Each matrix owns exactly one storage. A storage is identified by its
``StorageKind`` and implements the unchecked indexed contract of
``MatrixStorage``.

Storages:
    - DenseStorage: column-major flat buffer
    - DiagonalStorage: main diagonal only
    - CsrStorage: compressed sparse row
    - KnuthStorage: row/column threaded circular lists
"""

from ._backend import StorageKind, Ownership, StorageInfo
from ._ownership import OwnershipTracker
from ._base import MatrixStorage, Triple
from ._dense import DenseStorage
from ._diagonal import DiagonalStorage
from ._csr import CsrStorage
from ._knuth import KnuthStorage

__all__ = [
    'StorageKind',
    'Ownership',
    'StorageInfo',
    'OwnershipTracker',
    'MatrixStorage',
    'Triple',
    'DenseStorage',
    'DiagonalStorage',
    'CsrStorage',
    'KnuthStorage',
    'storage_type',
]

_STORAGE_TYPES = {
    StorageKind.DENSE: DenseStorage,
    StorageKind.DIAGONAL: DiagonalStorage,
    StorageKind.CSR: CsrStorage,
    StorageKind.KNUTH: KnuthStorage,
}


def storage_type(kind: StorageKind):
    """Storage class for ``kind``."""
    return _STORAGE_TYPES[StorageKind(kind)]
