"""Storage Kinds and Storage Metadata.

This module defines the descriptors shared by every matrix storage:
- Storage kinds (Dense, Diagonal, CSR, Knuth)
- Buffer ownership (Owned, Borrowed)
- ``StorageInfo`` introspection record

Design Philosophy:
    A storage exposes its kind as a plain enum discriminant. The matrix
    facade matches on tuples of discriminants to pick an algorithm, so no
    code ever needs an isinstance check against a concrete storage class.

Storage Kinds:
    - DENSE: every cell materialized, column-major
    - DIAGONAL: only the main diagonal, length min(rows, cols)
    - CSR: compressed sparse row arrays
    - KNUTH: circular lists threaded along both rows and columns

Example:
    >>> m = SparseMatrix.of_array([[1, 0], [0, 2]])
    >>> m.storage.kind
    <StorageKind.CSR: 'csr'>
    >>> m.info
    StorageInfo(kind=csr, ownership=owned, shape=(2, 2), nnz=2)
"""

from enum import Enum
from dataclasses import dataclass
from typing import Tuple

__all__ = [
    'StorageKind',
    'Ownership',
    'StorageInfo',
]


# =============================================================================
# Enumerations
# =============================================================================

class StorageKind(Enum):
    """Matrix storage discriminant.

    Attributes:
        DENSE: Flat buffer of rows*cols values in column-major order.
               Every cell is settable.

        DIAGONAL: Buffer of min(rows, cols) values. Off-diagonal cells are
                  always zero and cannot be set to anything else.

        CSR: Row pointers, sorted column indices and values holding only
             nonzero cells.

        KNUTH: Node arena where every nonzero sits on one circular row
               list and one circular column list.
    """
    DENSE = 'dense'
    DIAGONAL = 'diagonal'
    CSR = 'csr'
    KNUTH = 'knuth'


class Ownership(Enum):
    """Buffer ownership model.

    Attributes:
        OWNED: The storage allocated its buffers and is their sole owner.
               Created by: constructors, copies, conversions.

        BORROWED: The storage aliases a caller buffer. Writes through the
                  matrix are visible in the caller's array and vice versa.
                  Created only by the named ``wrap`` constructors.

    Memory Safety:
        - OWNED: Safe, no external dependencies
        - BORROWED: The storage keeps the caller array alive; the caller
          must not resize or reassign it
    """
    OWNED = 'owned'
    BORROWED = 'borrowed'


# =============================================================================
# Storage Information
# =============================================================================

@dataclass
class StorageInfo:
    """Storage metadata for a matrix.

    Attributes:
        kind: Storage kind.
        ownership: Buffer ownership.
        shape: Matrix dimensions (rows, cols).
        nnz: Number of stored values (dense: rows*cols; diagonal: diagonal
             length; sparse: stored nonzeros).
        capacity: Allocated value slots (may exceed nnz for CSR and Knuth).

    Note:
        This is primarily for introspection and debugging.
    """
    kind: StorageKind
    ownership: Ownership
    shape: Tuple[int, int]
    nnz: int
    capacity: int = 0

    @property
    def density(self) -> float:
        """Fraction of cells that are stored."""
        total = self.shape[0] * self.shape[1]
        return self.nnz / total if total else 0.0

    def __repr__(self) -> str:
        return (
            f"StorageInfo(kind={self.kind.value}, "
            f"ownership={self.ownership.value}, "
            f"shape={self.shape}, nnz={self.nnz})"
        )
