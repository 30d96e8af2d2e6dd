"""
Knuth Linked Sparse Storage

Every nonzero cell is a node that sits on two circular doubly linked lists
at once: the list of its row (``left``/``right`` links) and the list of its
column (``up``/``down`` links). Each row and each column owns a sentinel
header node, so an empty row is a header linked to itself.

Nodes live in an arena of parallel Python lists and links are arena
indices:

    index 0 .. rows-1                 row headers
    index rows .. rows+cols-1         column headers
    index rows+cols ..                data nodes (and recycled slots)

Traversal:
    - ``right`` from a row header visits the row in ascending column order
    - ``left`` from a row header visits it in descending column order
    - ``down``/``up`` do the same for columns by row index
    Every walk ends back at the header.

Removal:
    Writing zero to a stored cell unlinks its node from both circles and
    pushes the slot on a free list. The slot is tombstoned (row and column
    set to -1) until the next insertion reuses it.

Example:
    >>> s = KnuthStorage(2, 2)
    >>> s.set_at(0, 1, 5.0)
    >>> [(s.node_col[n], s.node_value[n]) for n in s.row_nodes(0)]
    [(1, 5.0)]
"""

from typing import Iterator, List, Tuple

import numpy as np

from .._errors import PolymatError, POLYMAT_ERROR_INTERNAL, dimensions_dont_match
from ._backend import StorageKind
from ._base import MatrixStorage, Triple

__all__ = ['KnuthStorage']

TOMBSTONE = -1


class KnuthStorage(MatrixStorage):
    """Row and column threaded circular list storage.

    Attributes:
        node_row: Row of each node (header: own row or -1; tombstone: -1).
        node_col: Column of each node.
        node_value: Payload of each node (0.0 for headers).
        left, right: Row circle links.
        up, down: Column circle links.
        row_counts: Number of nodes on each row circle.
        column_counts: Number of nodes on each column circle.
    """

    kind = StorageKind.KNUTH

    def __init__(self, rows: int, cols: int):
        super().__init__(rows, cols)
        self._reset_arena()

    def _reset_arena(self) -> None:
        rows, cols = self.rows, self.cols
        n = rows + cols
        self.node_row: List[int] = list(range(rows)) + [TOMBSTONE] * cols
        self.node_col: List[int] = [TOMBSTONE] * rows + list(range(cols))
        self.node_value: List[float] = [0.0] * n
        self.left: List[int] = list(range(n))
        self.right: List[int] = list(range(n))
        self.up: List[int] = list(range(n))
        self.down: List[int] = list(range(n))
        self.row_counts: List[int] = [0] * rows
        self.column_counts: List[int] = [0] * cols
        self._free: List[int] = []
        self._count = 0

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def of_indexed(cls, rows: int, cols: int, triples) -> 'KnuthStorage':
        """Build from (row, col, value) triples; later triples overwrite earlier ones."""
        storage = cls(rows, cols)
        for row, col, value in triples:
            if row < 0 or row >= rows or col < 0 or col >= cols:
                raise dimensions_dont_match((rows, cols), (row + 1, col + 1), operation="of_indexed")
            storage.set_at(row, col, value)
        return storage

    @classmethod
    def of_array(cls, array) -> 'KnuthStorage':
        """Copy the nonzero cells of a 2-D array-like."""
        arr = np.asarray(array, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got {arr.ndim}-D")
        storage = cls(arr.shape[0], arr.shape[1])
        # np.nonzero is row-major, so every insert is an append
        for r, c in zip(*(idx.tolist() for idx in np.nonzero(arr))):
            storage.append(r, c, float(arr[r, c]))
        return storage

    def create_like(self, rows, cols):
        return KnuthStorage(rows, cols)

    def copy(self):
        out = KnuthStorage.__new__(KnuthStorage)
        MatrixStorage.__init__(out, self.rows, self.cols)
        out.node_row = self.node_row[:]
        out.node_col = self.node_col[:]
        out.node_value = self.node_value[:]
        out.left = self.left[:]
        out.right = self.right[:]
        out.up = self.up[:]
        out.down = self.down[:]
        out.row_counts = self.row_counts[:]
        out.column_counts = self.column_counts[:]
        out._free = self._free[:]
        out._count = self._count
        return out

    def adopt(self, other: 'KnuthStorage') -> None:
        """Take over the arena of ``other`` (same shape). ``other`` must not be used afterwards."""
        if other.shape != self.shape:
            raise dimensions_dont_match(self.shape, other.shape, operation="adopt")
        for name in ('node_row', 'node_col', 'node_value', 'left', 'right', 'up', 'down',
                     'row_counts', 'column_counts', '_free', '_count'):
            setattr(self, name, getattr(other, name))

    # =========================================================================
    # Headers and Walks
    # =========================================================================

    def row_header(self, row: int) -> int:
        return row

    def column_header(self, col: int) -> int:
        return self.rows + col

    def row_nodes(self, row: int) -> Iterator[int]:
        """Nodes of ``row`` in ascending column order."""
        right = self.right
        node = right[row]
        while node != row:
            yield node
            node = right[node]

    def row_nodes_descending(self, row: int) -> Iterator[int]:
        """Nodes of ``row`` in descending column order (following ``left``)."""
        left = self.left
        node = left[row]
        while node != row:
            yield node
            node = left[node]

    def column_nodes(self, col: int) -> Iterator[int]:
        """Nodes of ``col`` in ascending row order."""
        header = self.rows + col
        down = self.down
        node = down[header]
        while node != header:
            yield node
            node = down[node]

    def column_nodes_descending(self, col: int) -> Iterator[int]:
        """Nodes of ``col`` in descending row order (following ``up``)."""
        header = self.rows + col
        up = self.up
        node = up[header]
        while node != header:
            yield node
            node = up[node]

    @property
    def node_count(self) -> int:
        """Number of live data nodes."""
        return self._count

    @property
    def stored_count(self):
        return self._count

    @property
    def capacity(self):
        return len(self.node_value) - self.rows - self.cols

    @property
    def nonzero_count(self):
        return self._count

    # =========================================================================
    # Indexed Contract
    # =========================================================================

    def _find(self, row: int, col: int) -> int:
        """Node holding (row, col), or -1. Walks the shorter of the two circles."""
        if self.row_counts[row] <= self.column_counts[col]:
            for node in self.row_nodes(row):
                c = self.node_col[node]
                if c == col:
                    return node
                if c > col:
                    break
        else:
            for node in self.column_nodes(col):
                r = self.node_row[node]
                if r == row:
                    return node
                if r > row:
                    break
        return -1

    def at(self, row, col):
        node = self._find(row, col)
        return self.node_value[node] if node >= 0 else 0.0

    def set_at(self, row, col, value):
        value = float(value)
        node = self._find(row, col)
        if node >= 0:
            if value == 0.0:
                self._unlink(node)
            else:
                self.node_value[node] = value
            return
        if value == 0.0:
            return
        # Successor on the row circle (first node with a larger column)
        row_next = row
        for n in self.row_nodes(row):
            if self.node_col[n] > col:
                row_next = n
                break
        # Successor on the column circle (first node with a larger row)
        col_next = self.rows + col
        for n in self.column_nodes(col):
            if self.node_row[n] > row:
                col_next = n
                break
        self._link(row, col, value, row_next, col_next)

    def append(self, row: int, col: int, value: float) -> None:
        """Insert a new nonzero that sorts last on both its row and its column.

        Callers building a structure row by row in ascending column order
        use this to insert in O(1).
        """
        if value == 0.0:
            return
        self._link(row, col, float(value), row, self.rows + col)

    def _allocate(self) -> int:
        if self._free:
            return self._free.pop()
        self.node_row.append(TOMBSTONE)
        self.node_col.append(TOMBSTONE)
        self.node_value.append(0.0)
        self.left.append(TOMBSTONE)
        self.right.append(TOMBSTONE)
        self.up.append(TOMBSTONE)
        self.down.append(TOMBSTONE)
        return len(self.node_value) - 1

    def _link(self, row: int, col: int, value: float, row_next: int, col_next: int) -> None:
        """Insert a node before ``row_next`` on the row circle and before ``col_next`` on the column circle."""
        node = self._allocate()
        self.node_row[node] = row
        self.node_col[node] = col
        self.node_value[node] = value

        prev = self.left[row_next]
        self.left[node] = prev
        self.right[node] = row_next
        self.right[prev] = node
        self.left[row_next] = node

        prev = self.up[col_next]
        self.up[node] = prev
        self.down[node] = col_next
        self.down[prev] = node
        self.up[col_next] = node

        self.row_counts[row] += 1
        self.column_counts[col] += 1
        self._count += 1

    def _unlink(self, node: int) -> None:
        left, right, up, down = self.left, self.right, self.up, self.down
        right[left[node]] = right[node]
        left[right[node]] = left[node]
        down[up[node]] = down[node]
        up[down[node]] = up[node]

        self.row_counts[self.node_row[node]] -= 1
        self.column_counts[self.node_col[node]] -= 1
        self._count -= 1

        self.node_row[node] = TOMBSTONE
        self.node_col[node] = TOMBSTONE
        self.node_value[node] = 0.0
        left[node] = right[node] = up[node] = down[node] = TOMBSTONE
        self._free.append(node)

    def remove(self, node: int) -> None:
        """Unlink a live data node from both circles."""
        if node < self.rows + self.cols or self.node_row[node] == TOMBSTONE:
            raise PolymatError(f"Node {node} is not a live data node", code=POLYMAT_ERROR_INTERNAL)
        self._unlink(node)

    # =========================================================================
    # Bulk Operations
    # =========================================================================

    def clear(self):
        self._reset_arena()

    def clear_rows(self, row_indices):
        for row in row_indices:
            for node in list(self.row_nodes(row)):
                self._unlink(node)

    def clear_columns(self, column_indices):
        for col in column_indices:
            for node in list(self.column_nodes(col)):
                self._unlink(node)

    def clear_sub_matrix(self, row_index, row_count, column_index, column_count):
        stop = column_index + column_count
        for row in range(row_index, row_index + row_count):
            for node in list(self.row_nodes(row)):
                if column_index <= self.node_col[node] < stop:
                    self._unlink(node)

    def scale_values(self, alpha: float) -> None:
        """Multiply every stored value by ``alpha`` in place (0 clears).

        Nodes whose product underflows to zero are unlinked.
        """
        if alpha == 0.0:
            self.clear()
            return
        values = self.node_value
        vanished = []
        for row in range(self.rows):
            for node in self.row_nodes(row):
                values[node] *= alpha
                if values[node] == 0.0:
                    vanished.append(node)
        for node in vanished:
            self._unlink(node)

    def copy_to(self, target):
        if target.shape != self.shape:
            raise dimensions_dont_match(self.shape, target.shape, operation="copy_to")
        if target is self:
            return
        if isinstance(target, KnuthStorage):
            target.adopt(self.copy())
            return
        super().copy_to(target)

    def transpose_to(self, target):
        if isinstance(target, KnuthStorage):
            if target.shape != (self.cols, self.rows):
                raise dimensions_dont_match((self.cols, self.rows), target.shape, operation="transpose_to")
            target.adopt(self.transposed())
            return
        super().transpose_to(target)

    def copy_sub_matrix_to(self, target, source_row, target_row, row_count,
                           source_column, target_column, column_count):
        if target is self:
            super().copy_sub_matrix_to(target, source_row, target_row, row_count,
                                       source_column, target_column, column_count)
            return
        target.clear_sub_matrix(target_row, row_count, target_column, column_count)
        stop = source_column + column_count
        for i in range(row_count):
            for node in self.row_nodes(source_row + i):
                col = self.node_col[node]
                if col >= stop:
                    break
                if col >= source_column:
                    target.set_at(target_row + i, target_column + col - source_column,
                                  self.node_value[node])

    def transposed(self) -> 'KnuthStorage':
        """New structure with the roles of row and column links swapped.

        Column circles of this storage become row circles of the result.
        Walking columns in ascending order produces every result row and
        every result column in ascending order, so each node is appended.
        """
        out = KnuthStorage(self.cols, self.rows)
        for col in range(self.cols):
            for node in self.column_nodes(col):
                out.append(col, self.node_row[node], self.node_value[node])
        return out

    def assign_array(self, array):
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != self.shape:
            raise dimensions_dont_match(self.shape, arr.shape, operation="assign_array")
        self.adopt(KnuthStorage.of_array(arr))

    def row_values(self, row):
        out = np.zeros(self.cols, dtype=np.float64)
        for node in self.row_nodes(row):
            out[self.node_col[node]] = self.node_value[node]
        return out

    def column_values(self, col):
        out = np.zeros(self.rows, dtype=np.float64)
        for node in self.column_nodes(col):
            out[self.node_row[node]] = self.node_value[node]
        return out

    def enumerate_nonzero_indexed(self) -> Iterator[Triple]:
        for row in range(self.rows):
            for node in self.row_nodes(row):
                yield row, self.node_col[node], self.node_value[node]

    def to_array(self):
        """Walk every row circle once and write a dense 2-D array."""
        out = np.zeros((self.rows, self.cols), dtype=np.float64)
        for row in range(self.rows):
            for node in self.row_nodes(row):
                out[row, self.node_col[node]] = self.node_value[node]
        return out

    # =========================================================================
    # Invariant Checking
    # =========================================================================

    def validate(self) -> None:
        """Check link symmetry, ordering and counts of every circle.

        Raises:
            PolymatError: On any broken link, misordered node or count drift.
        """
        def fail(msg):
            raise PolymatError(msg, code=POLYMAT_ERROR_INTERNAL)

        seen_by_rows = 0
        for row in range(self.rows):
            last = -1
            count = 0
            for node in self.row_nodes(row):
                if self.node_row[node] != row:
                    fail(f"Node {node} on row circle {row} belongs to row {self.node_row[node]}")
                if self.node_col[node] <= last:
                    fail(f"Row circle {row} is not in ascending column order")
                if self.left[self.right[node]] != node:
                    fail(f"Broken row link at node {node}")
                if self.node_value[node] == 0.0:
                    fail(f"Node {node} stores an explicit zero")
                last = self.node_col[node]
                count += 1
            if count != self.row_counts[row]:
                fail(f"Row {row} count {self.row_counts[row]} != {count} linked nodes")
            seen_by_rows += count
        seen_by_columns = 0
        for col in range(self.cols):
            last = -1
            count = 0
            for node in self.column_nodes(col):
                if self.node_col[node] != col:
                    fail(f"Node {node} on column circle {col} belongs to column {self.node_col[node]}")
                if self.node_row[node] <= last:
                    fail(f"Column circle {col} is not in ascending row order")
                if self.up[self.down[node]] != node:
                    fail(f"Broken column link at node {node}")
                last = self.node_row[node]
                count += 1
            if count != self.column_counts[col]:
                fail(f"Column {col} count {self.column_counts[col]} != {count} linked nodes")
            seen_by_columns += count
        if not (seen_by_rows == seen_by_columns == self._count):
            fail(f"Node counts disagree: rows={seen_by_rows} columns={seen_by_columns} total={self._count}")

    def circle_counts(self) -> Tuple[List[int], List[int]]:
        """Per-row and per-column node counts obtained by walking the circles."""
        return ([sum(1 for _ in self.row_nodes(r)) for r in range(self.rows)],
                [sum(1 for _ in self.column_nodes(c)) for c in range(self.cols)])
