from __future__ import annotations

from typing import Sequence

import numpy as np

from blockevo.exceptions import PartitionError, ShapeMismatchError

__all__ = ["PartitionMap"]


class PartitionMap:
    """Assignment of every coordinate of a wide vector to one of ``models`` blocks.

    A fresh random map is drawn each generation so that any two coordinates
    eventually share a block, even though each generation only fits
    block-diagonal covariances.
    """

    def __init__(self, assignment: Sequence[int] | np.ndarray, models: int):
        self.assignment = np.array(assignment, dtype=np.int64)
        self.assignment.flags.writeable = False
        self.models = models
        self._blocks = [np.flatnonzero(self.assignment == block) for block in range(models)]
        self.validate()

    @classmethod
    def random(cls, width: int, models: int, rng: np.random.Generator) -> PartitionMap:
        """Tile ``0..models-1`` across ``width`` slots and shuffle uniformly."""
        if models < 1 or width < models:
            raise PartitionError(f"Cannot split width {width} into {models} block(s)")
        assignment = np.arange(width, dtype=np.int64) % models
        rng.shuffle(assignment)
        return cls(assignment, models)

    @property
    def width(self) -> int:
        return self.assignment.size

    def validate(self) -> None:
        """Every coordinate is owned by exactly one block and no block is empty."""
        if self.assignment.ndim != 1:
            raise PartitionError("Assignment must be one-dimensional")
        if self.assignment.size and (
            self.assignment.min() < 0 or self.assignment.max() >= self.models
        ):
            raise PartitionError(f"Block ids must lie in 0..{self.models - 1}")
        sizes = self.block_sizes()
        if any(size == 0 for size in sizes):
            raise PartitionError(f"Empty block in partition with sizes {sizes}")
        if sum(sizes) != self.width:
            raise PartitionError("Blocks do not cover every coordinate exactly once")

    def block_indices(self, block: int) -> np.ndarray:
        """Coordinates owned by ``block``, in ascending order."""
        return self._blocks[block]

    def block_size(self, block: int) -> int:
        return self._blocks[block].size

    def block_sizes(self) -> list[int]:
        return [indices.size for indices in self._blocks]

    def gather(self, vectors: Sequence[np.ndarray], block: int) -> dict[int, np.ndarray]:
        """Sample set of ``block``: each vector projected onto the block's coordinates."""
        indices = self._blocks[block]
        samples = {}
        for i, vector in enumerate(vectors):
            vector = np.asarray(vector).reshape(-1)
            if vector.size != self.width:
                raise ShapeMismatchError(f"Vector {i} has width {vector.size}, expected {self.width}")
            samples[i] = vector[indices]
        return samples

    def scatter(self, block_values: Sequence[np.ndarray], dtype=np.float64) -> np.ndarray:
        """Assemble a full-width vector from one value array per block."""
        if len(block_values) != self.models:
            raise ShapeMismatchError(f"Expected {self.models} block(s), got {len(block_values)}")
        out = np.zeros(self.width, dtype=dtype)
        for block, values in enumerate(block_values):
            values = np.asarray(values).reshape(-1)
            indices = self._blocks[block]
            if values.size != indices.size:
                raise ShapeMismatchError(
                    f"Block {block} has {indices.size} coordinate(s), got {values.size} value(s)"
                )
            out[indices] = values
        return out
