class BlockEvoError(Exception):
    """Base for all blockevo exceptions."""

    pass


class ShapeMismatchError(BlockEvoError, ValueError):
    """Matrix operands with incompatible shapes."""

    pass


class ConfigurationError(BlockEvoError):
    """Invalid engine or fit configuration."""

    pass


class PartitionError(BlockEvoError):
    """Partition map does not assign every coordinate to exactly one non-empty block."""

    pass


class WorkerTaskError(BlockEvoError):
    """A task dispatched to the worker pool raised."""

    def __init__(self, index: int, cause: BaseException):
        super().__init__(f"Task {index} failed: {type(cause).__name__}: {cause}")
        self.index = index
        self.cause = cause


class EvolutionError(BlockEvoError):
    """Evolution process failures."""

    pass


class SlotOwnershipError(BlockEvoError):
    """Two tasks claimed the same output slot, or a slot was left unclaimed."""

    pass
