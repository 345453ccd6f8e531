from blockevo.utils.worker_pool import WorkerPool, assign_slots, derive_seeds

__all__ = ["WorkerPool", "assign_slots", "derive_seeds"]
