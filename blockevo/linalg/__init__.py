from blockevo.linalg.matrix import Matrix, self_attention

__all__ = ["Matrix", "self_attention"]
