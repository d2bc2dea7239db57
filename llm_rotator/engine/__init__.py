from .estimator import estimate_tokens
from .selector import ModelSelector

__all__ = [
    "estimate_tokens",
    "ModelSelector",
]
