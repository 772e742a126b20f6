from .run_registry import RunRegistry

__all__ = [
    "RunRegistry",
]
