"""Domain objects owned by the engine."""

from lendermatch.models.domain.run import CANCELLED_ERROR, RunHandle

__all__ = ["CANCELLED_ERROR", "RunHandle"]
