from .base import Base
from .scores import RankedScore, ValidatorEpochScore

__all__ = ["Base", "RankedScore", "ValidatorEpochScore"]
