# SQLAlchemy models
from .base import Base
from .matrix import (
    MatrixColumnRecord,
    MatrixOptionsRecord,
    MatrixRowRecord,
)

__all__ = [
    "Base",
    "MatrixColumnRecord",
    "MatrixOptionsRecord",
    "MatrixRowRecord",
]
