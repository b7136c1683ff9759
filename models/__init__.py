from .day import Base, Day  # noqa: F401

__all__ = [
    "Base",
    "Day",
]
