"""Data module - records the assistant reads from and writes to."""
from spendsense.data import models

__all__ = ["models"]
