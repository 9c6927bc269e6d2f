"""Data ingesters for expense figures."""

from .base import BaseIngester, IngestResult
from .expenses import ExpenseCsvIngester

__all__ = ["BaseIngester", "ExpenseCsvIngester", "IngestResult"]
