"""Base classes for data ingesters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from ..config import Config
from ..db.repository import Database


@dataclass
class IngestResult:
    """Result of an ingest operation."""

    versions: list[str] = field(default_factory=list)
    total_rows: int = 0
    total_amount: float = 0.0
    errors: list[str] = field(default_factory=list)
    # Rows written, and rows dropped because their vendor disappeared
    saved_rows: int = 0
    skipped_rows: int = 0


class BaseIngester(ABC):
    """Abstract base class for data ingesters."""

    def __init__(
        self,
        config: Config,
        db: Database | None = None,
        dry_run: bool = False,
    ):
        """Initialize ingester.

        Args:
            config: Application configuration.
            db: Database connection (None to validate the file only).
            dry_run: If True, don't commit to database.
        """
        self.config = config
        self.db = db
        self.dry_run = dry_run

    @abstractmethod
    def ingest(
        self,
        file_path: Path,
        default_version: str,
        original_filename: str | None = None,
    ) -> IngestResult:
        """Ingest data from a file.

        Args:
            file_path: Path to the data file.
            default_version: Version for rows that don't name one.
            original_filename: Name to report when file_path is a temp file.

        Returns:
            IngestResult with statistics and any errors.
        """
        pass
