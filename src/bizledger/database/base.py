"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Database(ABC):
    """Abstract storage for whole ledger snapshots.

    A snapshot is the JSON-serializable document produced by
    ``document_from_store``; storage never looks inside it.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def load_document(self, name: str) -> Optional[dict[str, Any]]:
        """Load a snapshot document by name. Returns None if it was never saved.

        Raises ValueError if the stored text is not a JSON object.
        """
        pass

    @abstractmethod
    def save_document(self, name: str, document: dict[str, Any]) -> None:
        """Create or overwrite a snapshot document."""
        pass

    @abstractmethod
    def list_documents(self) -> list[str]:
        """List saved snapshot names."""
        pass
