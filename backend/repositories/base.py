"""
Base repository class providing common database operations.

Repositories never commit: the owning service decides where the unit of
work ends (see repositories.database.transaction).
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]


class BaseRepository(Generic[T]):
    """
    Base repository providing common single-row operations.

    Type parameter T should be a SQLAlchemy model class.
    """

    def __init__(self, model: type[T], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity if found, None otherwise
        """
        return self.db.query(self.model).filter(self.model.id == id).first()

    def add(self, entity: T) -> None:
        """
        Add entity to session without flushing.

        Args:
            entity: Entity to add
        """
        self.db.add(entity)

    def create(self, entity: T) -> T:
        """
        Add entity and flush so generated columns (id, defaults) are populated.

        Args:
            entity: Entity to create

        Returns:
            Created entity
        """
        self.db.add(entity)
        self.db.flush()
        self.db.refresh(entity)
        return entity

    def count(self) -> int:
        """
        Count total number of entities.

        Returns:
            Total count
        """
        return self.db.query(self.model).count()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

    def refresh(self, entity: T) -> None:
        """
        Refresh entity from database.

        Args:
            entity: Entity to refresh
        """
        self.db.refresh(entity)
