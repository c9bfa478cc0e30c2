"""Seller and user repositories for database operations"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from domain.sellers.errors import ConflictError, DatabaseError
from models.seller import Seller
from models.user import User

logger = logging.getLogger(__name__)

# Columns a caller may set through create/update
SELLER_FIELDS = (
    "clerk_id",
    "email",
    "business_name",
    "business_type",
    "contact_name",
    "phone",
    "location",
    "registration_number",
    "tax_id",
    "bank_info",
    "documents",
    "status",
    "rejection_reason",
    "verification_date",
)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_categories(seller: Seller) -> List[str]:
    """Canonical categories of a seller.

    Rows written before the rename only carry product_categories.
    """
    if seller.categories is not None:
        return list(seller.categories)
    return list(seller.product_categories or [])


def set_categories(seller: Seller, categories: Iterable[str]) -> None:
    """Write both category columns until the old one is dropped."""
    values = list(categories)
    seller.categories = values
    seller.product_categories = list(values)


class SellerRepository:
    """Repository for sellers table operations.

    Methods flush but never commit; the caller owns the transaction.
    SQLAlchemy failures are re-raised as DatabaseError.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_by_id(self, seller_id: UUID) -> Optional[Seller]:
        try:
            return self.db.get(Seller, seller_id)
        except SQLAlchemyError as e:
            raise self._db_error("get_by_id", e, seller_id)

    def get_by_email(self, email: str) -> Optional[Seller]:
        """Find the seller row of an applicant (emails are stored lower-cased)."""
        query = select(Seller).where(Seller.email == email.strip().lower())
        try:
            return self.db.execute(query).scalars().first()
        except SQLAlchemyError as e:
            raise self._db_error("get_by_email", e)

    def create(
        self,
        categories: Iterable[str] = (),
        seller_id: Optional[UUID] = None,
        **fields: Any,
    ) -> Seller:
        """Insert a new seller row.

        Args:
            categories: Canonical category list
            seller_id: Pre-allocated id (documents are uploaded under it
                before the row exists)
            **fields: Column values (see SELLER_FIELDS)

        Returns:
            Persisted Seller (flushed, id assigned)
        """
        self._check_fields(fields)
        seller = Seller(**fields)
        if seller_id is not None:
            seller.id = seller_id
        seller.email = seller.email.strip().lower()
        if seller.documents is None:
            seller.documents = []
        set_categories(seller, categories)

        try:
            self.db.add(seller)
            self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Seller insert conflicted: email={seller.email}, error={e.orig}")
            raise ConflictError("A seller application already exists for this email")
        except SQLAlchemyError as e:
            raise self._db_error("create", e)

        logger.info(f"Created seller: email={seller.email}", extra={"seller_id": str(seller.id)})
        return seller

    def update(
        self,
        seller: Seller,
        categories: Optional[Iterable[str]] = None,
        **fields: Any,
    ) -> Seller:
        """Update columns on an existing seller row.

        The version counter is checked and bumped on flush; a concurrent
        change raises StaleDataError, which callers map to a conflict.
        """
        self._check_fields(fields)
        for name, value in fields.items():
            setattr(seller, name, value)
        if "email" in fields:
            seller.email = seller.email.strip().lower()
        if categories is not None:
            set_categories(seller, categories)

        try:
            self.db.flush()
        except StaleDataError:
            raise
        except SQLAlchemyError as e:
            raise self._db_error("update", e, seller.id)
        return seller

    def replace_documents(self, seller: Seller, documents: List[Dict[str, Any]]) -> Seller:
        """Replace the whole documents array in a single write.

        A new list is assigned so the JSON column is marked dirty.
        """
        return self.update(seller, documents=list(documents))

    def list_sellers(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Seller]:
        """List sellers, newest first.

        Args:
            status: Exact status filter ('all' or None disables it)
            search: Case-insensitive substring over business name,
                contact name and email
        """
        query = select(Seller)

        if status and status != "all":
            query = query.where(Seller.status == status)

        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.where(
                or_(
                    Seller.business_name.ilike(pattern, escape="\\"),
                    Seller.contact_name.ilike(pattern, escape="\\"),
                    Seller.email.ilike(pattern, escape="\\"),
                )
            )

        query = query.order_by(Seller.created_at.desc())

        try:
            return list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            raise self._db_error("list_sellers", e)

    def list_pending(self) -> List[Seller]:
        return self.list_sellers(status="pending")

    def list_with_documents(self) -> List[Seller]:
        """Sellers whose documents array is non-empty, oldest first.

        The emptiness check runs in Python so it works on both JSON and
        JSONB columns.
        """
        query = select(Seller).where(Seller.documents.isnot(None)).order_by(Seller.created_at)
        try:
            sellers = self.db.execute(query).scalars().all()
        except SQLAlchemyError as e:
            raise self._db_error("list_with_documents", e)
        return [s for s in sellers if s.documents]

    @staticmethod
    def _check_fields(fields: Dict[str, Any]) -> None:
        unknown = set(fields) - set(SELLER_FIELDS)
        if unknown:
            raise TypeError(f"Unknown seller fields: {', '.join(sorted(unknown))}")

    def _db_error(self, operation: str, error: SQLAlchemyError, seller_id: Any = None) -> DatabaseError:
        logger.error(
            f"Seller repository {operation} failed: {error}",
            extra={"seller_id": str(seller_id) if seller_id else None, "operation": operation},
        )
        return DatabaseError(f"Database error during {operation}")


class UserRepository:
    """Repository for the users table (role lookups and role writes)."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_clerk_id(self, clerk_id: str) -> Optional[User]:
        query = select(User).where(User.clerk_id == clerk_id)
        try:
            return self.db.execute(query).scalars().first()
        except SQLAlchemyError as e:
            raise self._db_error("get_by_clerk_id", e)

    def get_by_email(self, email: str) -> Optional[User]:
        query = select(User).where(User.email == email.strip().lower())
        try:
            return self.db.execute(query).scalars().first()
        except SQLAlchemyError as e:
            raise self._db_error("get_by_email", e)

    def set_role_by_email(self, email: str, role: str) -> int:
        """Set the role of every user with this email.

        Returns:
            Number of rows updated (0 when the applicant has no user row)
        """
        stmt = (
            update(User)
            .where(User.email == email.strip().lower())
            .values(role=role)
            .execution_options(synchronize_session="evaluate")
        )
        try:
            return self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise self._db_error("set_role_by_email", e)

    def set_role_by_clerk_id(self, clerk_id: str, role: str) -> int:
        stmt = (
            update(User)
            .where(User.clerk_id == clerk_id)
            .values(role=role)
            .execution_options(synchronize_session="evaluate")
        )
        try:
            return self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise self._db_error("set_role_by_clerk_id", e)

    def _db_error(self, operation: str, error: SQLAlchemyError) -> DatabaseError:
        logger.error(f"User repository {operation} failed: {error}", extra={"operation": operation})
        return DatabaseError(f"Database error during {operation}")
