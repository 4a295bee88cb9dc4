"""
SQLAlchemy Storage Implementation

DESIGN DECISION: A relational store gives the ledger what it needs:
1. Real transactions, so a transaction row and its balance change
   commit together
2. Row locks (SELECT ... FOR UPDATE) on the accounts being mutated
3. Store-side increments, so concurrent updates on one account compose

The implementation follows the abstract interface, so the mutation
engine never sees a Session or a row class.

Any SQLAlchemy error inside a unit of work rolls the unit back and
surfaces as StoreFailureError.
"""

import datetime as dt
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Optional
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Uuid,
    create_engine,
    delete,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)

from finance_ledger.errors import StoreFailureError
from finance_ledger.logger import get_logger
from finance_ledger.models.ledger import (
    Account,
    AccountType,
    Transaction,
    TransactionFilter,
    TransactionType,
    User,
    to_money,
    utc_now,
)
from finance_ledger.scheduling import RecurringInterval
from finance_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    LedgerUnitOfWork,
)


logger = get_logger(__name__)

MONEY = Numeric(18, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Declarative base class for ledger tables."""
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    balance: Mapped[Decimal] = mapped_column(MONEY)
    account_type: Mapped[str] = mapped_column(String(16))
    currency: Mapped[str] = mapped_column(String(3))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))


class TransactionRow(Base):
    __tablename__ = "transactions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), index=True)
    account_id: Mapped[UUID] = mapped_column(ForeignKey("accounts.id"), index=True)
    type: Mapped[str] = mapped_column(String(16))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    category: Mapped[str] = mapped_column(String(50))
    description: Mapped[str] = mapped_column(String(500), default="")
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurring_interval: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    next_recurring_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))


# =============================================================================
# ROW <-> MODEL CONVERSION
# =============================================================================

def _row_to_user(row: UserRow) -> User:
    return User(id=row.id, external_id=row.external_id, created_at=row.created_at)


def _row_to_account(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        balance=Decimal(row.balance),
        account_type=AccountType(row.account_type),
        currency=row.currency,
        is_default=row.is_default,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_transaction(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        user_id=row.user_id,
        account_id=row.account_id,
        type=TransactionType(row.type),
        amount=Decimal(row.amount),
        date=row.date,
        category=row.category,
        description=row.description or "",
        is_recurring=row.is_recurring,
        recurring_interval=(
            RecurringInterval(row.recurring_interval)
            if row.recurring_interval else None
        ),
        next_recurring_date=row.next_recurring_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _transaction_values(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "user_id": transaction.user_id,
        "account_id": transaction.account_id,
        "type": transaction.type.value,
        "amount": transaction.amount,
        "date": transaction.date,
        "category": transaction.category,
        "description": transaction.description,
        "is_recurring": transaction.is_recurring,
        "recurring_interval": (
            transaction.recurring_interval.value
            if transaction.recurring_interval else None
        ),
        "next_recurring_date": transaction.next_recurring_date,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
    }


# =============================================================================
# UNIT OF WORK
# =============================================================================

class SqlAlchemyUnitOfWork(LedgerUnitOfWork):
    """Unit of work bound to one open Session transaction."""

    def __init__(self, session: Session):
        self._session = session

    async def lock_account(
        self,
        account_id: UUID,
        user_id: UUID,
    ) -> Optional[Account]:
        row = self._session.scalars(
            select(AccountRow)
            .where(AccountRow.id == account_id, AccountRow.user_id == user_id)
            .with_for_update()
        ).one_or_none()
        return _row_to_account(row) if row else None

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        row = self._session.scalars(
            select(TransactionRow)
            .where(
                TransactionRow.id == transaction_id,
                TransactionRow.user_id == user_id,
            )
            .with_for_update()
        ).one_or_none()
        return _row_to_transaction(row) if row else None

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        self._session.add(TransactionRow(**_transaction_values(transaction)))
        self._session.flush()
        return transaction

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        values = _transaction_values(transaction)
        values.pop("id")
        result = self._session.execute(
            update(TransactionRow)
            .where(TransactionRow.id == transaction.id)
            .values(**values)
        )
        if result.rowcount != 1:
            raise StoreFailureError(f"Transaction row missing: {transaction.id}")
        return transaction

    async def delete_transaction(self, transaction_id: UUID) -> None:
        result = self._session.execute(
            delete(TransactionRow).where(TransactionRow.id == transaction_id)
        )
        if result.rowcount != 1:
            raise StoreFailureError(f"Transaction row missing: {transaction_id}")

    async def set_balance(self, account_id: UUID, balance: Decimal) -> None:
        self._update_account(account_id, balance=to_money(balance))

    async def increment_balance(self, account_id: UUID, delta: Decimal) -> None:
        self._update_account(account_id, balance=AccountRow.balance + to_money(delta))

    def _update_account(self, account_id: UUID, **values) -> None:
        result = self._session.execute(
            update(AccountRow)
            .where(AccountRow.id == account_id)
            .values(updated_at=utc_now(), **values)
        )
        if result.rowcount != 1:
            raise StoreFailureError(f"Account row missing: {account_id}")


# =============================================================================
# STORAGE
# =============================================================================

class SqlAlchemyLedgerStorage(LedgerStorageInterface):
    """
    Relational implementation of ledger storage.

    Each read opens a short-lived session; each unit of work runs in
    exactly one database transaction.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlAlchemyLedgerStorage":
        """Build storage for a database URL."""
        connect_args = {}
        if url.startswith("sqlite"):
            # Allow sessions to be used from worker threads
            connect_args["check_same_thread"] = False
        engine = create_engine(url, echo=echo, connect_args=connect_args)
        return cls(engine)

    def create_schema(self) -> None:
        """Create the ledger tables if they don't exist yet."""
        Base.metadata.create_all(bind=self._engine)
        logger.info("schema_ready", url=str(self._engine.url))

    async def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        try:
            with self._session_factory() as session:
                row = session.scalars(
                    select(UserRow).where(UserRow.external_id == external_id)
                ).one_or_none()
                return _row_to_user(row) if row else None
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Failed to look up user: {e}") from e

    async def create_user(self, user: User) -> User:
        try:
            with self._session_factory.begin() as session:
                session.add(UserRow(
                    id=user.id,
                    external_id=user.external_id,
                    created_at=user.created_at,
                ))
        except IntegrityError as e:
            raise DuplicateError(f"User already registered: {user.external_id}") from e
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Failed to create user: {e}") from e
        return user

    async def create_account(self, account: Account) -> Account:
        try:
            with self._session_factory.begin() as session:
                session.add(AccountRow(
                    id=account.id,
                    user_id=account.user_id,
                    name=account.name,
                    balance=account.balance,
                    account_type=account.account_type.value,
                    currency=account.currency,
                    is_default=account.is_default,
                    created_at=account.created_at,
                    updated_at=account.updated_at,
                ))
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Failed to create account: {e}") from e
        return account

    async def get_account(
        self,
        account_id: UUID,
        user_id: UUID,
    ) -> Optional[Account]:
        try:
            with self._session_factory() as session:
                row = session.scalars(
                    select(AccountRow).where(
                        AccountRow.id == account_id,
                        AccountRow.user_id == user_id,
                    )
                ).one_or_none()
                return _row_to_account(row) if row else None
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Failed to get account: {e}") from e

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        try:
            with self._session_factory() as session:
                row = session.scalars(
                    select(TransactionRow).where(
                        TransactionRow.id == transaction_id,
                        TransactionRow.user_id == user_id,
                    )
                ).one_or_none()
                return _row_to_transaction(row) if row else None
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Failed to get transaction: {e}") from e

    async def list_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        filters = filters or TransactionFilter()

        query = select(TransactionRow).where(TransactionRow.user_id == user_id)
        if filters.account_id:
            query = query.where(TransactionRow.account_id == filters.account_id)
        if filters.date_from:
            query = query.where(TransactionRow.date >= filters.date_from)
        if filters.date_to:
            query = query.where(TransactionRow.date <= filters.date_to)
        if filters.category:
            query = query.where(TransactionRow.category == filters.category)
        if filters.type:
            query = query.where(TransactionRow.type == filters.type.value)
        if filters.is_recurring is not None:
            query = query.where(TransactionRow.is_recurring == filters.is_recurring)
        query = query.order_by(
            TransactionRow.date.desc(),
            TransactionRow.created_at.desc(),
        )

        try:
            with self._session_factory() as session:
                return [_row_to_transaction(row) for row in session.scalars(query)]
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Failed to list transactions: {e}") from e

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[SqlAlchemyUnitOfWork]:
        session = self._session_factory()
        try:
            with session.begin():
                yield SqlAlchemyUnitOfWork(session)
        except SQLAlchemyError as e:
            logger.error("unit_of_work_failed", error=str(e))
            raise StoreFailureError(f"Failed to commit ledger change: {e}") from e
        finally:
            session.close()
