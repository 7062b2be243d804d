import logging
from typing import Generator, List

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.config import settings
from app.errors import ConflictError, StorageError, describe_exception

logger = logging.getLogger(__name__)

# check_same_thread=False is required for SQLite when sessions cross
# FastAPI's threadpool workers
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
    echo=False,
)


if settings.DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite only enforces FOREIGN KEY constraints when asked, per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from app.models import Message, User  # noqa: F401

        logger.debug("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and schema is applied.

    Returns:
        True if DB is healthy and the messages table exists, False otherwise.
    """
    logger.debug("Checking database health...")
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            logger.debug("Database connectivity OK")

        if not inspect(engine).has_table("messages"):
            logger.error("Database schema not applied: 'messages' table not found")
            return False
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# User Repository Functions
# =============================================================================

def create_user(db: Session, email: str, password_hash: str):
    """
    Create a new user.

    Raises:
        ConflictError: a user with this email already exists
        StorageError: any other database failure
    """
    from app.models import User

    logger.info(f"Creating user: email={email}")
    user = User(email=email, password_hash=password_hash)
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        logger.info(f"Duplicate user email: {email}")
        raise ConflictError()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create user {email}: {e}")
        raise StorageError(data=describe_exception(e)) from e

    logger.info(f"User created successfully: {user.id}")
    return user


def get_user_by_id(db: Session, user_id: str):
    """Return the User with this id, or None."""
    from app.models import User

    logger.debug(f"Looking up user by ID: {user_id}")
    try:
        return db.get(User, user_id)
    except SQLAlchemyError as e:
        logger.error(f"User lookup failed for {user_id}: {e}")
        raise StorageError(data=describe_exception(e)) from e


def get_user_by_email(db: Session, email: str):
    """Return the User with this (lower-cased) email, or None."""
    from app.models import User

    try:
        return db.query(User).filter(User.email == email).first()
    except SQLAlchemyError as e:
        logger.error(f"User lookup failed for {email}: {e}")
        raise StorageError(data=describe_exception(e)) from e


# =============================================================================
# Message Repository Functions
# =============================================================================

def create_message(
    db: Session,
    recipient: str,
    content: str,
    user_id: str,
    status: str = "sent",
):
    """
    Insert a new message row. The id and created_at are assigned here,
    never by the caller.

    Args:
        db: Database session
        recipient: Destination phone number
        content: Message body
        user_id: Owning user's id
        status: Lifecycle tag (always "sent" for the send workflow)

    Returns:
        The persisted Message

    Raises:
        StorageError: the insert failed (e.g. FK violation)
    """
    from app.models import Message

    logger.info(f"Creating message: user={user_id}, to={recipient}, status={status}")

    message = Message(
        recipient=recipient,
        content=content,
        status=status,
        user_id=user_id,
    )
    try:
        db.add(message)
        db.commit()
        db.refresh(message)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create message for user {user_id}: {e}")
        raise StorageError(data=describe_exception(e)) from e

    logger.info(f"Message created successfully: {message.id}")
    return message


def list_messages(db: Session) -> List:
    """
    Return every stored message across all users.

    No filtering, no pagination, and no ordering beyond the backend default.
    """
    from app.models import Message

    logger.info("Querying all messages")
    try:
        messages = db.query(Message).all()
    except SQLAlchemyError as e:
        logger.error(f"Failed to list messages: {e}")
        raise StorageError(data=describe_exception(e)) from e

    logger.info(f"Retrieved {len(messages)} messages")
    return messages
