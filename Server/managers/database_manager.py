"""
RoomBook Server - Database Manager

This module manages database connection, initialization, and password
hashing. Booking writes go through GetWriteSession so the availability
check and the insert/update happen under one write lock.
"""

import secrets
import string
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
import bcrypt

from models.database import Base, User, Setting

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS = {
    "jwt_expiration_hours": "168",  # 7 days
    "session_lifetime_hours": "24",
    "workday_hours": "8",  # Used by the utilization rate on the dashboard
}


class DatabaseManager:
    """
    Manages database connection, initialization, and operations
    """

    def __init__(self, database_url: str = "sqlite:///database/roombook.db"):
        """
        Initialize database manager

        Args:
            database_url: SQLAlchemy database URL
        """
        self.database_url = database_url
        url = make_url(database_url)
        self.is_sqlite = url.get_backend_name() == "sqlite"

        connect_args = {}
        if self.is_sqlite:
            # Ensure database directory exists
            if url.database and url.database != ":memory:":
                db_dir = Path(url.database).parent
                if str(db_dir) != '.':
                    db_dir.mkdir(parents=True, exist_ok=True)
            # Sessions are opened from the threadpool as well as the event loop
            connect_args = {"check_same_thread": False, "timeout": 30}

        self.engine = create_engine(database_url, echo=False, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def InitializeDatabase(self, admin_username: str = "admin", admin_email: str = "admin@company.com",
                           admin_password: Optional[str] = None) -> Optional[str]:
        """
        Initialize the database with all tables and default data
        Creates tables if they don't exist, populates default settings,
        and creates the default admin user when no user with that name exists.

        Args:
            admin_username: Username for the default admin
            admin_email: Email for the default admin
            admin_password: Password for the default admin (generated if None)

        Returns:
            str: Generated admin password if one was generated, None otherwise
        """
        Base.metadata.create_all(bind=self.engine)

        session = self.SessionLocal()
        generated_password = None

        try:
            self.PopulateDefaultSettings(session)

            existing_admin = session.query(User).filter(User.username == admin_username).first()
            if not existing_admin:
                if admin_password is None:
                    admin_password = self.GenerateRandomPassword()
                    generated_password = admin_password

                admin_user = User(
                    id="admin-default",
                    username=admin_username,
                    email=admin_email,
                    password_hash=self.HashPassword(admin_password),
                    first_name="System",
                    last_name="Administrator",
                    role="admin",
                    auth_type="jwt"
                )
                session.add(admin_user)
                logger.info(f"Created default admin user '{admin_username}'")

            session.commit()

        except Exception as e:
            session.rollback()
            raise e
        finally:
            session.close()

        return generated_password

    def PopulateDefaultSettings(self, session: Session) -> None:
        """
        Populate default runtime settings
        Only adds settings that don't already exist

        Args:
            session: SQLAlchemy session
        """
        for key, value in DEFAULT_SETTINGS.items():
            existing = session.query(Setting).filter(Setting.key == key).first()
            if not existing:
                session.add(Setting(key=key, value=value))
                logger.info(f"Added default setting: {key} = {value}")

    def GetIntSetting(self, key: str) -> int:
        """
        Read an integer setting, falling back to its default

        Args:
            key: Setting key

        Returns:
            int: Setting value
        """
        session = self.SessionLocal()
        try:
            setting = session.query(Setting).filter(Setting.key == key).first()
            if setting:
                try:
                    return int(setting.value)
                except ValueError:
                    logger.warning(f"Setting '{key}' has non-integer value '{setting.value}', using default")
            return int(DEFAULT_SETTINGS[key])
        finally:
            session.close()

    @staticmethod
    def GenerateRandomPassword(length: int = 12) -> str:
        """
        Generate a secure random password

        Args:
            length: Password length (default 12)

        Returns:
            str: Generated password
        """
        alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
        return ''.join(secrets.choice(alphabet) for _ in range(length))

    @staticmethod
    def HashPassword(password: str) -> str:
        """
        Hash a password using bcrypt
        Truncates to 72 bytes to comply with bcrypt's maximum password length

        Args:
            password: Plain text password

        Returns:
            str: Hashed password (as string)
        """
        password_bytes = password.encode('utf-8')[:72]
        hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt())
        return hashed.decode('utf-8')

    @staticmethod
    def VerifyPassword(plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against a hash

        Args:
            plain_password: Plain text password to verify
            hashed_password: Stored password hash (None for accounts without a local password)

        Returns:
            bool: True if password matches, False otherwise
        """
        if not hashed_password:
            return False

        password_bytes = plain_password.encode('utf-8')[:72]
        try:
            return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
        except ValueError:
            # Malformed hash in the database
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False

    def GetSession(self) -> Session:
        """
        Get a new database session

        Returns:
            Session: SQLAlchemy session
        """
        return self.SessionLocal()

    @contextmanager
    def GetWriteSession(self) -> Iterator[Session]:
        """
        Session whose transaction holds the database write lock from its
        first statement until commit. Commits when the block exits normally,
        rolls back on any exception.

        SQLite: BEGIN IMMEDIATE takes the RESERVED lock up front, so two
        requests can never both pass an availability check before either
        inserts. Other backends run the transaction at SERIALIZABLE.

        Yields:
            Session: SQLAlchemy session
        """
        session = self.SessionLocal()
        try:
            if self.is_sqlite:
                session.execute(text("BEGIN IMMEDIATE"))
            else:
                session.connection(execution_options={"isolation_level": "SERIALIZABLE"})

            yield session
            session.commit()

        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
