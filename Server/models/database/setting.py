"""
RoomBook Server - Setting Database Model

Runtime settings stored as key-value pairs (token lifetime, session
lifetime, workday length used by the stats page).
"""

from sqlalchemy import Column, String

from models.database.base import Base


class Setting(Base):
    """
    Settings table - stores server configuration as key-value pairs
    """
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
