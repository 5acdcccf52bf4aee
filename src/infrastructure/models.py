"""
SQLAlchemy ORM models.

Tables
------
* ``record_collections`` -- one row per logical collection (``cabs``,
  ``trips``, ``cars``, ``drivers``, ``locations``); ``payload`` holds the
  whole collection as a JSON array and is always replaced in full.
"""

from sqlalchemy import JSON, Column, DateTime, String, func

from .database import Base


class RecordCollectionModel(Base):
    __tablename__ = "record_collections"

    name = Column(String(64), primary_key=True)
    payload = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
