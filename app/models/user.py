from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    # Null for accounts created through social sign-in
    hashed_password = Column(String(255), nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    notes = relationship("Note", back_populates="author", passive_deletes=True)
    folders = relationship("Folder", back_populates="author", passive_deletes=True)
    bookmarks = relationship("Bookmark", back_populates="user", passive_deletes=True)
