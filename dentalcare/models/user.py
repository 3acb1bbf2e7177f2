"""User model definitions."""

from sqlalchemy import Column, Integer, String
from dentalcare.database import Base


class User(Base):
    """Represents a patient or staff account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    role = Column(String, default="patient")  # patient/admin
    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String)
