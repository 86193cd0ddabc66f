"""Hotel model."""

from sqlalchemy import JSON, Column, Integer, String
from sqlalchemy.orm import relationship

from database import Base
from models.tracking import TrackedMixin


class Hotel(TrackedMixin, Base):
    """Hotel hosting the guests. The table holds at most one row."""

    __tablename__ = "hotel"

    id = Column(Integer, primary_key=True)
    nombre = Column(String, nullable=False)
    direccion = Column(String, nullable=False)
    servicios_incluidos = Column(JSON, nullable=True)  # list of strings

    rooms = relationship("Room", back_populates="hotel")
