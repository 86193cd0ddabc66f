"""Room model."""

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.tracking import TrackedMixin


class Room(TrackedMixin, Base):
    """Bookable hotel room with a fixed price."""

    __tablename__ = "habitaciones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    hotel_id = Column(Integer, ForeignKey("hotel.id"), nullable=True)
    nombre = Column(String, nullable=False)
    precio = Column(Numeric(10, 2), nullable=False)
    capacidad = Column(Integer, nullable=False)
    cupos_disponibles = Column(Integer, nullable=False)

    hotel = relationship("Hotel", back_populates="rooms")
    guests = relationship("Guest", back_populates="room")
