"""Guest model."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from database import Base
from models.tracking import TrackedMixin


class Guest(TrackedMixin, Base):
    """Invitee tracked for room assignment and payments."""

    __tablename__ = "invitados"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nombre = Column(String, nullable=False)
    contacto = Column(String, nullable=False)
    habitacion_id = Column(Integer, ForeignKey("habitaciones.id"), nullable=True, index=True)
    # Cached value, recomputed from payments by services.reconciliation
    estado_pago = Column(String, nullable=False, default="Pendiente")

    room = relationship("Room", back_populates="guests")
    payments = relationship("Payment", back_populates="guest")
