"""Payment model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base
from models.tracking import TrackedMixin


class Payment(TrackedMixin, Base):
    """Append-only payment made by a guest."""

    __tablename__ = "pagos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invitado_id = Column(Integer, ForeignKey("invitados.id"), nullable=False, index=True)
    monto = Column(Numeric(10, 2), nullable=False)
    metodo_pago = Column(String, nullable=False)
    fecha_pago = Column(String, nullable=False)  # YYYY-MM-DD
    saldo_pendiente = Column(Numeric(10, 2), nullable=False, default=0)  # balance right after this payment
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    guest = relationship("Guest", back_populates="payments")
