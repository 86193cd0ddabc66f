"""Audit trail model."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from database import Base


AUDIT_ACTIONS = ("CREATE", "UPDATE", "DELETE")


class AuditEntry(Base):
    """Insert-only record of a mutating action."""

    __tablename__ = "auditoria"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tabla = Column(String, nullable=False)
    accion = Column(String, nullable=False)  # CREATE, UPDATE, DELETE
    descripcion = Column(Text, nullable=True)
    usuario_id = Column(Integer, nullable=True)
    usuario_email = Column(String, nullable=True)
    fecha = Column(DateTime(timezone=True), server_default=func.now(), index=True)
