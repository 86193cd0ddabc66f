"""Wedding configuration model."""

from sqlalchemy import Column, Integer, String

from database import Base
from models.tracking import TrackedMixin


class EventConfig(TrackedMixin, Base):
    """Current wedding details. The table holds at most one row."""

    __tablename__ = "configuracion_boda"

    id = Column(Integer, primary_key=True)
    nombre_novia = Column(String, nullable=False)
    nombre_novio = Column(String, nullable=False)
    fecha_boda = Column(String, nullable=False)  # YYYY-MM-DD
    hora_boda = Column(String, nullable=False)  # HH:MM
    lugar_boda = Column(String, nullable=False)
    imagen_portada = Column(String, nullable=True)
