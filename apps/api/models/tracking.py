"""Creator/modifier columns shared by the wedding tables."""

from sqlalchemy import Column, DateTime, Integer, String


class TrackedMixin:
    """Who created and who last modified a row, and when.

    Values are stamped by the service layer from the authenticated user.
    """

    creado_por = Column(Integer, nullable=True)
    creado_por_email = Column(String, nullable=True)
    fecha_creacion = Column(DateTime(timezone=True), nullable=True)
    modificado_por = Column(Integer, nullable=True)
    modificado_por_email = Column(String, nullable=True)
    fecha_modificacion = Column(DateTime(timezone=True), nullable=True)
