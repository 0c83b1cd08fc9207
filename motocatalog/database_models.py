from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, TEXT
from sqlalchemy.orm import relationship
from .database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# 1. Modelo de Tabela para Motocicletas
class Motorcycle(Base):
    __tablename__ = "motorcycles"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(TEXT, nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    is_sold = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    # Relacionamentos: uma Moto tem muitas Imagens e Cores
    images = relationship(
        "Image", back_populates="motorcycle", cascade="all, delete-orphan", order_by="Image.id"
    )
    colors = relationship(
        "Color", back_populates="motorcycle", cascade="all, delete-orphan", order_by="Color.id"
    )


# 2. Modelo de Tabela para Imagens
class Image(Base):
    __tablename__ = "images"
    id = Column(Integer, primary_key=True, autoincrement=True)
    # Caminho em /uploads, URL remota ou data URI
    url = Column(TEXT, nullable=False)

    # Chave Estrangeira
    motorcycle_id = Column(
        Integer, ForeignKey("motorcycles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    motorcycle = relationship("Motorcycle", back_populates="images")


# 3. Modelo de Tabela para Cores
class Color(Base):
    __tablename__ = "colors"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    hex = Column(String(7), nullable=False)

    # Chave Estrangeira
    motorcycle_id = Column(
        Integer, ForeignKey("motorcycles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    motorcycle = relationship("Motorcycle", back_populates="colors")
