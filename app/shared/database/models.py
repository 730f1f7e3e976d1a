# app/shared/database/models.py
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Float,
    Numeric, ForeignKey, UniqueConstraint, CheckConstraint, Index,
    func
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

# =====================================================
# MIXIN PARA TIMESTAMPS
# =====================================================
class TimestampMixin:
    """Mixin que adiciona os campos created_at e updated_at"""
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp(), onupdate=func.current_timestamp())


# =====================================================
# LOJAS E USUÁRIOS
# =====================================================

class Store(Base, TimestampMixin):
    """Modelo de Loja"""
    __tablename__ = "stores"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)

    # Relationships
    users = relationship("User", back_populates="store")
    shelves = relationship("Shelf", back_populates="store")


class User(Base):
    """Modelo de Usuário"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(String(50), default='repositor', nullable=False)
    store_id = Column(String(64), ForeignKey("stores.id"), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    store = relationship("Store", back_populates="users")


# =====================================================
# PRODUTOS
# =====================================================

class Product(Base, TimestampMixin):
    """Produto do catálogo geral (sem dados volumétricos)"""
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    name = Column(String(255))
    ean = Column(String(32), index=True)
    sku = Column(String(64))
    description = Column(String(255))


class VolumetryProduct(Base):
    """Dados volumétricos de um SKU"""
    __tablename__ = "volumetry_products"

    id = Column(String(64), primary_key=True)
    ean = Column(String(32), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    category = Column(String(100), index=True)
    brand = Column(String(100))

    width_cm = Column(Float, nullable=False)
    height_cm = Column(Float, nullable=False)
    depth_cm = Column(Float, nullable=False)
    weight_kg = Column(Float)
    stackable = Column(Boolean, default=False, nullable=False)
    max_vertical_layers = Column(Integer)

    sale_price = Column(Numeric(10, 2), default=0)
    margin_percent = Column(Numeric(5, 2))

    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    # Relationships
    slots = relationship("PlanogramSlot", back_populates="product")


# =====================================================
# ESTRUTURA FÍSICA E PLANOGRAMA
# =====================================================

class Shelf(Base, TimestampMixin):
    """Prateleira / equipamento de uma gôndola"""
    __tablename__ = "shelves"

    id = Column(String(64), primary_key=True)
    gondola_id = Column(String(64), nullable=False, index=True)
    store_id = Column(String(64), ForeignKey("stores.id"), nullable=False, index=True)
    usable_width_cm = Column(Float, nullable=False)
    usable_depth_cm = Column(Float, nullable=False)
    free_height_cm = Column(Float, nullable=False)
    level = Column(String(10), nullable=False, default='maos')

    __table_args__ = (
        CheckConstraint("level IN ('olhos', 'maos', 'pes')", name='check_shelf_level'),
    )

    # Relationships
    store = relationship("Store", back_populates="shelves")
    slots = relationship("PlanogramSlot", back_populates="shelf")


class PlanogramSlot(Base, TimestampMixin):
    """Posição de um produto em uma prateleira"""
    __tablename__ = "planogram_slots"

    id = Column(String(64), primary_key=True)
    store_id = Column(String(64), ForeignKey("stores.id"), nullable=False, index=True)
    shelf_id = Column(String(64), ForeignKey("shelves.id"), nullable=False, index=True)
    product_id = Column(String(64), ForeignKey("volumetry_products.id"), nullable=False, index=True)
    position_x_cm = Column(Float, default=0)
    slot_width_cm = Column(Float, nullable=False)
    defined_facings = Column(Integer, default=1)

    # Relationships
    shelf = relationship("Shelf", back_populates="slots")
    product = relationship("VolumetryProduct", back_populates="slots")


# =====================================================
# LEITURAS, VENDAS E RUPTURAS
# =====================================================

class ShelfStockReading(Base):
    """Leitura de estoque de gôndola"""
    __tablename__ = "shelf_stock_readings"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(String(64), ForeignKey("stores.id"), nullable=False)
    slot_id = Column(String(64), ForeignKey("planogram_slots.id"), nullable=False, index=True)
    product_id = Column(String(64), ForeignKey("volumetry_products.id"), nullable=False, index=True)
    current_quantity = Column(Integer, nullable=False)
    source = Column(String(30), nullable=False, default='contagem_manual')
    read_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name='check_reading_quantity'),
        Index('ix_readings_store_read_at', 'store_id', 'read_at'),
    )


class HourlySales(Base):
    """Vendas por hora de um produto em uma loja"""
    __tablename__ = "hourly_sales"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(String(64), ForeignKey("stores.id"), nullable=False)
    product_id = Column(String(64), ForeignKey("volumetry_products.id"), nullable=False)
    sale_date = Column(Date, nullable=False)
    hour = Column(Integer, nullable=False)
    units_sold = Column(Float, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint('store_id', 'product_id', 'sale_date', 'hour', name='hourly_sales_unique'),
        CheckConstraint("hour >= 0 AND hour <= 23", name='check_sales_hour'),
    )


class RuptureEvent(Base):
    """Evento de ruptura (total ou funcional)"""
    __tablename__ = "rupture_events"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(String(64), ForeignKey("stores.id"), nullable=False)
    product_id = Column(String(64), ForeignKey("volumetry_products.id"), nullable=False, index=True)
    slot_id = Column(String(64), ForeignKey("planogram_slots.id"), nullable=True, index=True)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime)
    rupture_type = Column(String(10), nullable=False)
    duration_hours = Column(Float)
    units_not_sold = Column(Float)
    revenue_lost = Column(Float)
    margin_lost = Column(Float)

    __table_args__ = (
        CheckConstraint("rupture_type IN ('total', 'funcional')", name='check_rupture_type'),
        Index('ix_rupture_events_store_started', 'store_id', 'started_at'),
    )


class SupplyThreshold(Base):
    """Limiares de abastecimento por categoria"""
    __tablename__ = "supply_thresholds"

    category = Column(String(100), primary_key=True)
    good_min = Column(Float, nullable=False)
    regular_min = Column(Float, nullable=False)
    critical_max = Column(Float, nullable=False)
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    __table_args__ = (
        CheckConstraint(
            "critical_max >= 0 AND critical_max <= regular_min AND regular_min <= good_min AND good_min <= 1",
            name='check_threshold_order'
        ),
    )
