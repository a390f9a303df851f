from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Numeric, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from inventario.config.database import Base

# Las tablas no declaran esquema: el contexto del tenant las traduce al
# esquema físico (inventario_principal, inventario_sucursal, ...)

MOVEMENT_KINDS = ("entrada", "salida")
# Decimales que guardan cantidad y precio
AMOUNT_DECIMALS = 2
COUNTERPARTY_ROLES = ("proveedor", "cliente", "ambos")

# ===== CATÁLOGO =====

class UnitOfMeasure(Base):
    """Modelo de Unidad de Medida - EXACTO A BD"""
    __tablename__ = "unidades_medida"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(50), nullable=False)
    descripcion = Column(String(255))

    # Relationships
    products = relationship("Product", back_populates="unit_of_measure")

class User(Base):
    """Modelo de Usuario - EXACTO A BD (credenciales fuera de este servicio)"""
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), nullable=False)
    correo = Column(String(255), unique=True, nullable=False)
    rol = Column(String(50), default='bodeguero', nullable=False)
    creado_en = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    movements = relationship("Movement", back_populates="user")

class Product(Base):
    """Modelo de Producto - EXACTO A BD"""
    __tablename__ = "productos"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(100), unique=True, nullable=False, index=True)
    descripcion = Column(String(255), nullable=False)
    unidad_medida_id = Column(Integer, ForeignKey("unidades_medida.id"))
    creado_en = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    unit_of_measure = relationship("UnitOfMeasure", back_populates="products")
    movements = relationship("Movement", back_populates="product")

class Warehouse(Base):
    """Modelo de Bodega - EXACTO A BD"""
    __tablename__ = "bodegas"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), unique=True, nullable=False)
    ubicacion = Column(String(255))

    # Relationships
    movements = relationship("Movement", back_populates="warehouse")

class Counterparty(Base):
    """Modelo de Cliente/Proveedor - EXACTO A BD"""
    __tablename__ = "clientes"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), nullable=False)
    telefono = Column(String(50))
    email = Column(String(255))
    direccion = Column(String(255))
    tipo = Column(Enum(*COUNTERPARTY_ROLES, name="cliente_tipo", native_enum=False, create_constraint=True), nullable=False)
    creado_en = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    movements = relationship("Movement", back_populates="counterparty")

    def can_supply(self) -> bool:
        return self.tipo in ("proveedor", "ambos")

    def can_buy(self) -> bool:
        return self.tipo in ("cliente", "ambos")

# ===== MOVIMIENTOS =====

class Movement(Base):
    """Modelo de Movimiento (registro del kardex) - EXACTO A BD"""
    __tablename__ = "movimientos"

    id = Column(Integer, primary_key=True, index=True)
    tipo = Column(Enum(*MOVEMENT_KINDS, name="movimiento_tipo", native_enum=False, create_constraint=True), nullable=False)
    cantidad = Column(Numeric(14, AMOUNT_DECIMALS), nullable=False)
    precio = Column(Numeric(14, AMOUNT_DECIMALS), default=0, nullable=False)
    fecha = Column(DateTime, server_default=func.current_timestamp(), nullable=False, index=True)
    producto_id = Column(Integer, ForeignKey("productos.id"), nullable=False, index=True)
    bodega_id = Column(Integer, ForeignKey("bodegas.id"), nullable=False, index=True)
    usuario_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False)
    cliente_id = Column(Integer, ForeignKey("clientes.id"))
    observacion = Column(Text)

    # Relationships
    product = relationship("Product", back_populates="movements")
    warehouse = relationship("Warehouse", back_populates="movements")
    user = relationship("User", back_populates="movements")
    counterparty = relationship("Counterparty", back_populates="movements")

    @property
    def signed_quantity(self):
        return self.cantidad if self.tipo == "entrada" else -self.cantidad
