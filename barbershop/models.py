import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Primary keys are UUID strings, as exposed to the frontend"""
    return str(uuid.uuid4())


class AppointmentStatus:
    SCHEDULED = "Programado"
    PAID = "Cobrado"
    CANCELLED = "Cancelado"
    NO_SHOW = "No asistido"

    ALL = (SCHEDULED, PAID, CANCELLED, NO_SHOW)


class Branch(Base):
    __tablename__ = "sucursales"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    street = Column(String(100), nullable=False)
    number = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    barbers = relationship("User", back_populates="branch")


class User(Base):
    __tablename__ = "usuarios"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    dni = Column(String(8), unique=True, index=True, nullable=False)
    cuil = Column(String(13), unique=True, nullable=True)  # Staff only - clients have no CUIL
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    branch_id = Column(String(36), ForeignKey("sucursales.id"), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Password recovery
    security_question = Column(String(255), nullable=True)
    security_answer_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branch = relationship("Branch", back_populates="barbers")
    category_assignments = relationship(
        "CategoryAssignment", back_populates="client", cascade="all, delete-orphan"
    )

    @property
    def user_type(self) -> str:
        if self.is_admin:
            return "admin"
        if self.cuil:
            return "barber"
        return "client"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Category(Base):
    __tablename__ = "categorias"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(250), nullable=False)
    haircut_discount = Column(Float, default=0, nullable=False)  # Percent 0-100
    product_discount = Column(Float, default=0, nullable=False)  # Percent 0-100

    assignments = relationship("CategoryAssignment", back_populates="category", passive_deletes=True)


class CategoryAssignment(Base):
    """Tier history: a new row per change, the newest row is the current tier"""

    __tablename__ = "categoria_vigente"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(String(36), ForeignKey("categorias.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("usuarios.id"), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False, server_default=func.now())
    # Set by promotion/demotion rules, manual changes leave it False
    automatic = Column(Boolean, default=False, nullable=False)

    category = relationship("Category", back_populates="assignments")
    client = relationship("User", back_populates="category_assignments")


class Haircut(Base):
    __tablename__ = "tipos_corte"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(50), nullable=False)
    base_price = Column(Float, nullable=False, default=0)


class Schedule(Base):
    __tablename__ = "horarios"
    __table_args__ = (UniqueConstraint("barber_id", "date", "start_time", name="uq_horario_barbero"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barber_id = Column(String(36), ForeignKey("usuarios.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(10), nullable=False)

    barber = relationship("User")


class Appointment(Base):
    __tablename__ = "turnos"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("usuarios.id"), nullable=False, index=True)
    barber_id = Column(String(36), ForeignKey("usuarios.id"), nullable=False, index=True)
    haircut_id = Column(String(36), ForeignKey("tipos_corte.id"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.SCHEDULED, index=True)
    price = Column(Float, nullable=True)
    payment_method = Column(String(50), nullable=True)
    cancelled_on = Column(Date, nullable=True)
    same_day_cancellation = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("User", foreign_keys=[client_id])
    barber = relationship("User", foreign_keys=[barber_id])
    haircut = relationship("Haircut")
    invoice = relationship("Invoice", back_populates="appointment", uselist=False)


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Only the SHA-256 of the token is stored
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    blacklisted = Column(Boolean, default=False, nullable=False)
    blacklisted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Invoice(Base):
    """Electronic invoice (comprobante) authorized by ARCA for a paid appointment"""

    __tablename__ = "facturas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    appointment_id = Column(String(36), ForeignKey("turnos.id"), unique=True, nullable=True)
    voucher_type = Column(Integer, nullable=False)
    sales_point = Column(Integer, nullable=False)
    voucher_number = Column(Integer, nullable=False)
    cae = Column(String(20), nullable=False)
    cae_expiration = Column(String(10), nullable=False)  # yyyy-mm-dd as returned by ARCA
    total_amount = Column(Float, nullable=False)
    net_amount = Column(Float, nullable=False)
    vat_amount = Column(Float, nullable=False)
    doc_type = Column(Integer, nullable=False)
    doc_number = Column(String(20), nullable=False, default="0")
    issued_on = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="invoice")
