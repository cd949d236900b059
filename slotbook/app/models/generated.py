from sqlalchemy import Column, Float, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Providers(Base):
    __tablename__ = 'providers'

    username = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    email = Column(Text)
    id = Column(Integer, primary_key=True)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    # {"monday": {"start": "09:00", "end": "17:00"}, "sunday": null, ...}
    working_hours = Column(Text, nullable=False, server_default=text("'{}'"))
    slot_duration = Column(Integer, nullable=False, server_default=text('30'))
    break_time = Column(Integer, nullable=False, server_default=text('0'))
    booking_delay = Column(Float, nullable=False, server_default=text('0'))
    multiple_bookings_per_slot = Column(Integer, nullable=False, server_default=text('0'))
    bookings_per_slot = Column(Integer, nullable=False, server_default=text('1'))
    # JSON arrays: ["2026-01-05", ...] / ["2026-01-05T09:00:00.000Z", ...]
    blocked_dates = Column(Text, nullable=False, server_default=text("'[]'"))
    blocked_slots = Column(Text, nullable=False, server_default=text("'[]'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='provider')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        # At most one live booking per (instant, ordinal); ordinals are < capacity
        UniqueConstraint('provider_id', 'date_time_utc', 'slot_ordinal', name='uq_booking_slot_ordinal'),
        Index('idx_bookings_provider_time', 'provider_id', 'date_time_utc'),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    customer_name = Column(Text, nullable=False)
    customer_email = Column(Text, nullable=False)
    customer_phone = Column(Text)
    service_type = Column(Text)
    service_id = Column(Text)
    quantity = Column(Integer)
    address = Column(Text)
    # Canonical UTC ISO string, see services.slots.config.to_utc_iso
    date_time_utc = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'Pending'"))
    # NULL once the booking no longer occupies its slot (canceled)
    slot_ordinal = Column(Integer)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)

    provider = relationship('Providers', back_populates='bookings')
