from sqlalchemy import (
    Boolean,
    BigInteger,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.sql import func

from .database import Base

# Encoded payloads and item lists can run past MySQL TEXT's 64KB
LongText = Text().with_variant(mysql.LONGTEXT(), "mysql")
Money = Numeric(10, 2)

MYSQL_TABLE_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class ArchivedBookingColumns:
    """Columns shared by the cancelled and completed archive tables"""

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(255), unique=True, nullable=False, index=True)
    mongo_id = Column(String(50), nullable=True)  # Operational document id
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=True)

    # Scheduling
    theater_name = Column(String(255), nullable=True)
    booking_date = Column(Date, nullable=True, index=True)
    booking_time = Column(String(50), nullable=True)
    occasion = Column(String(255), nullable=True)
    occasion_person_name = Column(String(255), nullable=True)
    occasion_field1_label = Column(String(255), nullable=True)
    occasion_field1_value = Column(String(255), nullable=True)
    occasion_field2_label = Column(String(255), nullable=True)
    occasion_field2_value = Column(String(255), nullable=True)
    booking_type = Column(String(50), nullable=True)

    # People / amounts
    number_of_people = Column(Integer, nullable=True)
    total_amount = Column(Money, nullable=True)
    advance_payment = Column(Money, nullable=True)
    venue_payment = Column(Money, nullable=True)
    payable_amount = Column(Money, nullable=True)
    total_before_discount = Column(Money, nullable=True)
    total_after_discount = Column(Money, nullable=True)
    decoration_fee = Column(Money, nullable=True)

    # Discounts
    admin_discount = Column(Money, nullable=True)
    special_discount = Column(Money, nullable=True)
    generic_discount = Column(Money, nullable=True)
    coupon_discount = Column(Money, nullable=True)
    coupon_code = Column(String(100), nullable=True)
    discount_by_coupon = Column(Money, nullable=True)
    applied_decoration_fee = Column(Money, nullable=True)

    # Payment summary
    payment_status = Column(String(50), nullable=True)
    payment_method = Column(String(50), nullable=True)
    venue_payment_method = Column(String(50), nullable=True)
    paid_by = Column(String(50), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    payment_received = Column(String(255), nullable=True)  # e.g. "Cash - Riya"

    # Provenance
    notes = Column(Text, nullable=True)
    created_by_type = Column(String(50), nullable=True)
    created_by_name = Column(String(255), nullable=True)
    staff_id = Column(String(255), nullable=True)
    staff_name = Column(String(255), nullable=True)
    created_at_source = Column(DateTime, nullable=True)

    # JSON-encoded collections
    pricing_data = Column(LongText, nullable=True)
    occasion_data = Column(LongText, nullable=True)
    selected_movies = Column(LongText, nullable=True)
    selected_cakes = Column(LongText, nullable=True)
    selected_decor_items = Column(LongText, nullable=True)
    selected_gifts = Column(LongText, nullable=True)
    selected_extra_add_ons = Column(LongText, nullable=True)
    selected_food = Column(LongText, nullable=True)
    selected_other_items = Column(LongText, nullable=True)  # {"selectedX": [...]} for unknown categories

    # Base64 JSON of the full reconciled snapshot
    original_booking_data = Column(LongText, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class CancelledBooking(ArchivedBookingColumns, Base):
    __tablename__ = "cancelled_bookings"
    __table_args__ = MYSQL_TABLE_ARGS

    # Columns of the first deployed table; also the legacy upsert column set
    __baseline_columns__ = (
        "id",
        "booking_id",
        "name",
        "email",
        "phone",
        "theater_name",
        "booking_date",
        "booking_time",
        "occasion",
        "number_of_people",
        "total_amount",
        "cancelled_at",
        "cancellation_reason",
        "refund_amount",
        "refund_status",
        "original_booking_data",
        "created_at",
        "updated_at",
    )
    __archived_at_column__ = "cancelled_at"

    cancelled_at = Column(DateTime, server_default=func.now(), index=True)
    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Money, nullable=True)
    refund_status = Column(String(50), nullable=True)


class CompletedBooking(ArchivedBookingColumns, Base):
    __tablename__ = "completed_bookings"
    __table_args__ = MYSQL_TABLE_ARGS

    __baseline_columns__ = (
        "id",
        "booking_id",
        "name",
        "email",
        "phone",
        "theater_name",
        "booking_date",
        "booking_time",
        "occasion",
        "number_of_people",
        "total_amount",
        "completed_at",
        "booking_status",
        "payment_status",
        "original_booking_data",
        "created_at",
        "updated_at",
    )
    __archived_at_column__ = "completed_at"

    completed_at = Column(DateTime, server_default=func.now(), index=True)
    booking_status = Column(String(50), default="completed", nullable=True)

    ticket_number = Column(String(50), nullable=True)
    payment_mode = Column(String(50), nullable=True)
    advance_payment_method = Column(String(50), nullable=True)
    user_id = Column(String(255), nullable=True)
    admin_name = Column(String(255), nullable=True)
    is_manual_booking = Column(Boolean, nullable=True)

    base_capacity = Column(Integer, nullable=True)
    theater_capacity_min = Column(Integer, nullable=True)
    theater_capacity_max = Column(Integer, nullable=True)

    theater_base_price = Column(Money, nullable=True)
    extra_guest_fee = Column(Money, nullable=True)
    extra_guests_count = Column(Integer, nullable=True)
    extra_guest_charges = Column(Money, nullable=True)
    slot_booking_fee = Column(Money, nullable=True)

    penalty_charges = Column(Money, nullable=True)
    penalty_reason = Column(Text, nullable=True)
    penalty_charge = Column(Money, nullable=True)
    coupon_type = Column(String(50), nullable=True)
    coupon_value = Column(Money, nullable=True)


class Feedback(Base):
    __tablename__ = "feedback"
    __table_args__ = MYSQL_TABLE_ARGS

    # The table is created complete; every data column is still re-ensured
    __baseline_columns__ = ("id", "created_at", "updated_at")

    id = Column(Integer, primary_key=True, autoincrement=True)
    mongo_id = Column(String(50), unique=True, nullable=True)
    feedback_id = Column(BigInteger, nullable=True, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(30), nullable=True)
    avatar = Column(Text, nullable=True)
    avatar_type = Column(String(50), nullable=True)
    social_handle = Column(String(255), nullable=True)
    social_platform = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)
    submitted_at = Column(DateTime, nullable=True, index=True)
    status = Column(String(50), nullable=True)
    is_testimonial = Column(Boolean, nullable=True)
    created_at_source = Column(DateTime, nullable=True)
    updated_at_source = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


ARCHIVE_MODELS = {
    "cancelled": CancelledBooking,
    "completed": CompletedBooking,
}
