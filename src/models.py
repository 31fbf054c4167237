"""Database models for the refuel log."""

from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

from services.analytics import RefuelRecord
from services.fuel_service import FuelService

db = SQLAlchemy()


class Refuel(db.Model):
    """A single refueling event submitted by a user."""

    __tablename__ = "refuels"

    id: int = db.Column(db.Integer, primary_key=True)
    user_id: str = db.Column(db.String(64), nullable=False, index=True)

    # Stored as entered; combined into a timestamp when read
    refuel_date: str = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    refuel_time: str = db.Column(db.String(8), nullable=True)  # HH:MM

    odometer: float = db.Column(db.Float, nullable=True)
    volume: float = db.Column(db.Float, nullable=False, default=0.0)
    amount: float = db.Column(db.Float, nullable=False, default=0.0)
    price_per_unit: float = db.Column(db.Float, nullable=True)

    fuel_grade: str = db.Column(db.String(20), nullable=True)
    remark: str = db.Column(db.String(500), nullable=True)

    is_full_tank: bool = db.Column(db.Boolean, nullable=False, default=False)
    warning_light: bool = db.Column(db.Boolean, nullable=False, default=False)
    has_previous_record: bool = db.Column(db.Boolean, nullable=False, default=False)

    # Metadata
    created_at: datetime = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow
    )

    @property
    def timestamp(self) -> datetime | None:
        """Event instant, or None if the stored date/time is unusable."""
        return FuelService.combine_timestamp(self.refuel_date, self.refuel_time)

    @classmethod
    def for_user(cls, user_id: str, year: int | None = None):
        """Query for a user's refuels, optionally limited to one year."""
        query = cls.query.filter_by(user_id=user_id)
        if year is not None:
            query = query.filter(
                cls.refuel_date >= f"{year:04d}-01-01",
                cls.refuel_date < f"{year + 1:04d}-01-01",
            )
        return query

    def to_record(self) -> RefuelRecord:
        """Convert to the immutable record used by the analytics pipeline."""
        return RefuelRecord(
            id=self.id,
            user_id=self.user_id,
            timestamp=self.timestamp,
            odometer=FuelService.parse_reading(self.odometer),
            volume=FuelService.parse_quantity(self.volume),
            amount=FuelService.parse_quantity(self.amount),
            price_per_unit=self.price_per_unit,
            fuel_grade=self.fuel_grade or "",
            remark=self.remark or "",
            is_full_tank=bool(self.is_full_tank),
            warning_light=bool(self.warning_light),
            has_previous_record=bool(self.has_previous_record),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        timestamp = self.timestamp
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.refuel_date,
            "time": self.refuel_time,
            "timestamp": timestamp.isoformat() if timestamp else None,
            "odometer": self.odometer,
            "volume": self.volume,
            "amount": self.amount,
            "price_per_unit": self.price_per_unit,
            "fuel_grade": self.fuel_grade,
            "remark": self.remark,
            "is_full_tank": self.is_full_tank,
            "warning_light": self.warning_light,
            "has_previous_record": self.has_previous_record,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
