from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Numeric, ForeignKey, DateTime,
    func, select,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import Select

from app.database import Base
from app.models.category import event_categories

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 500
BARGAIN_PRICE_LIMIT = 30

DateLike = Union[date, datetime]


def naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; aware values are converted first."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _as_datetime(value: DateLike) -> datetime:
    """A bare date stands for midnight of that day."""
    if isinstance(value, datetime):
        return naive_utc(value)
    return datetime.combine(value, time.min)


def _day_bounds(value: DateLike) -> Tuple[datetime, datetime]:
    day = naive_utc(value).date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255))
    includes_food = Column(Boolean, nullable=False, default=False)
    includes_drinks = Column(Boolean, nullable=False, default=False)
    price = Column(Numeric(10, 2, asdecimal=False))
    starts_at = Column(DateTime, index=True)
    ends_at = Column(DateTime)
    capacity = Column(Integer)
    active = Column(Boolean, nullable=False, default=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="events")
    categories = relationship(
        "Category",
        secondary=event_categories,
        lazy="selectin",
    )
    # Rows below are removed together with the event (ON DELETE CASCADE, and
    # explicitly by the destroy endpoint).
    registrations = relationship("Registration", back_populates="event", passive_deletes=True)
    photos = relationship("Photo", back_populates="event", passive_deletes=True)
    guests = relationship("User", secondary="registrations", viewonly=True)

    # --- Derived values ---
    @property
    def is_bargain(self) -> bool:
        """True when the ticket costs strictly less than 30."""
        return self.price is not None and self.price < BARGAIN_PRICE_LIMIT

    @property
    def category_ids(self) -> List[int]:
        return [category.id for category in (self.categories or [])]

    # --- Validation ---
    def validation_errors(self) -> Dict[str, List[str]]:
        """Return ``{field: [messages]}`` for every broken rule; empty when valid."""
        errors: Dict[str, List[str]] = {}

        def add(field: str, message: str) -> None:
            errors.setdefault(field, []).append(message)

        if self.user_id is None and self.user is None:
            add("user", "must exist")
        if _blank(self.name):
            add("name", "can't be blank")
        elif len(self.name) > NAME_MAX_LENGTH:
            add("name", f"is too long (maximum is {NAME_MAX_LENGTH} characters)")
        if _blank(self.description):
            add("description", "can't be blank")
        elif len(self.description) > DESCRIPTION_MAX_LENGTH:
            add("description", f"is too long (maximum is {DESCRIPTION_MAX_LENGTH} characters)")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    # --- Query scopes ---
    # Each scope returns a Select and optionally refines one passed in, so they
    # chain: Event.on_date(day, Event.published()).
    @classmethod
    def _scope(cls, stmt: Optional[Select]) -> Select:
        return stmt if stmt is not None else select(cls)

    @classmethod
    def published(cls, stmt: Optional[Select] = None) -> Select:
        return cls._scope(stmt).where(cls.active.is_(True))

    @classmethod
    def on_date(cls, value: DateLike, stmt: Optional[Select] = None) -> Select:
        """Events whose [starts_at, ends_at] interval contains ``value``, both ends inclusive."""
        moment = _as_datetime(value)
        return cls._scope(stmt).where(cls.starts_at <= moment, cls.ends_at >= moment)

    @classmethod
    def starts_on(cls, value: DateLike, stmt: Optional[Select] = None) -> Select:
        """Events starting on the calendar day of ``value`` (a timestamp uses its own day)."""
        beginning, end = _day_bounds(value)
        return cls._scope(stmt).where(cls.starts_at.between(beginning, end))

    @classmethod
    def order_by_price(cls, stmt: Optional[Select] = None) -> Select:
        return cls._scope(stmt).order_by(cls.price, cls.id)

    @classmethod
    def by_name(cls, stmt: Optional[Select] = None) -> Select:
        return cls._scope(stmt).order_by(cls.name, cls.id)

    def __repr__(self) -> str:
        return f"<Event id={self.id} name={self.name!r} user={self.user_id}>"
