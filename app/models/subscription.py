# app/models/subscription.py

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship

from app.core.db import Base


class Frequency(str, enum.Enum):
    hourly = "hourly"
    daily = "daily"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    city = Column(String(100), nullable=False)
    frequency = Column(
        Enum(Frequency, name="subscription_frequency", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    confirmed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Rows in `tokens` go away with the subscription via ON DELETE CASCADE
    tokens = relationship("Token", back_populates="subscription", passive_deletes=True)

    def __repr__(self):
        return f"<Subscription id={self.id} email={self.email} city={self.city} confirmed={self.confirmed}>"
