# backend/models/users.py
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from database import Base

# Represents a registered customer or administrator.
# Credentials live with the external identity provider; tokens carry the email.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="user")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    # Contact and delivery details, copied into notifications
    phone = Column(String, nullable=True)
    governorate = Column(String, nullable=True)
    city = Column(String, nullable=True)
    address = Column(String, nullable=True)

    cart = relationship("Cart", back_populates="user", uselist=False, cascade="all, delete-orphan")
    # Order history, newest first
    orders = relationship("Order", back_populates="user", order_by="Order.created_at.desc()")

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p)
