from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from .base import Base


class Customer(Base):
     """
     Customer model - a studio's client who buys session blocks.
     Maps to existing 'customers' table in the database.
     """

     id = Column(Integer, primary_key=True, autoincrement=True)
     studio_id = Column(
          Integer,
          ForeignKey("studios.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )

     # Contact
     contact_first_name = Column(String(100), nullable=False)
     contact_last_name = Column(String(100), nullable=False)
     contact_phone = Column(String(50), nullable=False)
     contact_email = Column(String(255), nullable=True)

     registration_code = Column(String(100), nullable=True, unique=True)
     acquisition_type = Column(String(50), default="direct_purchase", nullable=False)
     notes = Column(Text, nullable=True)

     # Timestamps
     customer_since = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     studio = relationship("Studio", back_populates="customers")
     session_blocks = relationship(
          "SessionBlock",
          back_populates="customer",
          cascade="all, delete-orphan",
          passive_deletes=True
     )
     appointments = relationship(
          "Appointment",
          back_populates="customer",
          cascade="all, delete-orphan",
          passive_deletes=True
     )

     @property
     def full_name(self) -> str:
          return f"{self.contact_first_name} {self.contact_last_name}"

     def __repr__(self):
          return f"<Customer(id={self.id}, name='{self.full_name}')>"
