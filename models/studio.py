from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from .base import Base


class Studio(Base):
     """
     Studio model - one tenant of the back office.
     Maps to existing 'studios' table; only the columns the ledger needs.
     """

     id = Column(Integer, primary_key=True, autoincrement=True)
     name = Column(String(255), nullable=False)
     owner_id = Column(Integer, nullable=True, index=True)  # users.id of the studio owner
     unique_identifier = Column(String(50), nullable=False, unique=True)  # prefix for registration codes
     is_active = Column(Boolean, default=True, nullable=False)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     customers = relationship("Customer", back_populates="studio")

     def __repr__(self):
          return f"<Studio(id={self.id}, name='{self.name}')>"
