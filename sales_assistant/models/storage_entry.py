from sqlalchemy import Column, String, Text

from sales_assistant.database import Base


class StorageEntry(Base):
    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
