from sqlalchemy import JSON, Column, DateTime, Float, String, Text

from infrastructure.database.database import Base


class RecommendationRecord(Base):
    __tablename__ = "recommendations"

    id = Column(String, primary_key=True, index=True)
    status = Column(String, nullable=False, index=True, default="pending")
    location = Column(String, index=True)
    insight_id = Column(String, nullable=False)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    confidence = Column(Float, nullable=False)
    priority = Column(String, nullable=False)
    category = Column(String, nullable=False)
    source = Column(String, nullable=False)
    data = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    decided_at = Column(DateTime(timezone=True))

    def to_document(self) -> dict:
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}
