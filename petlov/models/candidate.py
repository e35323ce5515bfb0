from datetime import datetime, timezone
from ..extensions import db


class Candidate(db.Model):
    __tablename__ = "candidates"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(30), nullable=False)
    address = db.Column(db.String(200), nullable=False)
    housing_type = db.Column(db.String(100), nullable=False)
    available_time = db.Column(db.String(100), nullable=False)
    pet_experience = db.Column(db.String(300), nullable=False)
    motivation = db.Column(db.Text, nullable=False)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    interests = db.relationship(
        "Interest",
        back_populates="candidate",
        order_by="Interest.created_at.desc()",
        cascade="all, delete-orphan",
    )
    adoptions = db.relationship(
        "Adoption",
        back_populates="candidate",
        order_by="Adoption.adopted_at.desc()",
    )

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
        }

    def to_dict(self, include_relations: bool = True) -> dict:
        data = self.summary()
        data.update(
            address=self.address,
            housing_type=self.housing_type,
            available_time=self.available_time,
            pet_experience=self.pet_experience,
            motivation=self.motivation,
            created_at=self.created_at.isoformat() if self.created_at else None,
        )
        if include_relations:
            data["interests"] = [i.to_dict(with_candidate=False) for i in self.interests]
            data["adoptions"] = [a.to_dict(with_candidate=False) for a in self.adoptions]
        return data
