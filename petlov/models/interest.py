from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, UniqueConstraint
from ..extensions import db

INTEREST_INTERESTED = "interested"
INTEREST_APPROVED = "approved"
INTEREST_REJECTED = "rejected"
INTEREST_STATUSES = (INTEREST_INTERESTED, INTEREST_APPROVED, INTEREST_REJECTED)


class Interest(db.Model):
    __tablename__ = "interests"

    id = db.Column(db.Integer, primary_key=True)

    candidate_id = db.Column(
        db.Integer,
        db.ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pet_id = db.Column(
        db.Integer,
        db.ForeignKey("pets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = db.Column(
        db.String(20), nullable=False, default=INTEREST_INTERESTED, index=True
    )
    admin_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    evaluated_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("candidate_id", "pet_id", name="uq_interest_candidate_pet"),
        CheckConstraint(
            "status IN ('interested', 'approved', 'rejected')",
            name="ck_interest_status",
        ),
    )

    candidate = db.relationship("Candidate", back_populates="interests")
    pet = db.relationship("Pet", back_populates="interests")

    def to_dict(self, with_candidate: bool = True, with_pet: bool = True) -> dict:
        data = {
            "id": self.id,
            "candidate_id": self.candidate_id,
            "pet_id": self.pet_id,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
        }
        if with_candidate and self.candidate is not None:
            data["candidate"] = {
                "id": self.candidate.id,
                "name": self.candidate.name,
                "email": self.candidate.email,
            }
        if with_pet and self.pet is not None:
            data["pet"] = self.pet.summary()
        return data
