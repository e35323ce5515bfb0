from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, text

from ..extensions import db

ADOPTION_ACTIVE = "active"
ADOPTION_CANCELLED = "cancelled"
ADOPTION_RETURNED = "returned"
ADOPTION_STATUSES = (ADOPTION_ACTIVE, ADOPTION_CANCELLED, ADOPTION_RETURNED)


class Adoption(db.Model):
    __tablename__ = "adoptions"

    id = db.Column(db.Integer, primary_key=True)

    pet_id = db.Column(
        db.Integer,
        db.ForeignKey("pets.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    candidate_id = db.Column(
        db.Integer,
        db.ForeignKey("candidates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    fee = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default=ADOPTION_ACTIVE, index=True
    )

    adopted_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'cancelled', 'returned')",
            name="ck_adoption_status",
        ),
        CheckConstraint("fee IS NULL OR fee >= 0", name="ck_adoption_fee_non_negative"),
        # one active adoption per pet
        db.Index(
            "uq_adoption_active_pet",
            "pet_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    pet = db.relationship("Pet", backref=db.backref("adoptions", lazy="dynamic"))
    candidate = db.relationship("Candidate", back_populates="adoptions")

    def to_dict(self, with_candidate: bool = True, with_pet: bool = True) -> dict:
        data = {
            "id": self.id,
            "pet_id": self.pet_id,
            "candidate_id": self.candidate_id,
            "fee": self.fee,
            "notes": self.notes,
            "status": self.status,
            "adopted_at": self.adopted_at.isoformat() if self.adopted_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_pet and self.pet is not None:
            data["pet"] = self.pet.summary()
        if with_candidate and self.candidate is not None:
            data["candidate"] = self.candidate.summary()
        return data
