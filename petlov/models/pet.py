from datetime import datetime, timezone
from sqlalchemy import CheckConstraint
from ..extensions import db

PET_TYPES = ("dog", "cat", "other")
PET_SIZES = ("small", "medium", "large")
PET_SEXES = ("male", "female")

STATUS_AVAILABLE = "available"
STATUS_IN_PROCESS = "in_process"
STATUS_ADOPTED = "adopted"
STATUS_UNAVAILABLE = "unavailable"
PET_STATUSES = (STATUS_AVAILABLE, STATUS_IN_PROCESS, STATUS_ADOPTED, STATUS_UNAVAILABLE)

DEFAULT_COLOR = "Not informed"


class Pet(db.Model):
    __tablename__ = "pets"

    id = db.Column(db.Integer, primary_key=True)
    created_by_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name = db.Column(db.String(50), nullable=False)
    type = db.Column(db.String(10), nullable=False, index=True)
    age = db.Column(db.String(20), nullable=False)
    size = db.Column(db.String(10), nullable=False)
    sex = db.Column(db.String(10), nullable=False)
    color = db.Column(db.String(30), nullable=False, default=DEFAULT_COLOR)
    weight = db.Column(db.Float, nullable=True)
    description = db.Column(db.Text, nullable=False)
    temperament = db.Column(db.String(100), nullable=True)
    neutered = db.Column(db.Boolean, nullable=False, default=False)
    vaccinated = db.Column(db.Boolean, nullable=False, default=False)
    dewormed = db.Column(db.Boolean, nullable=False, default=False)
    special_needs = db.Column(db.String(300), nullable=True)
    history = db.Column(db.Text, nullable=True)

    status = db.Column(
        db.String(20), nullable=False, default=STATUS_AVAILABLE, index=True
    )

    created_at = db.Column(
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
            "status IN ('available', 'in_process', 'adopted', 'unavailable')",
            name="ck_pet_status",
        ),
        CheckConstraint("weight IS NULL OR weight > 0", name="ck_pet_weight_positive"),
    )

    images = db.relationship(
        "PetImage",
        backref="pet",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PetImage.is_primary.desc()",
    )
    interests = db.relationship(
        "Interest",
        back_populates="pet",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    created_by = db.relationship("User")

    def primary_image_url(self):
        for img in self.images:
            if img.is_primary:
                return img.url
        return None

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "sex": self.sex,
            "age": self.age,
            "status": self.status,
            "primary_image": self.primary_image_url(),
        }

    def to_dict(self) -> dict:
        data = self.summary()
        data.update(
            color=self.color,
            weight=self.weight,
            description=self.description,
            temperament=self.temperament,
            neutered=self.neutered,
            vaccinated=self.vaccinated,
            dewormed=self.dewormed,
            special_needs=self.special_needs,
            history=self.history,
            images=[img.to_dict() for img in self.images],
            created_by=(
                {"id": self.created_by.id, "email": self.created_by.email}
                if self.created_by
                else None
            ),
            created_at=self.created_at.isoformat() if self.created_at else None,
            updated_at=self.updated_at.isoformat() if self.updated_at else None,
        )
        return data


class PetImage(db.Model):
    __tablename__ = "pet_images"

    id = db.Column(db.Integer, primary_key=True)
    pet_id = db.Column(
        db.Integer,
        db.ForeignKey("pets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    url = db.Column(db.Text, nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    size_bytes = db.Column(db.Integer, nullable=True)
    mime_type = db.Column(db.String(50), nullable=False, default="image/jpeg")
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "filename": self.filename,
            "size_bytes": self.size_bytes,
            "mime_type": self.mime_type,
            "is_primary": self.is_primary,
        }
