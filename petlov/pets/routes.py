import math

from flask import Blueprint, request
from flask_login import current_user
from wtforms import BooleanField, FloatField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional

from ..errors import Conflict, NotFound, ValidationFailed
from ..extensions import db
from ..models.pet import (
    DEFAULT_COLOR,
    PET_SEXES,
    PET_SIZES,
    PET_STATUSES,
    PET_TYPES,
    Pet,
    PetImage,
)
from ..responses import (
    APIForm,
    lower_filter,
    paginate,
    strip_filter,
    submitted_fields,
    validate_form,
    wrap_response,
)
from ..security import admin_required

pets_bp = Blueprint("pets", __name__)


def _choice(values):
    return AnyOf(values, message=f"Must be one of: {', '.join(values)}")


class PetForm(APIForm):
    name = StringField("Name", filters=[strip_filter], validators=[DataRequired(), Length(min=2, max=50)])
    type = StringField("Type", filters=[lower_filter], validators=[DataRequired(), _choice(PET_TYPES)])
    age = StringField("Age", filters=[strip_filter], validators=[DataRequired(), Length(max=20)])
    size = StringField("Size", filters=[lower_filter], validators=[DataRequired(), _choice(PET_SIZES)])
    sex = StringField("Sex", filters=[lower_filter], validators=[DataRequired(), _choice(PET_SEXES)])
    color = StringField("Color", filters=[strip_filter], validators=[Optional(), Length(max=30)])
    weight = FloatField("Weight", validators=[Optional(), NumberRange(min=0.1, max=100)])
    description = TextAreaField(
        "Description", filters=[strip_filter], validators=[DataRequired(), Length(min=10, max=500)]
    )
    temperament = StringField("Temperament", filters=[strip_filter], validators=[Optional(), Length(max=100)])
    neutered = BooleanField("Neutered")
    vaccinated = BooleanField("Vaccinated")
    dewormed = BooleanField("Dewormed")
    special_needs = TextAreaField(
        "Special needs", filters=[strip_filter], validators=[Optional(), Length(max=300)]
    )
    history = TextAreaField("History", filters=[strip_filter], validators=[Optional(), Length(max=500)])


class PetUpdateForm(APIForm):
    name = StringField("Name", filters=[strip_filter], validators=[Optional(), Length(min=2, max=50)])
    type = StringField("Type", filters=[lower_filter], validators=[Optional(), _choice(PET_TYPES)])
    age = StringField("Age", filters=[strip_filter], validators=[Optional(), Length(max=20)])
    size = StringField("Size", filters=[lower_filter], validators=[Optional(), _choice(PET_SIZES)])
    sex = StringField("Sex", filters=[lower_filter], validators=[Optional(), _choice(PET_SEXES)])
    status = StringField("Status", filters=[lower_filter], validators=[Optional(), _choice(PET_STATUSES)])
    color = StringField("Color", filters=[strip_filter], validators=[Optional(), Length(max=30)])
    weight = FloatField("Weight", validators=[Optional(), NumberRange(min=0.1, max=100)])
    description = TextAreaField(
        "Description", filters=[strip_filter], validators=[Optional(), Length(min=10, max=500)]
    )
    temperament = StringField("Temperament", filters=[strip_filter], validators=[Optional(), Length(max=100)])
    neutered = BooleanField("Neutered")
    vaccinated = BooleanField("Vaccinated")
    dewormed = BooleanField("Dewormed")
    special_needs = TextAreaField(
        "Special needs", filters=[strip_filter], validators=[Optional(), Length(max=300)]
    )
    history = TextAreaField("History", filters=[strip_filter], validators=[Optional(), Length(max=500)])


class PetStatusForm(APIForm):
    status = StringField("Status", filters=[lower_filter], validators=[DataRequired(), _choice(PET_STATUSES)])


class PetQueryForm(APIForm):
    type = StringField(filters=[lower_filter], validators=[Optional(), _choice(PET_TYPES)])
    status = StringField(filters=[lower_filter], validators=[Optional(), _choice(PET_STATUSES)])
    size = StringField(filters=[lower_filter], validators=[Optional(), _choice(PET_SIZES)])
    sex = StringField(filters=[lower_filter], validators=[Optional(), _choice(PET_SEXES)])
    page = IntegerField(validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=50)])


def _get_pet_or_404(pet_id: int) -> Pet:
    pet = db.session.get(Pet, pet_id)
    if pet is None:
        raise NotFound("Pet not found")
    return pet


def _build_images(pet_name: str, raw_images) -> list[PetImage]:
    """First image is primary; size is estimated from the base64 length when absent."""
    images = []
    if not isinstance(raw_images, list):
        return images
    slug = "-".join(pet_name.split())
    for index, img in enumerate(raw_images):
        if not isinstance(img, dict) or not img.get("url"):
            continue
        url = img["url"]
        images.append(
            PetImage(
                url=url,
                filename=img.get("name") or f"pet-{slug}-{index}.jpg",
                size_bytes=img.get("size") or math.ceil(len(url) * 3 / 4),
                mime_type=img.get("type") or "image/jpeg",
                is_primary=index == 0,
            )
        )
    return images


@pets_bp.get("")
def list_pets():
    form = validate_form(PetQueryForm(formdata=request.args))
    query = db.select(Pet)
    for field in ("type", "status", "size", "sex"):
        value = getattr(form, field).data
        if value:
            query = query.filter(getattr(Pet, field) == value)
    query = query.order_by(Pet.created_at.desc(), Pet.id.desc())

    items, meta = paginate(query, Pet.to_dict, form.page.data, form.limit.data)
    return wrap_response(items, pagination=meta)


@pets_bp.get("/stats")
@admin_required
def pet_stats():
    return wrap_response(pet_stats_data())


def pet_stats_data() -> dict:
    by_status = dict(
        db.session.query(Pet.status, db.func.count(Pet.id)).group_by(Pet.status).all()
    )
    by_type = dict(
        db.session.query(Pet.type, db.func.count(Pet.id)).group_by(Pet.type).all()
    )
    return {
        "total": sum(by_status.values()),
        "by_status": {s: by_status.get(s, 0) for s in PET_STATUSES},
        "by_type": {t: by_type.get(t, 0) for t in PET_TYPES},
    }


@pets_bp.get("/<int:pet_id>")
def get_pet(pet_id):
    return wrap_response(_get_pet_or_404(pet_id).to_dict())


@pets_bp.post("")
@admin_required
def create_pet():
    form = validate_form(PetForm())
    payload = request.get_json(silent=True) or {}

    pet = Pet(
        created_by_id=current_user.id,
        name=form.name.data,
        type=form.type.data,
        age=form.age.data,
        size=form.size.data,
        sex=form.sex.data,
        color=form.color.data or DEFAULT_COLOR,
        weight=form.weight.data,
        description=form.description.data,
        temperament=form.temperament.data or None,
        neutered=bool(form.neutered.data),
        vaccinated=bool(form.vaccinated.data),
        dewormed=bool(form.dewormed.data),
        special_needs=form.special_needs.data or None,
        history=form.history.data or None,
    )
    pet.images = _build_images(pet.name, payload.get("images"))
    db.session.add(pet)
    db.session.commit()
    return wrap_response(pet.to_dict(), "Pet registered successfully", 201)


@pets_bp.put("/<int:pet_id>")
@admin_required
def update_pet(pet_id):
    pet = _get_pet_or_404(pet_id)
    form = validate_form(PetUpdateForm())
    sent = submitted_fields()

    for field in form:
        if field.name not in sent:
            continue
        value = field.data
        if value is None or value == "":
            if field.name == "color":
                value = DEFAULT_COLOR
            elif not Pet.__table__.c[field.name].nullable:
                continue
            else:
                value = None
        setattr(pet, field.name, value)

    db.session.commit()
    return wrap_response(pet.to_dict(), "Pet updated successfully")


@pets_bp.patch("/<int:pet_id>/status")
@admin_required
def update_pet_status(pet_id):
    form = PetStatusForm()
    if not form.validate():
        raise ValidationFailed("Invalid status", details={"valid_options": list(PET_STATUSES)})
    pet = _get_pet_or_404(pet_id)
    pet.status = form.status.data
    db.session.commit()
    return wrap_response(pet.to_dict(), f'Pet status changed to "{pet.status}"')


@pets_bp.delete("/<int:pet_id>")
@admin_required
def delete_pet(pet_id):
    pet = _get_pet_or_404(pet_id)
    if pet.adoptions.count():
        raise Conflict("Pet has adoption records and cannot be removed")
    db.session.delete(pet)
    db.session.commit()
    return wrap_response(message="Pet removed successfully")
