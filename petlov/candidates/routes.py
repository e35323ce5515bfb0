from flask import Blueprint, request
from sqlalchemy.exc import IntegrityError
from wtforms import IntegerField, StringField, TextAreaField
from wtforms.fields import EmailField
from wtforms.validators import AnyOf, DataRequired, Email, Length, NumberRange, Optional

from ..errors import Conflict, NotFound
from ..extensions import db
from ..lifecycle import CANDIDATE_STATUSES, create_interest, update_candidate_status
from ..models.adoption import ADOPTION_ACTIVE, Adoption
from ..models.candidate import Candidate
from ..models.interest import INTEREST_INTERESTED, INTEREST_STATUSES, Interest
from ..models.pet import Pet
from ..responses import APIForm, lower_filter, paginate, strip_filter, validate_form, wrap_response
from ..security import admin_required

candidates_bp = Blueprint("candidates", __name__)


class CandidateForm(APIForm):
    name = StringField("Name", filters=[strip_filter], validators=[DataRequired(), Length(min=2, max=100)])
    email = EmailField("Email", filters=[lower_filter], validators=[DataRequired(), Email()])
    phone = StringField("Phone", filters=[strip_filter], validators=[DataRequired(), Length(min=8, max=30)])
    address = StringField("Address", filters=[strip_filter], validators=[DataRequired(), Length(min=10, max=200)])
    housing_type = StringField("Housing type", filters=[strip_filter], validators=[DataRequired(), Length(max=100)])
    available_time = StringField(
        "Available time", filters=[strip_filter], validators=[DataRequired(), Length(max=100)]
    )
    pet_experience = TextAreaField(
        "Experience with pets", filters=[strip_filter], validators=[DataRequired(), Length(min=5, max=300)]
    )
    motivation = TextAreaField(
        "Motivation", filters=[strip_filter], validators=[DataRequired(), Length(min=10, max=500)]
    )
    pet_id = IntegerField("Pet", validators=[Optional()])


class CandidateStatusForm(APIForm):
    status = StringField(
        "Status",
        filters=[lower_filter],
        validators=[
            DataRequired(),
            AnyOf(CANDIDATE_STATUSES, message="Status must be: pending, approved or rejected"),
        ],
    )
    notes = TextAreaField("Notes", filters=[strip_filter], validators=[Optional(), Length(max=500)])
    pet_id = IntegerField("Pet", validators=[Optional()])


class InterestForm(APIForm):
    candidate_id = IntegerField("Candidate", validators=[DataRequired()])
    pet_id = IntegerField("Pet", validators=[DataRequired()])


class CandidateQueryForm(APIForm):
    status = StringField(filters=[lower_filter], validators=[Optional(), AnyOf(INTEREST_STATUSES)])
    page = IntegerField(validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=50)])


@candidates_bp.get("")
@admin_required
def list_candidates():
    form = validate_form(CandidateQueryForm(formdata=request.args))
    query = db.select(Candidate)
    if form.status.data:
        query = query.filter(Candidate.interests.any(Interest.status == form.status.data))
    query = query.order_by(Candidate.created_at.desc(), Candidate.id.desc())

    items, meta = paginate(query, Candidate.to_dict, form.page.data, form.limit.data)
    return wrap_response(items, pagination=meta)


@candidates_bp.get("/stats")
@admin_required
def candidate_stats():
    return wrap_response(candidate_stats_data())


def candidate_stats_data() -> dict:
    by_status = dict(
        db.session.query(Interest.status, db.func.count(Interest.id))
        .group_by(Interest.status)
        .all()
    )
    return {
        "total_candidates": db.session.query(db.func.count(Candidate.id)).scalar(),
        "interests": {s: by_status.get(s, 0) for s in INTEREST_STATUSES},
        "active_adoptions": Adoption.query.filter_by(status=ADOPTION_ACTIVE).count(),
    }


@candidates_bp.get("/<int:candidate_id>")
@admin_required
def get_candidate(candidate_id):
    candidate = db.session.get(Candidate, candidate_id)
    if candidate is None:
        raise NotFound("Candidate not found")
    return wrap_response(candidate.to_dict())


@candidates_bp.post("")
def create_candidate():
    form = validate_form(CandidateForm())

    if Candidate.query.filter_by(email=form.email.data).first():
        raise Conflict("A registration with this email already exists")

    pet_id = form.pet_id.data
    if pet_id is not None and db.session.get(Pet, pet_id) is None:
        raise NotFound("Pet not found")

    candidate = Candidate(
        name=form.name.data,
        email=form.email.data,
        phone=form.phone.data,
        address=form.address.data,
        housing_type=form.housing_type.data,
        available_time=form.available_time.data,
        pet_experience=form.pet_experience.data,
        motivation=form.motivation.data,
    )
    if pet_id is not None:
        candidate.interests.append(Interest(pet_id=pet_id, status=INTEREST_INTERESTED))

    db.session.add(candidate)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict("A registration with this email already exists") from exc

    return wrap_response(
        candidate.to_dict(),
        "Adoption form submitted successfully! We will contact you soon.",
        201,
    )


@candidates_bp.patch("/<int:candidate_id>/status")
@admin_required
def patch_candidate_status(candidate_id):
    form = validate_form(CandidateStatusForm())
    candidate = update_candidate_status(
        db.session,
        candidate_id,
        form.status.data,
        notes=form.notes.data or None,
        pet_id=form.pet_id.data,
    )
    return wrap_response(candidate.to_dict(), f"Candidate marked as {form.status.data}")


@candidates_bp.post("/interests")
def post_interest():
    form = validate_form(InterestForm())
    interest = create_interest(db.session, form.candidate_id.data, form.pet_id.data)
    return wrap_response(interest.to_dict(), "Interest registered successfully!", 201)
