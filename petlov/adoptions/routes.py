from collections import Counter
from datetime import datetime, timedelta, timezone

from flask import Blueprint, request
from wtforms import FloatField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional

from ..errors import NotFound
from ..extensions import db
from ..lifecycle import finalize_adoption, update_adoption_status
from ..models.adoption import ADOPTION_STATUSES, Adoption
from ..models.candidate import Candidate
from ..responses import APIForm, lower_filter, paginate, strip_filter, validate_form, wrap_response
from ..security import admin_required

adoptions_bp = Blueprint("adoptions", __name__)

STATS_MONTHS = 6


class AdoptionForm(APIForm):
    pet_id = IntegerField("Pet", validators=[DataRequired()])
    candidate_id = IntegerField("Candidate", validators=[DataRequired()])
    notes = TextAreaField("Notes", filters=[strip_filter], validators=[Optional(), Length(max=500)])
    fee = FloatField("Adoption fee", validators=[Optional(), NumberRange(min=0)])


class AdoptionStatusForm(APIForm):
    status = StringField(
        "Status",
        filters=[lower_filter],
        validators=[
            DataRequired(),
            AnyOf(ADOPTION_STATUSES, message="Status must be: active, cancelled or returned"),
        ],
    )
    notes = TextAreaField("Notes", filters=[strip_filter], validators=[Optional(), Length(max=500)])


class AdoptionQueryForm(APIForm):
    status = StringField(filters=[lower_filter], validators=[Optional(), AnyOf(ADOPTION_STATUSES)])
    page = IntegerField(validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=50)])


@adoptions_bp.get("")
@admin_required
def list_adoptions():
    form = validate_form(AdoptionQueryForm(formdata=request.args))
    query = db.select(Adoption)
    if form.status.data:
        query = query.filter(Adoption.status == form.status.data)
    query = query.order_by(Adoption.adopted_at.desc(), Adoption.id.desc())

    items, meta = paginate(query, Adoption.to_dict, form.page.data, form.limit.data)
    return wrap_response(items, pagination=meta)


@adoptions_bp.get("/stats")
@admin_required
def adoption_stats():
    return wrap_response(adoption_stats_data())


def adoption_stats_data() -> dict:
    by_status = dict(
        db.session.query(Adoption.status, db.func.count(Adoption.id))
        .group_by(Adoption.status)
        .all()
    )
    since = datetime.now(timezone.utc) - timedelta(days=31 * STATS_MONTHS)
    recent = (
        db.session.query(Adoption.adopted_at)
        .filter(Adoption.adopted_at >= since.replace(tzinfo=None))
        .all()
    )
    per_month = Counter(row.adopted_at.strftime("%Y-%m") for row in recent)
    return {
        "total": sum(by_status.values()),
        "by_status": {s: by_status.get(s, 0) for s in ADOPTION_STATUSES},
        "per_month": [
            {"month": month, "total": total}
            for month, total in sorted(per_month.items(), reverse=True)
        ],
    }


@adoptions_bp.get("/<int:adoption_id>")
@admin_required
def get_adoption(adoption_id):
    adoption = db.session.get(Adoption, adoption_id)
    if adoption is None:
        raise NotFound("Adoption not found")
    data = adoption.to_dict()
    data["pet"] = adoption.pet.to_dict()
    data["candidate"] = adoption.candidate.to_dict(include_relations=False)
    return wrap_response(data)


@adoptions_bp.get("/candidate/<int:candidate_id>")
@admin_required
def list_candidate_adoptions(candidate_id):
    if db.session.get(Candidate, candidate_id) is None:
        raise NotFound("Candidate not found")
    rows = (
        Adoption.query.filter_by(candidate_id=candidate_id)
        .order_by(Adoption.adopted_at.desc())
        .all()
    )
    return wrap_response([a.to_dict(with_candidate=False) for a in rows])


@adoptions_bp.post("")
@admin_required
def create_adoption():
    form = validate_form(AdoptionForm())
    adoption = finalize_adoption(
        db.session,
        form.pet_id.data,
        form.candidate_id.data,
        notes=form.notes.data or None,
        fee=form.fee.data,
    )
    return wrap_response(adoption.to_dict(), "Adoption finalized successfully!", 201)


@adoptions_bp.patch("/<int:adoption_id>/status")
@admin_required
def patch_adoption_status(adoption_id):
    form = validate_form(AdoptionStatusForm())
    adoption = update_adoption_status(
        db.session, adoption_id, form.status.data, notes=form.notes.data or None
    )
    return wrap_response(
        adoption.to_dict(), f'Adoption status updated to "{adoption.status}"'
    )
