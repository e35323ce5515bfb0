"""Response envelope, form and pagination helpers shared by the blueprints."""

from __future__ import annotations

from typing import Any, Callable

from flask import current_app, jsonify, request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict

from .errors import ValidationFailed
from .extensions import db


def wrap_response(data: Any = None, message: str | None = None, status: int = 200, **extra):
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status


class APIForm(FlaskForm):
    """FlaskForm that treats JSON `null` like an omitted field.

    WTForms numeric fields only tolerate missing input, so null values are
    dropped before the fields process the payload.
    """

    class Meta:
        def wrap_formdata(self, form, formdata):
            formdata = FlaskForm.Meta.wrap_formdata(self, form, formdata)
            if formdata is None:
                return None
            return ImmutableMultiDict(
                [(key, value) for key, value in formdata.items(multi=True) if value is not None]
            )


def validate_form(form: FlaskForm) -> FlaskForm:
    """Validate ``form`` or raise a 400 carrying the field errors."""
    if not form.validate():
        details = [
            {"field": name, "errors": list(errors)}
            for name, errors in form.errors.items()
        ]
        raise ValidationFailed(details=details)
    return form


def submitted_fields() -> set[str]:
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return set(payload)
    return set(request.form.keys())


def strip_filter(value):
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value.strip()


def lower_filter(value):
    value = strip_filter(value)
    return value.lower() if value else value


def paginate(select, serialize: Callable[[Any], dict], page: int | None, limit: int | None):
    """Run ``select`` through ``db.paginate`` and build the pagination block."""
    cfg = current_app.config
    per_page = limit or cfg.get("PAGE_SIZE_DEFAULT", 10)
    pagination = db.paginate(
        select,
        page=page or 1,
        per_page=per_page,
        max_per_page=cfg.get("PAGE_SIZE_MAX", 50),
        error_out=False,
        count=True,
    )
    meta = {
        "current_page": pagination.page,
        "total_pages": pagination.pages,
        "total_count": pagination.total,
        "has_next_page": pagination.has_next,
        "has_prev_page": pagination.has_prev,
        "limit": pagination.per_page,
    }
    return [serialize(item) for item in pagination.items], meta
