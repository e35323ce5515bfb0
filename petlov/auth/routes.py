import logging

from flask import Blueprint, current_app
from flask_login import current_user, login_required
from wtforms import PasswordField, StringField
from wtforms.fields import EmailField
from wtforms.validators import DataRequired, Email, Length, Optional

from ..errors import Conflict, NotFound, Unauthorized
from ..extensions import db
from ..models.user import ROLE_ADMIN, User
from ..responses import APIForm, lower_filter, strip_filter, validate_form, wrap_response
from ..security import issue_token_for

auth_bp = Blueprint("auth", __name__)

log = logging.getLogger(__name__)


class RegisterForm(APIForm):
    name = StringField("Name", filters=[strip_filter], validators=[DataRequired(), Length(min=2, max=120)])
    email = EmailField("Email", filters=[lower_filter], validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    phone = StringField("Phone", filters=[strip_filter], validators=[Optional(), Length(max=30)])
    address = StringField("Address", filters=[strip_filter], validators=[Optional(), Length(max=200)])


class LoginForm(APIForm):
    email = EmailField("Email", filters=[lower_filter], validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])


@auth_bp.post("/login")
def login():
    form = validate_form(LoginForm())
    user = User.query.filter_by(email=form.email.data).first()
    if not user or not user.is_active or not user.check_password(form.password.data):
        log.info("Failed login for %s", form.email.data)
        raise Unauthorized("Invalid credentials")

    token = issue_token_for(user)
    return wrap_response({"token": token, "user": user.to_dict()}, "Signed in successfully")


@auth_bp.post("/register")
def register():
    # only meant for bootstrapping environments; production turns it off
    if not current_app.config.get("ALLOW_REGISTRATION", False):
        raise NotFound("Route not found")

    form = validate_form(RegisterForm())
    if User.query.filter_by(email=form.email.data).first():
        raise Conflict("Email is already registered")

    user = User(
        email=form.email.data,
        name=form.name.data,
        phone=form.phone.data or None,
        address=form.address.data or None,
        role=ROLE_ADMIN,
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    log.info("Registered admin user %s", user.email)
    return wrap_response(user.to_dict(), "User registered successfully", 201)


@auth_bp.get("/me")
@login_required
def me():
    return wrap_response(current_user.to_dict())
