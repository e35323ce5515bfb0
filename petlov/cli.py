from __future__ import annotations

import click
from flask import current_app
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db

from .models.user import ROLE_ADMIN, User
from .models.pet import Pet, PetImage
from .models.candidate import Candidate
from .models.interest import Interest
from .models.adoption import Adoption


def _db_uri() -> str:
    return current_app.config.get("SQLALCHEMY_DATABASE_URI", "")

def _safe_db_uri() -> str:
    return make_url(_db_uri()).render_as_string(hide_password=True)

def _table_names() -> str:
    return ", ".join(sorted(db.metadata.tables))

@click.command("init-db")
def init_db_cmd():
    click.echo(f"Creating tables on {_safe_db_uri()}")
    db.create_all()
    click.echo(f"✔ Tables ready: {_table_names()}")

@click.command("reset-db")
@click.option("--force", is_flag=True, help="Drop + create (irreversible).")
def reset_db_cmd(force: bool):
    if not force:
        click.echo("Add --force to confirm dropping all tables.")
        return
    click.echo(f"Dropping and recreating {_table_names()} on {_safe_db_uri()}")
    db.session.remove()
    db.drop_all()
    db.create_all()
    click.echo("✔ Database reset.")

@click.command("purge-data")
def purge_data_cmd():
    db.session.query(Adoption).delete()
    db.session.query(Interest).delete()
    db.session.query(PetImage).delete()
    db.session.query(Pet).delete()
    db.session.query(Candidate).delete()
    db.session.query(User).delete()
    db.session.commit()
    if _db_uri().startswith("sqlite:"):
        try:
            db.session.execute(text("DELETE FROM sqlite_sequence"))
            db.session.commit()
        except SQLAlchemyError:
            # table only exists once an AUTOINCREMENT column was used
            db.session.rollback()
    click.echo("✔ All data removed (schema kept).")

@click.command("create-admin")
@click.option("--email", required=True, help="Admin e-mail (login).")
@click.option("--name", default="Administrator", show_default=True)
@click.password_option("--password", help="Admin password (min. 6 characters).")
def create_admin_cmd(email: str, name: str, password: str):
    email = email.strip().lower()
    if len(password) < 6:
        raise click.BadParameter("must have at least 6 characters", param_hint="--password")
    if User.query.filter_by(email=email).first():
        raise click.ClickException(f"User {email} already exists.")
    user = User(email=email, name=name.strip(), role=ROLE_ADMIN)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"✔ Admin {email} created (id={user.id}).")

DEMO_PETS = [
    dict(name="Thor", type="dog", age="2 years", size="large", sex="male",
         color="Caramel", description="Playful and loyal, loves long walks.", vaccinated=True),
    dict(name="Mia", type="cat", age="8 months", size="small", sex="female",
         color="Tabby", description="Calm kitten who enjoys sunny windows.", neutered=True),
    dict(name="Pipoca", type="dog", age="5 years", size="medium", sex="female",
         description="Gentle with children and other dogs.", dewormed=True),
    dict(name="Bidu", type="other", age="1 year", size="small", sex="male",
         description="Curious rabbit, litter trained and friendly."),
]

DEMO_CANDIDATES = [
    dict(name="Ana Souza", email="ana@example.com", phone="+55 11 91234-5678",
         address="Rua das Flores 100, Sao Paulo", housing_type="House with yard",
         available_time="Evenings and weekends", pet_experience="Raised two dogs",
         motivation="Looking for a companion for long walks."),
    dict(name="Bruno Lima", email="bruno@example.com", phone="+55 21 99876-5432",
         address="Av. Atlantica 2000, Rio de Janeiro", housing_type="Apartment",
         available_time="Works from home", pet_experience="Always had cats",
         motivation="Wants to give a shelter animal a calm home."),
]

@click.command("seed-demo")
def seed_demo_cmd():
    admin = User.query.filter_by(email="admin@petlov.dev").first()
    if admin is None:
        admin = User(email="admin@petlov.dev", name="Demo Admin", role=ROLE_ADMIN)
        admin.set_password("petlov123")
        db.session.add(admin)
        db.session.commit()

    pets = []
    for values in DEMO_PETS:
        pet = Pet.query.filter_by(name=values["name"], created_by_id=admin.id).first()
        if pet is None:
            pet = Pet(created_by_id=admin.id, **values)
            db.session.add(pet)
        pets.append(pet)
    db.session.commit()

    candidates = []
    for values in DEMO_CANDIDATES:
        candidate = Candidate.query.filter_by(email=values["email"]).first()
        if candidate is None:
            candidate = Candidate(**values)
            db.session.add(candidate)
        candidates.append(candidate)
    db.session.commit()

    for candidate in candidates:
        for pet in pets[:2]:
            if Interest.query.filter_by(candidate_id=candidate.id, pet_id=pet.id).first() is None:
                db.session.add(Interest(candidate_id=candidate.id, pet_id=pet.id))
    db.session.commit()

    click.echo(
        "✔ Seed done: admin@petlov.dev (password: petlov123), "
        f"{len(pets)} pets, {len(candidates)} candidates."
    )
