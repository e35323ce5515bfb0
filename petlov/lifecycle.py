"""Adoption lifecycle coordinator.

Every function here takes the SQLAlchemy session it works on and owns the
commit or rollback of its unit of work. Preconditions are checked before the
first write and each failure maps to a distinct :mod:`petlov.errors` class.

The one-active-adoption-per-pet invariant is checked here and also backed by
the ``uq_adoption_active_pet`` partial unique index, so two finalizations
racing on the same pet cannot both commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import Conflict, NotFound
from .models.adoption import (
    ADOPTION_ACTIVE,
    ADOPTION_CANCELLED,
    ADOPTION_RETURNED,
    Adoption,
)
from .models.candidate import Candidate
from .models.interest import (
    INTEREST_APPROVED,
    INTEREST_INTERESTED,
    INTEREST_REJECTED,
    Interest,
)
from .models.pet import STATUS_ADOPTED, STATUS_AVAILABLE, Pet

log = logging.getLogger(__name__)

ADOPTED_BY_OTHER_NOTE = "Pet was adopted by another candidate"

CANDIDATE_PENDING = "pending"
CANDIDATE_APPROVED = "approved"
CANDIDATE_REJECTED = "rejected"
CANDIDATE_STATUSES = (CANDIDATE_PENDING, CANDIDATE_APPROVED, CANDIDATE_REJECTED)

# a candidate back in "pending" is awaiting evaluation again
_INTEREST_STATUS_FOR_CANDIDATE = {
    CANDIDATE_PENDING: INTEREST_INTERESTED,
    CANDIDATE_APPROVED: INTEREST_APPROVED,
    CANDIDATE_REJECTED: INTEREST_REJECTED,
}

_RELEASING_STATUSES = (ADOPTION_CANCELLED, ADOPTION_RETURNED)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _has_active_adoption(session: Session, pet_id: int) -> bool:
    return (
        session.query(Adoption.id)
        .filter(Adoption.pet_id == pet_id, Adoption.status == ADOPTION_ACTIVE)
        .first()
        is not None
    )


def finalize_adoption(
    session: Session,
    pet_id: int,
    candidate_id: int,
    notes: str | None = None,
    fee: float | None = None,
) -> Adoption:
    """Bind ``pet_id`` to ``candidate_id`` and settle every pending interest.

    Creates the active adoption, marks the pet adopted, approves the
    candidate's own pending interest and rejects everyone else's, all in one
    transaction.
    """
    # row lock on the pet serializes finalizations where the dialect allows it
    pet = session.get(Pet, pet_id, with_for_update=True)
    if pet is None:
        raise NotFound("Pet not found")

    candidate = session.get(Candidate, candidate_id)
    if candidate is None:
        raise NotFound("Candidate not found")

    if pet.status == STATUS_ADOPTED:
        log.debug("Finalize rejected: pet %s already adopted", pet_id)
        raise Conflict("Pet has already been adopted", status_code=400)

    if _has_active_adoption(session, pet_id):
        log.debug("Finalize rejected: pet %s has an active adoption", pet_id)
        raise Conflict("Pet already has an active adoption", status_code=400)

    now = _now()
    try:
        adoption = Adoption(
            pet_id=pet_id,
            candidate_id=candidate_id,
            fee=fee,
            notes=notes,
            status=ADOPTION_ACTIVE,
        )
        session.add(adoption)

        pet.status = STATUS_ADOPTED

        session.query(Interest).filter(
            Interest.pet_id == pet_id,
            Interest.candidate_id == candidate_id,
            Interest.status == INTEREST_INTERESTED,
        ).update(
            {Interest.status: INTEREST_APPROVED, Interest.evaluated_at: now},
            synchronize_session="fetch",
        )

        rejected = (
            session.query(Interest)
            .filter(
                Interest.pet_id == pet_id,
                Interest.candidate_id != candidate_id,
                Interest.status == INTEREST_INTERESTED,
            )
            .update(
                {
                    Interest.status: INTEREST_REJECTED,
                    Interest.evaluated_at: now,
                    Interest.admin_notes: ADOPTED_BY_OTHER_NOTE,
                },
                synchronize_session="fetch",
            )
        )

        session.commit()
    except IntegrityError as exc:
        session.rollback()
        log.info("Finalize for pet %s lost a race: %s", pet_id, exc.orig)
        raise Conflict("Pet already has an active adoption", status_code=400) from exc
    except Exception:
        session.rollback()
        raise

    log.info(
        "Adoption %s finalized: pet=%s candidate=%s other_interests_rejected=%s",
        adoption.id,
        pet_id,
        candidate_id,
        rejected,
    )
    return adoption


def update_adoption_status(
    session: Session,
    adoption_id: int,
    status: str,
    notes: str | None = None,
) -> Adoption:
    """Move an adoption to ``status``; cancelling or returning frees the pet.

    Interests rejected at finalization stay rejected. Stored notes are kept
    when ``notes`` is None.
    """
    adoption = session.get(Adoption, adoption_id)
    if adoption is None:
        raise NotFound("Adoption not found")

    previous = adoption.status
    try:
        adoption.status = status
        if notes is not None:
            adoption.notes = notes
        if status in _RELEASING_STATUSES:
            pet = session.get(Pet, adoption.pet_id, with_for_update=True)
            if pet is not None:
                pet.status = STATUS_AVAILABLE
        elif status == ADOPTION_ACTIVE and previous != ADOPTION_ACTIVE:
            pet = session.get(Pet, adoption.pet_id, with_for_update=True)
            if pet is not None:
                pet.status = STATUS_ADOPTED
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Pet already has an active adoption") from exc
    except Exception:
        session.rollback()
        raise

    log.info("Adoption %s status %s -> %s", adoption_id, previous, status)
    return adoption


def update_candidate_status(
    session: Session,
    candidate_id: int,
    status: str,
    notes: str | None = None,
    pet_id: int | None = None,
) -> Candidate:
    """Apply one evaluation to the candidate's interests in bulk.

    Without ``pet_id`` every interest of the candidate is updated; with it,
    only the interest in that pet.
    """
    candidate = session.get(Candidate, candidate_id)
    if candidate is None:
        raise NotFound("Candidate not found")

    interest_status = _INTEREST_STATUS_FOR_CANDIDATE[status]
    query = session.query(Interest).filter(Interest.candidate_id == candidate_id)
    if pet_id is not None:
        query = query.filter(Interest.pet_id == pet_id)

    values = {Interest.status: interest_status, Interest.evaluated_at: _now()}
    if notes is not None:
        values[Interest.admin_notes] = notes

    try:
        touched = query.update(values, synchronize_session="fetch")
        session.commit()
    except Exception:
        session.rollback()
        raise

    log.info(
        "Candidate %s marked %s (%s interest(s) updated)", candidate_id, status, touched
    )
    return candidate


def create_interest(session: Session, candidate_id: int, pet_id: int) -> Interest:
    candidate = session.get(Candidate, candidate_id)
    if candidate is None:
        raise NotFound("Candidate not found")
    pet = session.get(Pet, pet_id)
    if pet is None:
        raise NotFound("Pet not found")

    existing = (
        session.query(Interest)
        .filter_by(candidate_id=candidate_id, pet_id=pet_id)
        .first()
    )
    if existing is not None:
        raise Conflict("Candidate has already expressed interest in this pet")

    interest = Interest(candidate_id=candidate_id, pet_id=pet_id, status=INTEREST_INTERESTED)
    session.add(interest)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Candidate has already expressed interest in this pet") from exc

    log.info("Interest %s created: candidate=%s pet=%s", interest.id, candidate_id, pet_id)
    return interest
