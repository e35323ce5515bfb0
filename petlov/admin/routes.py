from flask import Blueprint

from ..adoptions.routes import adoption_stats_data
from ..candidates.routes import candidate_stats_data
from ..pets.routes import pet_stats_data
from ..responses import wrap_response
from ..security import admin_required

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/dashboard")
@admin_required
def dashboard():
    return wrap_response(
        {
            "pets": pet_stats_data(),
            "candidates": candidate_stats_data(),
            "adoptions": adoption_stats_data(),
        }
    )
