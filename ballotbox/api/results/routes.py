from flask import Blueprint, current_app
from flasgger import swag_from
from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...schemas.results import ResultsSummarySchema
from ...services.ballot_store import results_summary
from ...utils.rbac import admin_required

results_bp = Blueprint("results", __name__)
results_summary_schema = ResultsSummarySchema()


@results_bp.get("/")
@admin_required
@swag_from({
    "tags": ["Results"],
    "security": [{"BearerAuth": []}],
    "summary": "Dashboard summary (admin)",
    "description": (
        "Per-candidate votes and percentages in ballot order, total votes, "
        "and token usage (issued, used, unused, participation rate)."
    ),
    "responses": {
        200: {"description": "Results"},
        403: {"description": "Forbidden"},
        500: {"description": "Server error"},
    }
})
def dashboard():
    try:
        summary = results_summary()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error fetching results")
        return {"message": "Failed to fetch results"}, 500

    return results_summary_schema.dump(summary), 200
