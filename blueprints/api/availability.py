"""
Availability API routes.
Day and week grids for the calendar views.
"""

from datetime import datetime, time, timedelta

from flask import current_app, request

from database import snapshot_transaction
from models.availability import project_day, project_week, summarize_day, week_start_for
from models.cool_cell import get_cool_cells
from models.day_block import list_day_blocks
from models.reservation import list_reservations_for_facility
from utils.api_response import api_success
from utils.datetime_helpers import get_now, get_today
from utils.validators import require_fields, parse_int, parse_optional_date


def _load_snapshot(facility_id: str, date_from, date_to) -> tuple:
    """Load cells, active reservations and blocks from one read transaction."""
    with snapshot_transaction():
        cells = get_cool_cells(facility_id)
        reservations = list_reservations_for_facility(
            facility_id, date_from, date_to, include_cancelled=False
        )
        blocks = list_day_blocks(facility_id, date_from, date_to)
    return cells, reservations, blocks


def register_routes(bp):
    """Register availability routes on the blueprint."""

    @bp.route('/availability/day', methods=['GET'])
    def availability_day():
        """
        Hourly grid for one day.

        Query params:
            facility: Facility ID (required)
            date: Day YYYY-MM-DD (default: today)
            window_start: First visible hour (default DAY_VIEW_START_HOUR)
            window_end: End of visible window (default DAY_VIEW_END_HOUR)

        Returns:
            JSON with slots, segments and a status summary
        """
        facility_id = request.args.get('facility', '').strip()
        require_fields({'facility': facility_id}, 'facility')

        target_date = parse_optional_date(request.args.get('date'), 'date') or get_today()
        window_start = parse_int(
            request.args.get('window_start'), 'window_start',
            default=current_app.config.get('DAY_VIEW_START_HOUR', 8)
        )
        window_end = parse_int(
            request.args.get('window_end'), 'window_end',
            default=current_app.config.get('DAY_VIEW_END_HOUR', 24)
        )

        cells, reservations, blocks = _load_snapshot(facility_id, target_date, target_date)
        grid = project_day(cells, reservations, blocks, target_date, window_start, window_end)

        # Counters at the current moment for today, at the window start otherwise
        now = get_now()
        if now.date() == target_date:
            at = now
        else:
            at = datetime.combine(target_date, time(hour=window_start))
        grid['summary'] = summarize_day(cells, reservations, blocks, at)

        return api_success(data=grid)

    @bp.route('/availability/week', methods=['GET'])
    def availability_week():
        """
        Seven-day grid.

        Query params:
            facility: Facility ID (required)
            weekStart: Any day of the week YYYY-MM-DD (default: this week),
                aligned to WEEK_START_DAY
        """
        facility_id = request.args.get('facility', '').strip()
        require_fields({'facility': facility_id}, 'facility')

        any_day = parse_optional_date(request.args.get('weekStart'), 'weekStart') or get_today()
        week_start = week_start_for(any_day, current_app.config.get('WEEK_START_DAY', 0))

        week_end = week_start + timedelta(days=6)
        cells, reservations, blocks = _load_snapshot(facility_id, week_start, week_end)
        return api_success(data=project_week(cells, reservations, blocks, week_start))
