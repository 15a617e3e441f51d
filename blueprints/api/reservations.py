"""
Reservation API routes.
Endpoints for booking cells, lifecycle transitions and rescheduling.
"""

from flask import request
from flask_login import login_required

from models.exceptions import ValidationError
from models.reservation import (
    advance_reservation_status, create_reservation, get_reservation,
    get_status_history, list_reservations_for_case, list_reservations_for_cell,
    list_reservations_for_facility, reschedule_reservation
)
from utils.api_response import api_success
from utils.decorators import json_body_required, acting_user
from utils.messages import get_message
from utils.validators import require_fields, parse_int, parse_optional_date, parse_text


def register_routes(bp):
    """Register reservation routes on the blueprint."""

    @bp.route('/reservations', methods=['POST'])
    @login_required
    @json_body_required
    def create_cell_reservation():
        """
        Reserve a cell for a half-open interval.

        Request body:
            cell_id: Cell ID
            facility_id: Facility ID of the cell
            case_ref: Dossier reference
            start_at: ISO-8601 start
            end_at: ISO-8601 end
            note: Optional note

        Returns:
            JSON with the created reservation (201), 409 on overlap
        """
        data = request.get_json()
        require_fields(data, 'cell_id', 'facility_id', 'case_ref', 'start_at', 'end_at')

        reservation = create_reservation(
            cell_id=parse_int(data['cell_id'], 'cell_id'),
            facility_id=parse_text(data['facility_id'], 'facility_id'),
            case_ref=data['case_ref'],
            start_at=data['start_at'],
            end_at=data['end_at'],
            note=data.get('note'),
            created_by=acting_user()
        )
        return api_success(data=reservation, message=get_message('reservation_created'), status=201)

    @bp.route('/reservations', methods=['GET'])
    def list_cell_reservations():
        """
        List reservations by cell, facility or dossier.

        Query params:
            cell: Cell ID
            facility: Facility ID
            case: Dossier reference
            from: First day YYYY-MM-DD (inclusive, optional)
            to: Last day YYYY-MM-DD (inclusive, optional)
            include_cancelled: 0 to hide cancelled reservations (default 1)
        """
        cell_id = parse_int(request.args.get('cell'), 'cell')
        facility_id = request.args.get('facility', '').strip()
        case_ref = request.args.get('case', '').strip()
        date_from = parse_optional_date(request.args.get('from'), 'from')
        date_to = parse_optional_date(request.args.get('to'), 'to')
        include_cancelled = request.args.get('include_cancelled', '1') != '0'

        if cell_id is not None:
            reservations = list_reservations_for_cell(
                cell_id, date_from, date_to, include_cancelled=include_cancelled
            )
        elif facility_id:
            reservations = list_reservations_for_facility(
                facility_id, date_from, date_to, include_cancelled=include_cancelled
            )
        elif case_ref:
            reservations = list_reservations_for_case(case_ref)
        else:
            raise ValidationError(get_message('filter_required'), field='cell')

        return api_success(data=reservations)

    @bp.route('/reservations/<int:reservation_id>', methods=['GET'])
    def get_cell_reservation(reservation_id):
        """Get one reservation."""
        return api_success(data=get_reservation(reservation_id))

    @bp.route('/reservations/<int:reservation_id>/status', methods=['PATCH'])
    @login_required
    @json_body_required
    def change_reservation_status(reservation_id):
        """
        Advance a reservation along its lifecycle.

        Request body:
            status: CONFIRMED, OCCUPIED or CANCELLED
            notes: Optional notes for the history

        Returns:
            JSON with the updated reservation, 409 with allowed targets when illegal
        """
        data = request.get_json()
        require_fields(data, 'status')

        reservation = advance_reservation_status(
            reservation_id, data['status'],
            changed_by=acting_user(),
            notes=data.get('notes', '')
        )
        return api_success(
            data=reservation,
            message=get_message(
                'reservation_status_updated',
                status=get_message(f"status_{reservation['status']}")
            )
        )

    @bp.route('/reservations/<int:reservation_id>', methods=['PATCH'])
    @login_required
    @json_body_required
    def reschedule_cell_reservation(reservation_id):
        """
        Change the interval of a PENDING reservation.

        Request body:
            start_at: ISO-8601 start
            end_at: ISO-8601 end
        """
        data = request.get_json()
        require_fields(data, 'start_at', 'end_at')

        reservation = reschedule_reservation(
            reservation_id, data['start_at'], data['end_at'], changed_by=acting_user()
        )
        return api_success(data=reservation, message=get_message('reservation_updated'))

    @bp.route('/reservations/<int:reservation_id>/history', methods=['GET'])
    def reservation_history(reservation_id):
        """Status history of a reservation, oldest first."""
        get_reservation(reservation_id)
        return api_success(data=get_status_history(reservation_id))
