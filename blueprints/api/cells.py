"""
Cool cell API routes.
Endpoints for creating, listing, renaming, status overrides and deletion.
"""

from flask import request
from flask_login import login_required

from models.cool_cell import (
    create_cool_cell, create_cool_cell_batch, delete_cool_cell,
    get_cool_cell, get_cool_cells, rename_cool_cell, set_cool_cell_status
)
from utils.api_response import api_success
from utils.decorators import json_body_required, acting_user
from utils.messages import get_message
from utils.validators import require_fields, parse_int, parse_text


def register_routes(bp):
    """Register cool cell routes on the blueprint."""

    @bp.route('/cells', methods=['POST'])
    @login_required
    @json_body_required
    def create_cell():
        """
        Create a single cell.

        Request body:
            facility_id: Facility ID
            label: Cell label

        Returns:
            JSON with the created cell (201)
        """
        data = request.get_json()
        require_fields(data, 'facility_id')

        cell = create_cool_cell(
            parse_text(data['facility_id'], 'facility_id'), data.get('label'), created_by=acting_user()
        )
        return api_success(
            data=cell,
            message=get_message('cell_created', label=cell['label']),
            status=201
        )

    @bp.route('/cells:batch', methods=['POST'])
    @login_required
    @json_body_required
    def create_cell_batch():
        """
        Create a numbered batch of cells.

        Request body:
            facility_id: Facility ID
            prefix: Label prefix ("Koelcel" -> "Koelcel 1", "Koelcel 2", ...)
            count: Number of cells

        Returns:
            JSON with the created cells (201)
        """
        data = request.get_json()
        require_fields(data, 'facility_id', 'count')

        cells = create_cool_cell_batch(
            parse_text(data['facility_id'], 'facility_id'),
            data.get('prefix'),
            parse_int(data['count'], 'count'),
            created_by=acting_user()
        )
        return api_success(
            data=cells,
            message=get_message('cells_created', count=len(cells)),
            status=201
        )

    @bp.route('/cells', methods=['GET'])
    def list_cells():
        """
        List the active cells of a facility.

        Query params:
            facility: Facility ID (required)
        """
        facility_id = request.args.get('facility', '').strip()
        require_fields({'facility': facility_id}, 'facility')
        return api_success(data=get_cool_cells(facility_id))

    @bp.route('/cells/<int:cell_id>', methods=['GET'])
    def get_cell(cell_id):
        """Get one cell."""
        return api_success(data=get_cool_cell(cell_id))

    @bp.route('/cells/<int:cell_id>', methods=['PATCH'])
    @login_required
    @json_body_required
    def update_cell(cell_id):
        """
        Rename a cell.

        Request body:
            label: New label
        """
        data = request.get_json()
        cell = rename_cool_cell(cell_id, data.get('label'))
        return api_success(data=cell, message=get_message('cell_updated', label=cell['label']))

    @bp.route('/cells/<int:cell_id>/status', methods=['PATCH'])
    @login_required
    @json_body_required
    def update_cell_status(cell_id):
        """
        Override the administrative status of a cell.

        Request body:
            status: FREE, RESERVED, OCCUPIED or OUT_OF_SERVICE
            note: Out-of-service note (optional)
        """
        data = request.get_json()
        require_fields(data, 'status')

        cell = set_cool_cell_status(
            cell_id, data['status'], note=data.get('note'), changed_by=acting_user()
        )
        return api_success(
            data=cell,
            message=get_message(
                'cell_status_updated',
                label=cell['label'],
                status=get_message(f"status_{cell['status']}")
            )
        )

    @bp.route('/cells/<int:cell_id>', methods=['DELETE'])
    @login_required
    def remove_cell(cell_id):
        """Soft delete a cell without current or future reservations."""
        delete_cool_cell(cell_id, deleted_by=acting_user())
        return api_success(message=get_message('cell_deleted'))
