"""
Facility day block API routes.
Endpoints for closing a facility on a calendar day and reopening it.
"""

from flask import request
from flask_login import login_required

from models.day_block import block_day, list_day_blocks, unblock_day
from utils.api_response import api_success
from utils.decorators import json_body_required, acting_user
from utils.messages import get_message
from utils.validators import require_fields, parse_optional_date, parse_text


def register_routes(bp):
    """Register day block routes on the blueprint."""

    @bp.route('/facility-day-blocks', methods=['POST'])
    @login_required
    @json_body_required
    def create_day_block():
        """
        Block a facility for one day.

        Request body:
            facility_id: Facility ID
            date: Day to block (YYYY-MM-DD)
            reason: Mandatory reason

        Returns:
            JSON with the created block (201), 409 if already blocked
        """
        data = request.get_json()
        require_fields(data, 'facility_id', 'date')

        block = block_day(
            parse_text(data['facility_id'], 'facility_id'), data['date'], data.get('reason'),
            created_by=acting_user()
        )
        return api_success(
            data=block,
            message=get_message('day_blocked', date=block['block_date'].isoformat()),
            status=201
        )

    @bp.route('/facility-day-blocks', methods=['GET'])
    def get_day_blocks():
        """
        List the day blocks of a facility.

        Query params:
            facility: Facility ID (required)
            from: First day YYYY-MM-DD (inclusive, optional)
            to: Last day YYYY-MM-DD (inclusive, optional)
        """
        facility_id = request.args.get('facility', '').strip()
        require_fields({'facility': facility_id}, 'facility')

        blocks = list_day_blocks(
            facility_id,
            parse_optional_date(request.args.get('from'), 'from'),
            parse_optional_date(request.args.get('to'), 'to')
        )
        return api_success(data=blocks)

    @bp.route('/facility-day-blocks/<int:block_id>', methods=['DELETE'])
    @login_required
    def delete_day_block(block_id):
        """
        Remove a day block. Idempotent: removing an absent block succeeds.

        Returns:
            JSON with removed = true/false
        """
        removed = unblock_day(block_id, removed_by=acting_user())
        message_key = 'day_unblocked' if removed else 'day_already_unblocked'
        return api_success(data={'removed': removed}, message=get_message(message_key))
