import logging

from flask import Blueprint, jsonify

from errors import NotFound, ValidationError
from extensions import db
from identity import admin_required
from models import CONTACT_STATUSES, ContactMessage
from schemas import ContactSubmit, StatusUpdate, parse_body

logger = logging.getLogger(__name__)

contact_bp = Blueprint('contact', __name__, url_prefix='/api/contact')


@contact_bp.route('/submit', methods=['POST'])
def submit_message():
    data = parse_body(ContactSubmit)
    if not all([data.name, data.email, data.subject, data.message]):
        raise ValidationError('Name, email, subject, and message are required')

    message = ContactMessage(
        name=data.name,
        email=data.email,
        company=data.company or None,
        subject=data.subject,
        message=data.message
    )
    db.session.add(message)
    db.session.commit()

    logger.info(f"[CONTACT] Message {message.id} received from {data.email}")
    return jsonify({'message': 'Message submitted successfully'}), 201


@contact_bp.route('/messages', methods=['GET'])
@admin_required
def list_messages():
    messages = ContactMessage.query \
        .order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc()).all()
    return jsonify([message.to_dict() for message in messages])


@contact_bp.route('/messages/<int:message_id>/status', methods=['PUT'])
@admin_required
def update_message_status(message_id):
    data = parse_body(StatusUpdate)
    if data.status not in CONTACT_STATUSES:
        raise ValidationError('Invalid status')

    message = db.session.get(ContactMessage, message_id)
    if message is None:
        raise NotFound('Message not found')

    message.status = data.status
    db.session.commit()
    return jsonify({'message': 'Message status updated'})
