"""
Appointment lifecycle.

An appointment is booked by a learner in ``pending`` and moves through the
transition table below. Who may drive each transition is declared once in
``AUTHORIZATION_POLICY`` and checked by :func:`authorize` for every change,
feedback included.
"""
import logging
from datetime import timezone

from sqlalchemy.exc import IntegrityError

from skillswap import db, ratings
from skillswap.directory import require_user
from skillswap.errors import ConflictError, Forbidden, InvalidState, NotFound, ValidationError
from skillswap.locks import booking_locks
from skillswap.matching import skills_equivalent
from skillswap.models import OPEN_STATUSES, Appointment
from skillswap.persistence import fetch, unit_of_work

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 60

# Terminal states (rejected, completed, cancelled) have no outgoing transitions.
# Either party may complete or cancel any appointment that is not yet terminal.
TRANSITIONS = {
    'pending': frozenset({'accepted', 'rejected', 'completed', 'cancelled'}),
    'accepted': frozenset({'completed', 'cancelled'}),
}

AUTHORIZATION_POLICY = {
    'accepted': frozenset({'teacher'}),
    'rejected': frozenset({'teacher'}),
    'completed': frozenset({'teacher', 'learner'}),
    'cancelled': frozenset({'teacher', 'learner'}),
    'feedback': frozenset({'learner'}),
}

FORBIDDEN_MESSAGES = {
    'accepted': 'Only teacher can accept or reject appointments',
    'rejected': 'Only teacher can accept or reject appointments',
    'feedback': 'Only learner can provide feedback',
}


def normalize_timestamp(value):
    """Naive UTC truncated to whole milliseconds, the form scheduled dates are stored and compared in."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def authorize(appointment, user_id, action):
    """Return the caller's role on ``appointment`` or raise Forbidden."""
    role = appointment.role_of(user_id)
    if role is None:
        if action == 'feedback':
            raise Forbidden(FORBIDDEN_MESSAGES['feedback'])
        raise Forbidden('Not authorized to update this appointment')

    allowed = AUTHORIZATION_POLICY.get(action)
    if allowed is None:
        raise ValidationError('Invalid status', errors=[{'field': 'status', 'message': 'Invalid status'}])
    if role not in allowed:
        raise Forbidden(FORBIDDEN_MESSAGES.get(action, 'Not authorized to update this appointment'))
    return role


def find_open_booking(teacher_id, scheduled_date):
    return fetch(
        f"check schedule for teacher {teacher_id}",
        lambda: Appointment.query.filter(
            Appointment.teacher_id == teacher_id,
            Appointment.scheduled_date == scheduled_date,
            Appointment.status.in_(OPEN_STATUSES),
        ).first(),
    )


def create(learner_id, teacher_id, skill, title, scheduled_date, duration=None,
           description=None, meeting_link=None):
    """Book a session with ``teacher_id``. The new appointment starts in ``pending``."""
    teacher = require_user(teacher_id, 'Teacher')
    require_user(learner_id)

    if teacher.id == learner_id:
        raise ValidationError('You cannot book a session with yourself')

    if not any(skills_equivalent(offered, skill) for offered in (teacher.skills_to_teach or [])):
        raise ValidationError('Teacher does not offer this skill')

    scheduled_date = normalize_timestamp(scheduled_date)

    with booking_locks.hold(('slot', teacher.id, scheduled_date)):
        if find_open_booking(teacher.id, scheduled_date):
            logger.warning("Booking conflict for teacher %s at %s.", teacher.id, scheduled_date)
            raise ConflictError('Teacher has a conflicting appointment at this time')

        appointment = Appointment(
            teacher_id=teacher.id,
            learner_id=learner_id,
            skill=skill,
            title=title,
            description=description,
            scheduled_date=scheduled_date,
            duration=duration or DEFAULT_DURATION,
            status='pending',
            meeting_link=meeting_link or '',
        )
        try:
            with unit_of_work(f"create appointment for teacher {teacher.id}"):
                db.session.add(appointment)
        except IntegrityError:
            # Another process took the slot between our check and insert
            logger.warning("Booking conflict on insert for teacher %s at %s.", teacher.id, scheduled_date)
            raise ConflictError('Teacher has a conflicting appointment at this time')

    logger.info("Appointment %s booked: learner %s with teacher %s.", appointment.id, learner_id, teacher.id)
    return appointment


def _load(appointment_id, for_update=False):
    def query():
        q = Appointment.query.filter_by(id=appointment_id)
        if for_update:
            q = q.with_for_update(of=Appointment)
        return q.first()

    appointment = fetch(f"load appointment {appointment_id}", query)
    if appointment is None:
        raise NotFound('Appointment not found')
    return appointment


def get(appointment_id, requesting_user_id=None):
    appointment = _load(appointment_id)
    if requesting_user_id is not None and appointment.role_of(requesting_user_id) is None:
        raise Forbidden('Not authorized to view this appointment')
    return appointment


def list_for_user(user_id, status=None, role='all'):
    """Appointments the user teaches or attends, soonest first."""
    if role == 'teaching':
        criteria = Appointment.teacher_id == user_id
    elif role == 'learning':
        criteria = Appointment.learner_id == user_id
    else:
        criteria = db.or_(Appointment.teacher_id == user_id, Appointment.learner_id == user_id)

    def query():
        q = Appointment.query.filter(criteria)
        if status:
            q = q.filter(Appointment.status == status)
        return q.order_by(Appointment.scheduled_date.asc(), Appointment.id.asc()).all()

    appointments = fetch(f"list appointments for user {user_id}", query)
    logger.debug("Retrieved %d appointments for user ID %s.", len(appointments), user_id)
    return appointments


def update_status(appointment_id, requesting_user_id, new_status, notes=None):
    with unit_of_work(f"update status of appointment {appointment_id}"):
        appointment = _load(appointment_id, for_update=True)
        role = authorize(appointment, requesting_user_id, new_status)

        if new_status not in TRANSITIONS.get(appointment.status, ()):
            raise InvalidState(f"Cannot change status from '{appointment.status}' to '{new_status}'")

        previous = appointment.status
        appointment.status = new_status
        if notes:
            appointment.notes = notes

    logger.info(
        "Appointment %s moved %s -> %s by %s %s.",
        appointment_id, previous, new_status, role, requesting_user_id,
    )
    return appointment


def submit_feedback(appointment_id, requesting_user_id, rating, feedback=None):
    """
    Rate a completed session and refresh the teacher's aggregate rating.

    The feedback and the teacher's new rating are committed together.
    """
    appointment = _load(appointment_id, for_update=True)
    try:
        authorize(appointment, requesting_user_id, 'feedback')
        if appointment.status != 'completed':
            raise InvalidState('Can only provide feedback for completed appointments')
    except Exception:
        db.session.rollback()
        raise

    appointment.rating = rating
    appointment.feedback = feedback
    ratings.recompute(appointment.teacher_id)

    logger.info("Feedback %s/5 recorded on appointment %s.", rating, appointment_id)
    return appointment
