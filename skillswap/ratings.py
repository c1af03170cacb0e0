import logging
from decimal import ROUND_HALF_UP, Decimal

from skillswap import db
from skillswap.errors import NotFound
from skillswap.locks import rating_locks
from skillswap.models import Appointment, User
from skillswap.persistence import unit_of_work

logger = logging.getLogger(__name__)


def round_rating(total, count):
    """Mean of ``total / count`` rounded half-up to one decimal place."""
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def recompute(teacher_id):
    """
    Recalculate a teacher's rating and session count from their rated, completed sessions.

    Serialized per teacher in-process, and the teacher row is locked for update
    so two processes cannot interleave their read-aggregate-write either.
    """
    with rating_locks.hold(('rating', teacher_id)):
        with unit_of_work(f"recompute rating for teacher {teacher_id}"):
            teacher = (
                User.query.filter_by(id=teacher_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if teacher is None:
                raise NotFound('Teacher not found')

            ratings = [
                row.rating for row in db.session.query(Appointment.rating).filter(
                    Appointment.teacher_id == teacher_id,
                    Appointment.status == 'completed',
                    Appointment.rating.isnot(None),
                )
            ]

            if ratings:
                teacher.rating = round_rating(sum(ratings), len(ratings))
            else:
                teacher.rating = None
            teacher.total_sessions = len(ratings)

    logger.info(
        "Teacher %s rating recomputed: %s over %d sessions.",
        teacher_id, teacher.rating, teacher.total_sessions,
    )
    return teacher
