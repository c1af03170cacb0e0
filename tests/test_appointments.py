import threading
from datetime import datetime, timedelta, timezone

import pytest

from skillswap import appointments, create_app, db
from skillswap.config import TestingConfig
from skillswap.errors import ConflictError, Forbidden, InvalidState, NotFound, ValidationError
from skillswap.models import Appointment, User

SLOT = datetime(2026, 11, 2, 10, 0, 0)


@pytest.fixture
def teacher(make_user):
    return make_user('Sarah', teach=['Photography', 'Guitar'], learn=['JavaScript'])


@pytest.fixture
def learner(make_user):
    return make_user('John', teach=['JavaScript'], learn=['Photography'])


def book(learner, teacher, when=SLOT, skill='Guitar', **kwargs):
    return appointments.create(learner.id, teacher.id, skill, 'Intro lesson', when, **kwargs)


def test_create_starts_pending_with_default_duration(teacher, learner):
    appointment = book(learner, teacher, description='Basics', meeting_link='https://meet.example/abc')

    assert appointment.status == 'pending'
    assert appointment.duration == 60
    assert appointment.teacher.name == 'Sarah'
    assert appointment.learner.name == 'John'
    assert appointment.meeting_link == 'https://meet.example/abc'


def test_create_then_fetch_round_trip(teacher, learner):
    created = book(learner, teacher, duration=90)

    fetched = appointments.get(created.id)

    assert fetched.skill == 'Guitar'
    assert fetched.title == 'Intro lesson'
    assert fetched.scheduled_date == SLOT
    assert fetched.duration == 90
    assert fetched.status == 'pending'


def test_create_unknown_teacher(learner):
    with pytest.raises(NotFound):
        appointments.create(learner.id, 9999, 'Guitar', 'Lesson', SLOT)


def test_create_skill_matched_by_substring(teacher, learner):
    appointment = book(learner, teacher, skill='photo')
    assert appointment.skill == 'photo'


def test_create_teacher_lacks_skill(teacher, learner):
    with pytest.raises(ValidationError):
        book(learner, teacher, skill='Cooking')


def test_create_with_yourself(teacher):
    with pytest.raises(ValidationError):
        book(teacher, teacher)


def test_conflict_at_exact_timestamp(teacher, learner, make_user):
    book(learner, teacher)
    other_learner = make_user('Ana', learn=['Guitar'])

    with pytest.raises(ConflictError):
        book(other_learner, teacher)

    assert Appointment.query.count() == 1


def test_no_conflict_one_millisecond_later_or_other_teacher(teacher, learner, make_user):
    book(learner, teacher)

    later = book(learner, teacher, when=SLOT + timedelta(milliseconds=1))
    other_teacher = make_user('Mia', teach=['Guitar'])
    elsewhere = book(learner, other_teacher)

    assert later.status == 'pending'
    assert elsewhere.status == 'pending'


def test_overlapping_interval_is_not_a_conflict(teacher, learner):
    book(learner, teacher, duration=60)
    assert book(learner, teacher, when=SLOT + timedelta(minutes=15), duration=30).status == 'pending'


def test_aware_timestamp_is_compared_in_utc(teacher, learner):
    book(learner, teacher)
    same_instant = datetime(2026, 11, 2, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))

    with pytest.raises(ConflictError):
        book(learner, teacher, when=same_instant)


def test_sub_millisecond_timestamps_are_truncated(teacher, learner):
    first = book(learner, teacher, when=SLOT + timedelta(microseconds=1500))

    assert first.scheduled_date == SLOT + timedelta(milliseconds=1)
    assert first.to_dict()['scheduledDate'] == '2026-11-02T10:00:00.001Z'
    with pytest.raises(ConflictError):
        book(learner, teacher, when=SLOT + timedelta(microseconds=1999))


def test_unique_index_rejects_a_slot_the_lookup_missed(teacher, learner, make_user, monkeypatch):
    book(learner, teacher)
    other_learner = make_user('Ana', learn=['Guitar'])
    monkeypatch.setattr(appointments, 'find_open_booking', lambda teacher_id, scheduled_date: None)

    with pytest.raises(ConflictError):
        book(other_learner, teacher)

    assert Appointment.query.count() == 1


@pytest.fixture
def file_app(tmp_path):
    """An app on a file database so each thread gets its own connection."""
    class FileConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'bookings.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 15}}

    app = create_app(FileConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_concurrent_bookings_for_one_slot_admit_exactly_one(file_app):
    with file_app.app_context():
        teacher = User(name='Sarah', email='sarah@example.com', password_hash='x', skills_to_teach=['Guitar'])
        learners = [User(name=f'Learner {n}', email=f'learner{n}@example.com', password_hash='x')
                    for n in range(2)]
        db.session.add_all([teacher, *learners])
        db.session.commit()
        teacher_id = teacher.id
        learner_ids = [learner.id for learner in learners]

    barrier = threading.Barrier(len(learner_ids))
    outcomes = []

    def attempt(learner_id):
        with file_app.app_context():
            barrier.wait()
            try:
                appointments.create(learner_id, teacher_id, 'Guitar', 'Lesson', SLOT)
                outcomes.append('booked')
            except ConflictError:
                outcomes.append('conflict')

    threads = [threading.Thread(target=attempt, args=(learner_id,)) for learner_id in learner_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ['booked', 'conflict']
    with file_app.app_context():
        assert Appointment.query.filter_by(teacher_id=teacher_id).count() == 1


@pytest.mark.parametrize('closing_status', ['rejected', 'cancelled'])
def test_closed_appointment_frees_the_slot(teacher, learner, closing_status):
    first = book(learner, teacher)
    appointments.update_status(first.id, teacher.id, closing_status)

    assert book(learner, teacher).status == 'pending'


def test_learner_cannot_accept(teacher, learner):
    appointment = book(learner, teacher)

    with pytest.raises(Forbidden):
        appointments.update_status(appointment.id, learner.id, 'accepted')

    assert appointments.get(appointment.id).status == 'pending'


def test_teacher_accepts(teacher, learner):
    appointment = book(learner, teacher)

    updated = appointments.update_status(appointment.id, teacher.id, 'accepted', notes='Bring a guitar')

    assert updated.status == 'accepted'
    assert appointments.get(appointment.id).notes == 'Bring a guitar'


def test_stranger_cannot_change_status(teacher, learner, make_user):
    appointment = book(learner, teacher)
    stranger = make_user('Eve')

    with pytest.raises(Forbidden):
        appointments.update_status(appointment.id, stranger.id, 'cancelled')


def test_update_missing_appointment(teacher):
    with pytest.raises(NotFound):
        appointments.update_status(12345, teacher.id, 'accepted')


def test_learner_may_complete_or_cancel_before_acceptance(teacher, learner):
    first = book(learner, teacher)
    second = book(learner, teacher, when=SLOT + timedelta(hours=1))

    assert appointments.update_status(first.id, learner.id, 'completed').status == 'completed'
    assert appointments.update_status(second.id, learner.id, 'cancelled').status == 'cancelled'


@pytest.mark.parametrize('terminal', ['rejected', 'cancelled', 'completed'])
def test_terminal_states_have_no_transitions(teacher, learner, terminal):
    appointment = book(learner, teacher)
    appointments.update_status(appointment.id, teacher.id, terminal)

    with pytest.raises(InvalidState):
        appointments.update_status(appointment.id, teacher.id, 'accepted')


def test_accepted_cannot_be_rejected(teacher, learner):
    appointment = book(learner, teacher)
    appointments.update_status(appointment.id, teacher.id, 'accepted')

    with pytest.raises(InvalidState):
        appointments.update_status(appointment.id, teacher.id, 'rejected')


def test_authorization_policy_table():
    assert appointments.AUTHORIZATION_POLICY['accepted'] == {'teacher'}
    assert appointments.AUTHORIZATION_POLICY['rejected'] == {'teacher'}
    assert appointments.AUTHORIZATION_POLICY['completed'] == {'teacher', 'learner'}
    assert appointments.AUTHORIZATION_POLICY['cancelled'] == {'teacher', 'learner'}
    assert appointments.AUTHORIZATION_POLICY['feedback'] == {'learner'}


def test_feedback_on_pending_is_rejected_without_side_effects(teacher, learner):
    appointment = book(learner, teacher)

    with pytest.raises(InvalidState):
        appointments.submit_feedback(appointment.id, learner.id, 5, 'Great')

    stored = appointments.get(appointment.id)
    assert stored.rating is None
    assert stored.feedback is None
    assert teacher.rating is None
    assert teacher.total_sessions == 0


def test_only_learner_gives_feedback(teacher, learner):
    appointment = book(learner, teacher)
    appointments.update_status(appointment.id, teacher.id, 'accepted')
    appointments.update_status(appointment.id, teacher.id, 'completed')

    with pytest.raises(Forbidden):
        appointments.submit_feedback(appointment.id, teacher.id, 5)


def test_feedback_missing_appointment(learner):
    with pytest.raises(NotFound):
        appointments.submit_feedback(4242, learner.id, 5)


def test_feedback_can_be_resubmitted(teacher, learner):
    appointment = book(learner, teacher)
    appointments.update_status(appointment.id, learner.id, 'completed')

    appointments.submit_feedback(appointment.id, learner.id, 2, 'Meh')
    updated = appointments.submit_feedback(appointment.id, learner.id, 4, 'Better on reflection')

    assert updated.rating == 4
    assert updated.feedback == 'Better on reflection'
    assert teacher.rating == 4.0
    assert teacher.total_sessions == 1


def test_list_for_user_filters_by_role_and_status(teacher, learner):
    as_learner = book(learner, teacher)
    as_teacher = appointments.create(teacher.id, learner.id, 'JavaScript', 'JS help', SLOT + timedelta(days=1))
    appointments.update_status(as_teacher.id, learner.id, 'accepted')

    assert [a.id for a in appointments.list_for_user(learner.id)] == [as_learner.id, as_teacher.id]
    assert [a.id for a in appointments.list_for_user(learner.id, role='learning')] == [as_learner.id]
    assert [a.id for a in appointments.list_for_user(learner.id, role='teaching')] == [as_teacher.id]
    assert [a.id for a in appointments.list_for_user(learner.id, status='accepted')] == [as_teacher.id]


def test_get_rejects_non_participant(teacher, learner, make_user):
    appointment = book(learner, teacher)

    with pytest.raises(Forbidden):
        appointments.get(appointment.id, requesting_user_id=make_user('Eve').id)
