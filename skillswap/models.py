from datetime import datetime, timezone

from skillswap import db

APPOINTMENT_STATUSES = ('pending', 'accepted', 'rejected', 'completed', 'cancelled')
OPEN_STATUSES = ('pending', 'accepted')


def utcnow():
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    if value is None:
        return None
    return value.isoformat(timespec='milliseconds') + 'Z'


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.Text, nullable=False)
    bio = db.Column(db.String(500), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    avatar = db.Column(db.String(500), nullable=False, default='')
    skills_to_teach = db.Column(db.JSON, nullable=False, default=list)
    skills_to_learn = db.Column(db.JSON, nullable=False, default=list)
    # Derived from rated sessions; written by skillswap.ratings only
    rating = db.Column(db.Float, nullable=True)
    total_sessions = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'avatar': self.avatar,
            'skillsToTeach': list(self.skills_to_teach or []),
            'skillsToLearn': list(self.skills_to_learn or []),
            'rating': self.rating,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'email': self.email,
            'bio': self.bio,
            'location': self.location,
            'totalSessions': self.total_sessions,
            'isActive': self.is_active,
            'createdAt': isoformat(self.created_at),
        })
        return data

    def __repr__(self):
        return f'<User {self.id} {self.email}>'


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    learner_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    skill = db.Column(db.String(255), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    scheduled_date = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Integer, nullable=False, default=60)  # minutes
    status = db.Column(db.String(20), nullable=False, default='pending')
    meeting_link = db.Column(db.String(500), nullable=False, default='')
    notes = db.Column(db.String(1000), nullable=True)
    rating = db.Column(db.Integer, nullable=True)
    feedback = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    teacher = db.relationship('User', foreign_keys=[teacher_id], lazy='joined')
    learner = db.relationship('User', foreign_keys=[learner_id], lazy='joined')

    __table_args__ = (
        db.CheckConstraint('teacher_id <> learner_id', name='ck_appointments_distinct_parties'),
        db.CheckConstraint('duration >= 15 AND duration <= 480', name='ck_appointments_duration'),
        db.CheckConstraint('rating IS NULL OR (rating >= 1 AND rating <= 5)', name='ck_appointments_rating'),
        db.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'completed', 'cancelled')",
            name='ck_appointments_status',
        ),
        db.Index('ix_appointments_teacher_date', 'teacher_id', 'scheduled_date'),
        db.Index('ix_appointments_learner_date', 'learner_id', 'scheduled_date'),
        # At most one open booking per teacher and exact start time
        db.Index(
            'uq_appointments_open_slot', 'teacher_id', 'scheduled_date',
            unique=True,
            sqlite_where=db.text("status IN ('pending', 'accepted')"),
            postgresql_where=db.text("status IN ('pending', 'accepted')"),
        ),
    )

    def role_of(self, user_id):
        if user_id == self.teacher_id:
            return 'teacher'
        if user_id == self.learner_id:
            return 'learner'
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'teacherId': self.teacher_id,
            'learnerId': self.learner_id,
            'teacher': self.teacher.to_summary() if self.teacher else None,
            'learner': self.learner.to_summary() if self.learner else None,
            'skill': self.skill,
            'title': self.title,
            'description': self.description,
            'scheduledDate': isoformat(self.scheduled_date),
            'duration': self.duration,
            'status': self.status,
            'meetingLink': self.meeting_link,
            'notes': self.notes,
            'rating': self.rating,
            'feedback': self.feedback,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Appointment {self.id} {self.status}>'


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    sender = db.relationship('User', foreign_keys=[sender_id], lazy='joined')
    receiver = db.relationship('User', foreign_keys=[receiver_id], lazy='joined')

    def to_dict(self):
        return {
            'id': self.id,
            'senderId': self.sender_id,
            'receiverId': self.receiver_id,
            'sender': {'id': self.sender.id, 'name': self.sender.name, 'avatar': self.sender.avatar},
            'receiver': {'id': self.receiver.id, 'name': self.receiver.name, 'avatar': self.receiver.avatar},
            'content': self.content,
            'isRead': self.is_read,
            'readAt': isoformat(self.read_at),
            'createdAt': isoformat(self.created_at),
        }
