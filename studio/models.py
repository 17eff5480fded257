from studio import db
from flask_login import UserMixin
from datetime import datetime

# =============================================================
# =========================== Users ===========================
# =============================================================

class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(32), nullable=False, unique=True)
    password = db.Column(db.String(128), nullable=False)
    permissions = db.Column(db.Integer, nullable=False)  # Whether a person has read or edit access
    time_joined = db.Column(db.DateTime, nullable=False, default=datetime.now)

# =============================================================
# ==================== Studio configuration ===================
# =============================================================

class Location(db.Model):
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    max_parallel_classes = db.Column(db.Integer, nullable=False, default=2)
    blocked_formats = db.Column(db.String(256), nullable=False, default='')  # Comma separated keywords
    is_flagship = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def blocked_format_list(self):
        return [f.strip().lower() for f in self.blocked_formats.split(',') if f.strip()]

# =============================================================
# ========================== Roster ===========================
# =============================================================

class Teacher(db.Model):
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    first_name = db.Column(db.String(32), nullable=False)
    last_name = db.Column(db.String(32), nullable=False, default='')
    is_new = db.Column(db.Boolean, nullable=False, default=False)

    specialties = db.relationship('TeacherSpecialty', back_populates='teacher', cascade='all, delete-orphan')
    leave = db.relationship('TeacherLeave', back_populates='teacher', uselist=False, cascade='all, delete-orphan')
    unavailable_dates = db.relationship('TeacherUnavailableDate', back_populates='teacher', cascade='all, delete-orphan')

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

# Formats a teacher declares they can teach, (eg. Barre 57, PowerCycle)
class TeacherSpecialty(db.Model):
    __tablename__ = 'teacher_specialty'

    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), primary_key=True)
    class_format = db.Column(db.String(64), primary_key=True)

    teacher = db.relationship('Teacher', back_populates='specialties')

class TeacherLeave(db.Model):
    __tablename__ = 'teacher_leave'

    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), primary_key=True)
    is_on_leave = db.Column(db.Boolean, nullable=False, default=False)
    leave_start = db.Column(db.Date, nullable=True)
    leave_end = db.Column(db.Date, nullable=True)

    teacher = db.relationship('Teacher', back_populates='leave')

class TeacherUnavailableDate(db.Model):
    __tablename__ = 'teacher_unavailable_date'

    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), primary_key=True)
    date = db.Column(db.Date, primary_key=True)

    teacher = db.relationship('Teacher', back_populates='unavailable_dates')

# =============================================================
# ====================== Historic classes =====================
# =============================================================

class HistoricClass(db.Model):
    __tablename__ = 'historic_class'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    location = db.Column(db.String(64), nullable=False)
    day_of_week = db.Column(db.String(10), nullable=False)
    class_time = db.Column(db.String(8), nullable=False)  # HH:MM or HH:MM:SS
    cleaned_class = db.Column(db.String(64), nullable=False)
    teacher_name = db.Column(db.String(64), nullable=False)
    participants = db.Column(db.Float, nullable=False, default=0)
    total_revenue = db.Column(db.Float, nullable=False, default=0)
    checked_in = db.Column(db.Integer, nullable=False, default=0)
    late_cancelled = db.Column(db.Integer, nullable=False, default=0)
    comps = db.Column(db.Integer, nullable=False, default=0)

# =============================================================
# ===================== Generated schedule ====================
# =============================================================

class Schedule(db.Model):
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    active = db.Column(db.Boolean, nullable=False, default=False)
    iteration = db.Column(db.Integer, nullable=False, default=0)
    date_created = db.Column(db.DateTime, nullable=False, default=datetime.now)

    entries = db.relationship('ScheduleEntry', back_populates='schedule', cascade='all, delete-orphan')


class ScheduleEntry(db.Model):
    __tablename__ = 'schedule_entry'

    pk = db.Column(db.Integer, primary_key=True, autoincrement=True)
    uid = db.Column(db.String(64), nullable=False)  # Entry id exposed to clients and lock lists
    schedule_id = db.Column(db.Integer, db.ForeignKey('schedule.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)

    day = db.Column(db.String(10), nullable=False)
    time = db.Column(db.String(5), nullable=False)
    location = db.Column(db.String(64), nullable=False)
    class_format = db.Column(db.String(64), nullable=False)
    duration = db.Column(db.Float, nullable=False)
    participants = db.Column(db.Float, nullable=False, default=0)
    revenue = db.Column(db.Float, nullable=False, default=0)
    is_top_performer = db.Column(db.Boolean, nullable=False, default=False)
    is_private = db.Column(db.Boolean, nullable=False, default=False)
    locked = db.Column(db.Boolean, nullable=False, default=False)

    teacher = db.relationship('Teacher')
    schedule = db.relationship('Schedule', back_populates='entries')

    __table_args__ = (
        db.UniqueConstraint('schedule_id', 'uid', name='unique_entry'),
    )
