from flask_wtf import FlaskForm
from wtforms.fields import StringField, PasswordField, IntegerField, FloatField, SelectField, BooleanField, DateField
from wtforms_sqlalchemy.fields import QuerySelectField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, Regexp, ValidationError

from .models import Location, Teacher
from .rules import DAYS, parse_minutes

class JsonForm(FlaskForm):
    """Forms posted as JSON by the editing client, so no CSRF token"""
    class Meta:
        csrf = False

class LoginForm(JsonForm):
    username = StringField(label='Username', validators=[DataRequired(), Length(max=32)])
    password = PasswordField(label='Password', validators=[DataRequired()])

class GenerateScheduleForm(JsonForm):
    iteration = IntegerField("Iteration",
                             validators=[Optional(), NumberRange(min=0)],
                             default=0,
                             description="Seed for candidate ordering; the same seed replays the same schedule")

    week_start = DateField("Week Start", validators=[Optional()],
                           description="Any date in the week being scheduled, used for leave filtering")

    min_average_participants = FloatField("Min Average Participants",
                                          validators=[Optional(), NumberRange(min=0)],
                                          description="Historic average needed for a class to be a candidate")

    weekly_hour_ceiling = FloatField("Weekly Hour Ceiling",
                                     validators=[Optional(), NumberRange(min=1, max=40)],
                                     description="Maximum weekly hours per teacher")

    new_teacher_hour_ceiling = FloatField("New Teacher Hour Ceiling",
                                          validators=[Optional(), NumberRange(min=1, max=40)],
                                          description="Maximum weekly hours for new teachers")

    shift_class_cap = IntegerField("Max Classes Per Shift",
                                   validators=[Optional(), NumberRange(min=1, max=10)],
                                   description="Maximum classes a teacher takes in one half-day")

    randomization_spread = FloatField("Randomization Spread",
                                      validators=[Optional(), NumberRange(min=0)],
                                      description="How far candidate ordering may drift from the attendance ranking")

    activate = BooleanField("Activate", default=False)

def _valid_time(form, field):
    if parse_minutes(field.data) is None:
        raise ValidationError('Time must be HH:MM')

class ScheduleEntryForm(JsonForm):
    day = SelectField('Day', choices=[(d, d) for d in DAYS], validators=[DataRequired()])
    time = StringField('Time', validators=[DataRequired(), Regexp(r'^\d{2}:\d{2}$'), _valid_time])
    location = QuerySelectField(
        label='Location',
        query_factory=lambda: Location.query.order_by(Location.id).all(),
        get_pk=lambda location: location.name,
        get_label='name',
    )
    class_format = StringField('Class Format', validators=[DataRequired(), Length(max=64)])
    teacher = QuerySelectField(
        label='Teacher',
        query_factory=lambda: Teacher.query.order_by(Teacher.id).all(),
        get_label='full_name',
    )
    participants = FloatField('Expected Participants', validators=[Optional(), NumberRange(min=0)], default=0)
    revenue = FloatField('Expected Revenue', validators=[Optional(), NumberRange(min=0)], default=0)
    is_private = BooleanField('Private Class', default=False)
