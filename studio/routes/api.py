from flask import Blueprint, request, jsonify, send_file, current_app
from flask_login import login_required
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import NotFound

from studio import db
from studio.advisor import LocalAdvisor
from studio.data_processor import load_database_driven, load_historic_records, load_roster, load_rules, \
                                  entry_from_row, row_from_entry
from studio.entities import ClassCandidate, ScheduledClass, TeacherHourLedger
from studio.exceptions import SchedulingError, UnknownTeacherError, HourLimitExceeded
from studio.forms import GenerateScheduleForm, ScheduleEntryForm
from studio.historic_analyzer import class_performance, teacher_performance, top_performing_classes
from studio.models import Schedule, ScheduleEntry
from studio.rebalancer import rebalance_schedule
from studio.rules import class_duration, normalize_time
from studio.schedule_builder import ScheduleBuilder
from studio.util import format_schedule_for_display, export_schedule_workbook
from studio.validation import validate_addition, under_target_teachers, class_counts

from dataclasses import asdict
from math import ceil

api_bp = Blueprint('api', __name__, url_prefix='/api')

@api_bp.errorhandler(SchedulingError)
def handle_scheduling_error(error):
    return jsonify({'success': False, 'message': error.message}), error.status_code

@api_bp.errorhandler(NotFound)
def handle_not_found(error):
    return jsonify({'success': False, 'message': 'Not found'}), 404

def _form_payload():
    """JSON body as form data; numbers become strings so the query select fields can match them"""
    payload = request.get_json(silent=True) or {}
    return MultiDict({
        key: value if isinstance(value, bool) else str(value)
        for key, value in payload.items()
        if value is not None
    })

def _resolve_teacher(roster, identifier):
    teacher = roster.find(identifier) if isinstance(identifier, str) else roster.get(identifier)
    if teacher is None:
        raise UnknownTeacherError(identifier)
    return teacher

def _entries(schedule):
    return [entry_from_row(row) for row in schedule.entries]

def _get_entry_row(schedule, entry_id):
    row = ScheduleEntry.query.filter_by(schedule_id=schedule.id, uid=entry_id).first()
    if row is None:
        raise SchedulingError(f'No entry {entry_id} in schedule {schedule.id}', 404)
    return row

def format_schedule(schedule, rules=None):
    entries = _entries(schedule)
    locked = {row.uid for row in schedule.entries if row.locked}
    ledger = TeacherHourLedger.from_schedule(entries)
    rules = rules or load_rules()

    return {
        'id': schedule.id,
        'date_created': schedule.date_created.isoformat(),
        'active': bool(schedule.active),
        'iteration': schedule.iteration,
        'entries': [dict(entry.to_dict(), locked=entry.id in locked) for entry in entries],
        'classCounts': class_counts(entries, rules),
        **format_schedule_for_display(entries, ledger, rules)
    }

def format_schedule_summary(schedule):
    return {
        'id': schedule.id,
        'date_created': schedule.date_created.isoformat(),
        'active': bool(schedule.active),
        'iteration': schedule.iteration,
        'total_classes': len(schedule.entries)
    }

#############
# SCHEDULE  #
#############

@api_bp.route('/schedule/generate', methods=['POST'])
@login_required
def generate():
    """Generate a schedule from the historic data and roster in the database, then save it"""
    form = GenerateScheduleForm(formdata=_form_payload())
    if not form.validate():
        return jsonify({'success': False, 'message': form.errors}), 400

    try:
        data = load_database_driven(current_app.config['PRIORITY_TEACHERS'], form.week_start.data)

        if not data['records']:
            return jsonify({
                'success': False,
                'message': 'No historic class data loaded'
            }), 400

        settings = {
            'weekly_hour_ceiling': form.weekly_hour_ceiling.data or current_app.config['WEEKLY_HOUR_CEILING'],
            'new_teacher_hour_ceiling': form.new_teacher_hour_ceiling.data or current_app.config['NEW_TEACHER_HOUR_CEILING'],
            'shift_class_cap': form.shift_class_cap.data or current_app.config['SHIFT_CLASS_CAP'],
            'min_average_participants': form.min_average_participants.data
                if form.min_average_participants.data is not None
                else current_app.config['MIN_AVERAGE_PARTICIPANTS'],
            'randomization_spread': form.randomization_spread.data,
        }
        iteration = form.iteration.data or 0

        builder = ScheduleBuilder(data['records'], data['roster'], data['rules'], data['priority_teachers'], settings)
        results = builder.generate(iteration)

        schedule = Schedule(iteration=iteration)
        db.session.add(schedule)
        db.session.flush()  # Ensure the id exists before the entries use it

        for entry in results['schedule']:
            db.session.add(row_from_entry(entry, schedule.id))

        if form.activate.data:
            Schedule.query.update({Schedule.active: False})
            schedule.active = True

        db.session.commit()

    except SchedulingError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error generating schedule")
        return jsonify({
            'success': False,
            'message': 'Something went wrong.'
        }), 500

    current_app.logger.info(f"Saved schedule {schedule.id} with {len(results['schedule'])} classes")
    return jsonify({
        'success': True,
        'message': 'Schedule generated',
        'schedule': format_schedule(schedule, data['rules']),
        'statistics': results['statistics'],
        'under_target_teachers': under_target_teachers(results['schedule'], data['roster'],
                                                       current_app.config['MINIMUM_WEEKLY_HOURS'])
    }), 201


@api_bp.route('/schedule/', methods=['GET'])
def get_schedules():
    results_per_page = request.args.get('results', 20, type=int)
    page = request.args.get('page', 1, type=int)
    show_active = request.args.get('show_active', 'false').lower() not in ('0', 'false', 'no')

    if not 1 <= results_per_page <= 100:
        return jsonify({
            'success': False,
            'message': 'Invalid results per page. Must be between 1 and 100.'
        }), 400

    total_count = Schedule.query.count()
    max_pages = ceil(total_count / results_per_page)

    if total_count == 0:
        return jsonify({
            "results": [],
            "page": page,
            "max_pages": max_pages,
            "total_count": total_count
        }), 200

    if not 1 <= page <= max_pages:
        return jsonify({
            'success': False,
            'message': f'Invalid page. Must be between 1 and {max_pages}'
        }), 400

    schedules = Schedule.query \
        .order_by(Schedule.date_created.desc(), Schedule.id.desc()) \
        .offset((page - 1) * results_per_page) \
        .limit(results_per_page) \
        .all()

    response = [format_schedule_summary(s) for s in schedules]

    if show_active:
        active = Schedule.query.filter(Schedule.active == True).first()
        if active and all(s['id'] != active.id for s in response):
            response.insert(0, format_schedule_summary(active))

    return jsonify({
        "results": response,
        "page": page,
        "max_pages": max_pages,
        "total_count": total_count
    }), 200


@api_bp.route('/schedule/<int:id>', methods=['GET'])
def get_schedule_by_id(id):
    schedule = db.get_or_404(Schedule, id)

    return jsonify(format_schedule(schedule)), 200

@api_bp.route('/schedule/<int:id>', methods=['DELETE'])
@login_required
def delete_schedule(id):
    schedule = db.get_or_404(Schedule, id)
    db.session.delete(schedule)

    db.session.commit()

    return jsonify({
        'success': True,
        'message': f'Deleted schedule id {id}.'
    }), 200

@api_bp.route('/schedule/<int:id>/activate', methods=['POST'])
@login_required
def set_active_schedule(id):
    schedule = db.get_or_404(Schedule, id)
    Schedule.query.update({Schedule.active: False})
    db.session.flush()

    schedule.active = True
    db.session.commit()

    return jsonify({
        'success': True,
        'message': 'Updated active schedule.'
    }), 200

@api_bp.route('/schedule/active', methods=['GET'])
def get_active_schedule():
    schedule = Schedule.query.filter(Schedule.active == True).first()

    if not schedule:
        return jsonify({
            'success': False,
            'message': 'No active schedule found.'
        }), 404

    return get_schedule_by_id(schedule.id)

#############
#  ENTRIES  #
#############

def _next_uid(schedule):
    taken = {row.uid for row in schedule.entries}
    n = len(taken) + 1
    while f"manual-{schedule.id}-{n:04d}" in taken:
        n += 1
    return f"manual-{schedule.id}-{n:04d}"

def _check_schedule_rules(existing, entry):
    """Slot and teacher rules a committed schedule has to keep; hours are left to validate_addition"""
    builder = ScheduleBuilder([], load_roster(), load_rules(), settings={
        'weekly_hour_ceiling': current_app.config['WEEKLY_HOUR_CEILING'],
        'new_teacher_hour_ceiling': current_app.config['NEW_TEACHER_HOUR_CEILING'],
        'shift_class_cap': current_app.config['SHIFT_CLASS_CAP'],
    })
    state = builder.new_run_state(schedule=existing)
    candidate = ClassCandidate(
        class_format=entry.class_format,
        location=entry.location,
        day=entry.day,
        time=entry.time,
        participants=entry.participants,
        revenue=entry.revenue,
        is_private=entry.is_private,
    )
    slot = f'{entry.location} {entry.day} {entry.time}'

    if not builder.slot_is_open(state['schedule'], candidate):
        raise SchedulingError(f'{entry.class_format} cannot be scheduled at {slot}', 409)

    teacher = _resolve_teacher(builder.roster, entry.teacher_id)
    if not state['assigner'].fits_schedule(teacher, entry.class_format, entry.day, entry.time):
        raise SchedulingError(f'{entry.teacher_name} cannot take {entry.class_format} at {slot}', 409)

@api_bp.route('/schedule/<int:id>/entries', methods=['POST'])
@login_required
def add_entry(id):
    """Manually add a class, rejected if it takes the teacher past the weekly ceiling"""
    schedule = db.get_or_404(Schedule, id)
    form = ScheduleEntryForm(formdata=_form_payload())
    if not form.validate():
        return jsonify({'success': False, 'message': form.errors}), 400

    teacher = form.teacher.data
    participants = form.participants.data or 0
    entry = ScheduledClass(
        id=_next_uid(schedule),
        day=form.day.data,
        time=normalize_time(form.time.data),
        location=form.location.data.name,
        class_format=form.class_format.data.strip(),
        teacher_id=teacher.id,
        teacher_first_name=teacher.first_name,
        teacher_last_name=teacher.last_name,
        duration=class_duration(form.class_format.data),
        participants=participants,
        revenue=form.revenue.data or 0,
        is_top_performer=participants > 6,
        is_private=form.is_private.data,
    )

    existing = _entries(schedule)
    _check_schedule_rules(existing, entry)

    result = validate_addition(existing, entry,
                               ceiling=current_app.config['WEEKLY_HOUR_CEILING'],
                               warning_threshold=current_app.config['HOURS_WARNING_THRESHOLD'])
    if not result.ok:
        raise HourLimitExceeded(result.error)

    db.session.add(row_from_entry(entry, schedule.id))
    db.session.commit()

    response = {
        'success': True,
        'message': f'Added {entry.class_format} with {entry.teacher_name}',
        'entry': entry.to_dict()
    }
    if result.warning:
        response['warning'] = result.warning
    return jsonify(response), 201

@api_bp.route('/schedule/<int:id>/entries/<entry_id>', methods=['DELETE'])
@login_required
def delete_entry(id, entry_id):
    schedule = db.get_or_404(Schedule, id)
    row = _get_entry_row(schedule, entry_id)
    db.session.delete(row)
    db.session.commit()

    return jsonify({
        'success': True,
        'message': f'Deleted entry {entry_id}.'
    }), 200

@api_bp.route('/schedule/<int:id>/entries/<entry_id>/lock', methods=['POST'])
@login_required
def lock_entry(id, entry_id):
    schedule = db.get_or_404(Schedule, id)
    row = _get_entry_row(schedule, entry_id)

    payload = request.get_json(silent=True) or {}
    row.locked = bool(payload.get('locked', True))
    db.session.commit()

    return jsonify({
        'success': True,
        'message': f"{'Locked' if row.locked else 'Unlocked'} entry {entry_id}.",
        'locked': row.locked
    }), 200

@api_bp.route('/schedule/<int:id>/rebalance', methods=['POST'])
@login_required
def rebalance(id):
    """Trim teachers over the weekly ceiling, keeping locked entries and locked teachers"""
    schedule = db.get_or_404(Schedule, id)
    payload = request.get_json(silent=True) or {}

    locked_entries = set(payload.get('locked_entries', [])) | {row.uid for row in schedule.entries if row.locked}
    roster = load_roster()
    locked_teachers = {_resolve_teacher(roster, identifier).id for identifier in payload.get('locked_teachers', [])}

    ceiling = current_app.config['WEEKLY_HOUR_CEILING']
    current = _entries(schedule)
    kept = rebalance_schedule(current, locked_entries=locked_entries, locked_teachers=locked_teachers, ceiling=ceiling)

    kept_ids = {entry.id for entry in kept}
    removed = [entry.id for entry in current if entry.id not in kept_ids]
    for row in list(schedule.entries):
        if row.uid not in kept_ids:
            db.session.delete(row)
    db.session.commit()

    hints = LocalAdvisor(ceiling).optimization_hints(kept)
    current_app.logger.info(f"Rebalanced schedule {id}: removed {len(removed)} entries")
    return jsonify({
        'success': True,
        'message': f'Removed {len(removed)} entries.',
        'removed': removed,
        'hints': [asdict(hint) for hint in hints],
        'schedule': format_schedule(schedule)
    }), 200

@api_bp.route('/schedule/<int:id>/export-excel', methods=['GET'])
def export_excel(id):
    schedule = db.get_or_404(Schedule, id)
    out = export_schedule_workbook(_entries(schedule), load_rules())

    return send_file(
        out,
        as_attachment=True,
        download_name=f"schedule_{id}.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

#############
# ANALYTICS #
#############

@api_bp.route('/analytics/classes', methods=['GET'])
def get_class_analytics():
    return jsonify({
        'success': True,
        'classes': [asdict(c) for c in class_performance(load_historic_records())]
    }), 200

@api_bp.route('/analytics/teachers', methods=['GET'])
def get_teacher_analytics():
    return jsonify({
        'success': True,
        'teachers': [asdict(t) for t in teacher_performance(load_historic_records())]
    }), 200

@api_bp.route('/analytics/top-classes', methods=['GET'])
def get_top_classes():
    min_average = request.args.get('min_average', current_app.config['MIN_AVERAGE_PARTICIPANTS'], type=float)
    include_teacher = request.args.get('include_teacher', 'true').lower() not in ('0', 'false', 'no')

    classes = top_performing_classes(load_historic_records(), min_average, include_teacher, load_rules())
    return jsonify({
        'success': True,
        'classes': [dict(asdict(c), is_top_performer=c.is_top_performer) for c in classes]
    }), 200

#############
#  ADVISOR  #
#############

@api_bp.route('/advisor/recommendations', methods=['GET'])
def get_recommendations():
    location = request.args.get('location')
    day = request.args.get('day')
    time = request.args.get('time')
    if not (location and day and time):
        return jsonify({
            'success': False,
            'message': 'location, day and time are required'
        }), 400

    advisor = LocalAdvisor(current_app.config['WEEKLY_HOUR_CEILING'])
    suggestions = advisor.recommendations(load_historic_records(), location, day, time)
    return jsonify({
        'success': True,
        'recommendations': [s.to_dict() for s in suggestions]
    }), 200
