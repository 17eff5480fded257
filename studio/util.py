from collections import defaultdict
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import PatternFill, Alignment
from openpyxl.utils import get_column_letter

from studio.rules import DEFAULT_RULES, EVENING_SLOTS, MORNING_SLOTS, parse_minutes

FORMAT_COLORS = {
    "barre": "F4CCCC",
    "powercycle": "9FC5E8",
    "power cycle": "9FC5E8",
    "fit": "FCE5CD",
    "mat": "D9EAD3",
    "cardio": "F6B26B",
    "recovery": "C2E7DA",
    "foundations": "FFF2CC",
}
PRIVATE_COLOR = "8E7CC3"

def format_color(class_format):
    lower_format = class_format.lower()
    for keyword, color in FORMAT_COLORS.items():
        if keyword in lower_format:
            return color
    return "FFFFFF"

def format_schedule_for_display(entries, ledger, rules=DEFAULT_RULES):
    """Group entries by location -> day -> time for the calendar client"""
    day_order = {day: i for i, day in enumerate(rules.days)}
    ordered = sorted(entries, key=lambda e: (e.location, day_order.get(e.day, 7), parse_minutes(e.time) or 0))

    data = {}
    for entry in ordered:
        location = data.setdefault(entry.location, {'teachers': [], 'schedule': {}})
        if entry.teacher_name not in location['teachers']:
            location['teachers'].append(entry.teacher_name)
        location['schedule'].setdefault(entry.day, {}).setdefault(entry.time, []).append(entry.to_dict())

    return {
        'data': data,
        'teacherHours': {str(teacher_id): hours for teacher_id, hours in ledger.as_dict().items()},
        'totalClasses': len(entries),
    }

def export_schedule_workbook(entries, rules=DEFAULT_RULES):
    """One sheet per location: days across, 30-minute slots down"""
    time_slots = sorted(set(MORNING_SLOTS) | set(EVENING_SLOTS) | {e.time for e in entries},
                        key=lambda t: parse_minutes(t) or 0)

    by_cell = defaultdict(list)
    for entry in entries:
        by_cell[(entry.location, entry.day, entry.time)].append(entry)

    wb = Workbook()
    wb.remove(wb.active)

    locations = rules.location_names + sorted({e.location for e in entries} - set(rules.location_names))
    for location in locations:
        ws = wb.create_sheet(title=location.replace(',', '')[:31])

        # 1) Header row: day names
        ws.cell(row=1, column=1, value="Time")
        for col, day in enumerate(rules.days, start=2):
            hdr = ws.cell(row=1, column=col, value=day)
            hdr.alignment = Alignment(horizontal="center")

        # 2) Time labels in col A, sessions in the day columns
        for row, time in enumerate(time_slots, start=2):
            ws.cell(row=row, column=1, value=time)
            for col, day in enumerate(rules.days, start=2):
                sessions = by_cell.get((location, day, time), [])
                if not sessions:
                    continue
                cell = ws.cell(row=row, column=col,
                               value="\n".join(f"{s.class_format} ({s.teacher_name})" for s in sessions))
                color = PRIVATE_COLOR if any(s.is_private for s in sessions) else format_color(sessions[0].class_format)
                cell.fill = PatternFill("solid", fgColor="00" + color)
                cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

        # 3) Layout tweaks
        ws.column_dimensions["A"].width = 10
        for i in range(2, 2 + len(rules.days)):
            ws.column_dimensions[get_column_letter(i)].width = 28
        ws.freeze_panes = "B2"

    if not wb.sheetnames:
        wb.create_sheet(title="Schedule")["A1"] = "No sessions"

    out = BytesIO()
    wb.save(out)
    out.seek(0)
    return out
