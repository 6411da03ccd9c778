"""Flattening report rows into CSV or an HTML table."""
from datetime import date
import pandas as pd

from rollcall.models import RoleEnum, StatusEnum

EXPORT_COLUMNS = [
    ("date", "Date"),
    ("student_name", "Student Name"),
    ("student_external_id", "Student ID"),
    ("class_name", "Class"),
    ("subject", "Subject"),
    ("session", "Session"),
    ("status", "Status"),
]


def status_as_word(status):
    return status


def status_as_flag(status):
    return 1 if status == StatusEnum.present.value else 0


# Admin exports keep the word, teacher exports use a 1/0 flag.
STATUS_FORMATTERS = {
    RoleEnum.admin: status_as_word,
    RoleEnum.teacher: status_as_flag,
}


def rows_to_frame(rows, status_format=status_as_word):
    frame = pd.DataFrame(
        [
            {
                "date": row["date"].isoformat() if hasattr(row["date"], "isoformat") else row["date"],
                "student_name": row["student_name"],
                "student_external_id": row["student_external_id"],
                "class_name": row["class_name"],
                "subject": row["subject"],
                "session": row["session"],
                "status": status_format(row["status"]),
            }
            for row in rows
        ],
        columns=[key for key, _ in EXPORT_COLUMNS],
    )
    return frame.rename(columns=dict(EXPORT_COLUMNS))


def rows_to_csv(rows, role):
    formatter = STATUS_FORMATTERS.get(role, status_as_word)
    return rows_to_frame(rows, formatter).to_csv(index=False).encode("utf-8")


def rows_to_html(rows):
    return rows_to_frame(rows).to_html(index=False, classes="attendance-report", border=0)


def export_filename(role, today=None):
    today = today or date.today()
    return f"{role.value}_report_{today.isoformat()}.csv"
