from __future__ import annotations

from collections import defaultdict

FOOTER = "\n\n--\nThis is an automated notification from the Trainee Management System."

BODIES = {
    "trainee_approved": (
        "Dear {instructor_name},\n\n"
        'Trainee "{trainee_name}" has been approved.\n'
        "{comments_block}"
        "Please log in to your dashboard to view the updated status."
    ),
    "trainee_rejected": (
        "Dear {instructor_name},\n\n"
        'Trainee "{trainee_name}" has been rejected.\n'
        "{comments_block}"
        "Please log in to your dashboard to view the updated status."
    ),
    "project_completed": (
        "Project Completion Notification\n\n"
        "Trainee: {trainee_name}\n"
        "Institution: {institution_name}\n"
        "Mobile: {mobile}\n"
        "Instructor: {instructor_name}\n\n"
        "Project: {project_name}\n"
        "Start date: {start_date}\n"
        "Completion date: {end_date}\n"
        "Duration: {duration}\n"
        "Performance rating: {performance_rating}/10\n\n"
        "The project report and attendance record are attached."
    ),
    "login_otp": (
        "Dear {name},\n\n"
        "Your one-time login code is {otp}.\n"
        "It expires in {ttl_minutes} minutes. If you did not request it, ignore this email."
    ),
}


def render_body(template_key: str, context: dict) -> str:
    values = defaultdict(lambda: "N/A", {k: v for k, v in (context or {}).items() if v is not None})
    comments = values.get("comments")
    values["comments_block"] = f"\nComments: {comments}\n\n" if comments else "\n"
    template = BODIES.get(template_key)
    if template is None:
        body = "\n".join(f"{key}: {value}" for key, value in sorted((context or {}).items()))
    else:
        body = template.format_map(values)
    return body + FOOTER
