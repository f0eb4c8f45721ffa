from __future__ import annotations

from .guards import (
    guard_project_completion,
    guard_review_completion,
    guard_trainee_decision,
)

WORKFLOWS = {
    "trainee": {
        "transitions": {
            "pending": {
                "approved": [guard_trainee_decision],
                "rejected": [guard_trainee_decision],
            },
            "approved": {},
            "rejected": {},
        }
    },
    "project": {
        "transitions": {
            "assigned": {
                "in_progress": [],
                "completed": [guard_project_completion],
            },
            "in_progress": {
                "completed": [guard_project_completion],
            },
            "completed": {},
        }
    },
    "progress_review": {
        "transitions": {
            "in_review": {"completed": [guard_review_completion]},
            "completed": {},
        }
    },
}
