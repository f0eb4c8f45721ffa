from __future__ import annotations

import pytest

from traineedb.apps.accounts.models import AccountRole
from traineedb.apps.notifications import models as notification_models
from traineedb.apps.training import models as training_models
from traineedb.apps.training import services as training_services
from traineedb.apps.workflow import InvalidStateError, NotFoundError


@pytest.fixture()
def trainee(db_session, instructor) -> training_models.Trainee:
    trainee = training_models.Trainee(
        name="Tara Trainee",
        mobile="9876543210",
        instructor_id=instructor.id,
        status=training_models.TraineeStatus.APPROVED,
    )
    db_session.add(trainee)
    db_session.commit()
    return trainee


def test_share_then_complete_review(db_session, admin, instructor, trainee):
    review = training_services.share_progress(
        db_session,
        trainee_id=trainee.id,
        instructor_id=instructor.id,
        summary="Halfway through the dashboard project",
    )
    db_session.commit()

    assert review.status == training_models.ProgressReviewStatus.IN_REVIEW
    admin_notes = (
        db_session.query(notification_models.Notification)
        .filter(notification_models.Notification.recipient_type == AccountRole.ADMIN)
        .all()
    )
    assert [(n.recipient_id, n.type) for n in admin_notes] == [
        (admin.id, notification_models.NotificationType.PROGRESS_SHARED)
    ]

    completed = training_services.complete_review(
        db_session,
        review_id=review.id,
        admin_id=admin.id,
        comments="Good pace",
    )
    db_session.commit()

    assert completed.status == training_models.ProgressReviewStatus.COMPLETED
    assert completed.reviewed_by == admin.id
    assert completed.reviewed_at is not None
    assert completed.review_comments == "Good pace"

    instructor_notes = (
        db_session.query(notification_models.Notification)
        .filter(notification_models.Notification.recipient_type == AccountRole.INSTRUCTOR)
        .all()
    )
    assert [(n.recipient_id, n.type) for n in instructor_notes] == [
        (instructor.id, notification_models.NotificationType.PROGRESS_REVIEWED)
    ]


def test_review_completes_only_once(db_session, admin, instructor, trainee):
    review = training_services.share_progress(db_session, trainee_id=trainee.id, instructor_id=instructor.id)
    db_session.commit()
    training_services.complete_review(db_session, review_id=review.id, admin_id=admin.id)
    db_session.commit()

    with pytest.raises(InvalidStateError):
        training_services.complete_review(db_session, review_id=review.id, admin_id=admin.id, comments="again")
    db_session.rollback()

    db_session.refresh(review)
    assert review.review_comments is None


def test_list_reviews_by_status(db_session, admin, instructor, trainee):
    first = training_services.share_progress(db_session, trainee_id=trainee.id, instructor_id=instructor.id)
    second = training_services.share_progress(db_session, trainee_id=trainee.id, instructor_id=instructor.id)
    db_session.commit()
    training_services.complete_review(db_session, review_id=first.id, admin_id=admin.id)
    db_session.commit()

    open_reviews = training_services.list_reviews(db_session, status=training_models.ProgressReviewStatus.IN_REVIEW)
    assert [r.id for r in open_reviews] == [second.id]


def test_unknown_review_is_not_found(db_session, admin):
    with pytest.raises(NotFoundError):
        training_services.complete_review(db_session, review_id=77, admin_id=admin.id)
