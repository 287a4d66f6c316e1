"""
SQLAlchemy repository tests: document storage, conditional writes,
queries and the atomic approval commit.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from lexmarket.cases import utils
from lexmarket.cases.schemas import CaseCreate, CaseFilter, MilestoneCreate
from lexmarket.exceptions import ConflictError, NotFoundError, OperationFailed
from lexmarket.models import ApplicationStatus, CaseRecord, CaseStatus, NotificationType
from lexmarket.repositories.sql import SqlAlchemyCaseRepository


def _new_case(client_id="client-1", title="Case", **kwargs):
    return utils.create_case(CaseCreate(
        client_id=client_id,
        case_title=title,
        case_description="Description",
        milestones=[MilestoneCreate(title="m", description="d", amount=Decimal("10"))],
        **kwargs
    ))


def _fail_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("connection lost"))


# ═════════════════════════════════════════════════════════════════════════
# CASES
# ═════════════════════════════════════════════════════════════════════════

class TestCases:
    def test_add_assigns_id_and_version(self, repository):
        stored = repository.add_case(_new_case())
        assert stored.case_id
        assert stored.version == 1
        assert repository.get_case(stored.case_id) == stored

    def test_get_missing_returns_none(self, repository):
        assert repository.get_case("nope") is None

    def test_save_bumps_version(self, repository):
        stored = repository.add_case(_new_case())
        saved = repository.save_case(stored.model_copy(update={"case_title": "Renamed"}))
        assert saved.version == 2
        reloaded = repository.get_case(stored.case_id)
        assert reloaded.case_title == "Renamed"
        assert reloaded.version == 2

    def test_stale_save_rejected(self, repository):
        stored = repository.add_case(_new_case())
        repository.save_case(stored.model_copy(update={"case_title": "First writer"}))
        with pytest.raises(ConflictError):
            repository.save_case(stored.model_copy(update={"case_title": "Second writer"}))
        assert repository.get_case(stored.case_id).case_title == "First writer"

    def test_save_missing_case_raises_not_found(self, repository):
        ghost = _new_case().model_copy(update={"case_id": "ghost"})
        with pytest.raises(NotFoundError):
            repository.save_case(ghost)

    def test_index_columns_follow_document(self, repository, db_session):
        stored = repository.add_case(_new_case())
        repository.save_case(stored.model_copy(update={"status": CaseStatus.CLOSED}))
        record = db_session.get(CaseRecord, stored.case_id)
        assert record.status == CaseStatus.CLOSED
        assert record.document["status"] == "Closed"

    def test_list_filters_and_orders_newest_first(self, repository):
        older = _new_case(title="older")
        older = older.model_copy(update={"created_at": older.created_at - timedelta(hours=1)})
        repository.add_case(older)
        repository.add_case(_new_case(title="newer"))
        repository.add_case(_new_case(client_id="client-2", title="other", category="Family"))

        titles = [c.case_title for c in repository.list_cases(CaseFilter(client_id="client-1"))]
        assert titles == ["newer", "older"]
        assert [c.case_title for c in repository.list_cases(CaseFilter(category="Family"))] == ["other"]
        assert len(repository.list_cases(CaseFilter(limit=2))) == 2
        assert len(repository.list_cases()) == 3

    def test_delete_removes_applications(self, repository):
        stored = repository.add_case(_new_case())
        application = repository.add_application(stored.case_id, "lawyer-1", "L", "proposal")
        assert repository.delete_case(stored.case_id) is True
        assert repository.get_case(stored.case_id) is None
        assert repository.get_application(application.application_id) is None
        assert repository.delete_case(stored.case_id) is False

    def test_failed_commit_raises_operation_failed(self, repository, db_session, monkeypatch):
        stored = repository.add_case(_new_case())
        monkeypatch.setattr(db_session, "commit", _fail_commit)
        with pytest.raises(OperationFailed):
            repository.save_case(stored.model_copy(update={"case_title": "Lost"}))
        monkeypatch.undo()
        assert repository.get_case(stored.case_id).case_title == "Case"


# ═════════════════════════════════════════════════════════════════════════
# APPLICATIONS
# ═════════════════════════════════════════════════════════════════════════

class TestApplications:
    def test_add_and_list(self, repository):
        stored = repository.add_case(_new_case())
        first = repository.add_application(stored.case_id, "lawyer-1", "Ann", "I can help")
        repository.add_application(stored.case_id, "lawyer-2", "Ben", "Me too")

        assert first.status == ApplicationStatus.PENDING
        assert repository.get_application(first.application_id) == first
        assert len(repository.list_applications(case_id=stored.case_id)) == 2
        assert [a.lawyer_name for a in repository.list_applications(lawyer_id="lawyer-2")] == ["Ben"]

    def test_set_status(self, repository):
        stored = repository.add_case(_new_case())
        application = repository.add_application(stored.case_id, "lawyer-1", "Ann", "p")
        denied = repository.set_application_status(application.application_id, ApplicationStatus.DENIED)
        assert denied.status == ApplicationStatus.DENIED
        assert repository.get_application(application.application_id).status == ApplicationStatus.DENIED

    def test_set_status_missing(self, repository):
        with pytest.raises(NotFoundError):
            repository.set_application_status("missing", ApplicationStatus.DENIED)

    def test_count_applications(self, repository):
        busy = repository.add_case(_new_case(title="busy"))
        quiet = repository.add_case(_new_case(title="quiet"))
        repository.add_application(busy.case_id, "lawyer-1", "Ann", "p")
        repository.add_application(busy.case_id, "lawyer-2", "Ben", "p")
        assert repository.count_applications([busy.case_id, quiet.case_id]) == {
            busy.case_id: 2,
            quiet.case_id: 0,
        }
        assert repository.count_applications([]) == {}


# ═════════════════════════════════════════════════════════════════════════
# ATOMIC APPROVAL
# ═════════════════════════════════════════════════════════════════════════

class TestCommitApproval:
    @pytest.fixture()
    def setup(self, repository):
        case = repository.add_case(_new_case())
        apps = [
            repository.add_application(case.case_id, f"lawyer-{i}", f"Lawyer {i}", "p")
            for i in range(3)
        ]
        return case, apps

    def test_accepts_one_and_denies_rest(self, repository, setup):
        case, apps = setup
        result = repository.commit_approval(utils.assign_lawyer(case, "lawyer-1"), apps[1].application_id)

        assert result.version == case.version + 1
        statuses = {a.lawyer_id: a.status for a in repository.list_applications(case_id=case.case_id)}
        assert statuses == {
            "lawyer-0": ApplicationStatus.DENIED,
            "lawyer-1": ApplicationStatus.ACCEPTED,
            "lawyer-2": ApplicationStatus.DENIED,
        }
        stored = repository.get_case(case.case_id)
        assert stored.assigned_lawyer_id == "lawyer-1"
        assert stored.status == CaseStatus.IN_PROGRESS

    def test_stale_case_version_applies_nothing(self, repository, setup):
        case, apps = setup
        repository.save_case(case.model_copy(update={"notes": "edited meanwhile"}))

        with pytest.raises(ConflictError):
            repository.commit_approval(utils.assign_lawyer(case, "lawyer-0"), apps[0].application_id)

        assert all(a.status == ApplicationStatus.PENDING for a in repository.list_applications(case_id=case.case_id))
        assert repository.get_case(case.case_id).assigned_lawyer_id is None

    def test_non_pending_application_rolls_back_case(self, repository, setup):
        case, apps = setup
        repository.set_application_status(apps[2].application_id, ApplicationStatus.DENIED)

        with pytest.raises(ConflictError):
            repository.commit_approval(utils.assign_lawyer(case, "lawyer-2"), apps[2].application_id)

        stored = repository.get_case(case.case_id)
        assert stored.assigned_lawyer_id is None
        assert stored.version == case.version

    def test_store_failure_applies_nothing(self, repository, db_session, monkeypatch, setup):
        case, apps = setup
        monkeypatch.setattr(db_session, "commit", _fail_commit)
        with pytest.raises(OperationFailed):
            repository.commit_approval(utils.assign_lawyer(case, "lawyer-0"), apps[0].application_id)
        monkeypatch.undo()

        assert repository.get_case(case.case_id).assigned_lawyer_id is None
        assert all(a.status == ApplicationStatus.PENDING for a in repository.list_applications(case_id=case.case_id))


# ═════════════════════════════════════════════════════════════════════════
# NOTIFICATIONS
# ═════════════════════════════════════════════════════════════════════════

def test_notifications(repository):
    first = repository.add_notification("user-1", NotificationType.LAWYER_APPLIED, "case-1", "hello")
    repository.add_notification("user-1", NotificationType.MILESTONE_ADDED, "case-1", "again", milestone_id="m-1")
    repository.add_notification("user-2", NotificationType.MILESTONE_ADDED, "case-1", "other user")

    assert len(repository.list_notifications("user-1")) == 2
    read = repository.mark_notification_read(first.notification_id)
    assert read.read is True
    unread = repository.list_notifications("user-1", unread_only=True)
    assert [n.message for n in unread] == ["again"]
    with pytest.raises(NotFoundError):
        repository.mark_notification_read("missing")


def test_separate_sessions_see_committed_state(repository, session_factory):
    stored = repository.add_case(_new_case())
    other = SqlAlchemyCaseRepository(session_factory())
    assert other.get_case(stored.case_id) == stored
