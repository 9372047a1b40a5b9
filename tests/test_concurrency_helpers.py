import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from reefpoints.services.concurrency import commit, run_with_retry, storage_guard
from reefpoints.services.errors import OutOfStock, StorageUnavailable


class FakeSession:
    def __init__(self, commit_error=None):
        self.rollbacks = 0
        self.commit_error = commit_error

    def rollback(self):
        self.rollbacks += 1

    def commit(self):
        if self.commit_error is not None:
            raise self.commit_error


def _operational_error():
    return OperationalError("COMMIT", {}, Exception("server closed the connection"))


def test_retries_storage_failures_then_succeeds():
    session = FakeSession()
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise StorageUnavailable("down")
        return "voucher"

    assert run_with_retry(session, flaky, attempts=3, backoff_base=0) == "voucher"
    assert len(calls) == 3
    assert session.rollbacks == 2


def test_gives_up_after_bounded_attempts():
    session = FakeSession()
    calls = []

    def always_down():
        calls.append(1)
        raise StorageUnavailable("down")

    with pytest.raises(StorageUnavailable):
        run_with_retry(session, always_down, attempts=2, backoff_base=0)
    assert len(calls) == 2


def test_business_errors_are_not_retried():
    session = FakeSession()
    calls = []

    def sold_out():
        calls.append(1)
        raise OutOfStock("sold out")

    with pytest.raises(OutOfStock):
        run_with_retry(session, sold_out, attempts=5, backoff_base=0)
    assert len(calls) == 1
    assert session.rollbacks == 0


def test_commit_translates_operational_errors():
    session = FakeSession(commit_error=_operational_error())

    with pytest.raises(StorageUnavailable) as excinfo:
        commit(session)
    assert excinfo.value.status_code == 503
    assert session.rollbacks == 1


def test_storage_guard_translates_operational_errors():
    with pytest.raises(StorageUnavailable):
        with storage_guard():
            raise _operational_error()


def _voucher_clash():
    return IntegrityError(
        "INSERT INTO redemptions",
        {},
        Exception("UNIQUE constraint failed: redemptions.voucher_code"),
    )


def test_commit_turns_voucher_clash_into_retryable_error():
    session = FakeSession(commit_error=_voucher_clash())

    with pytest.raises(StorageUnavailable):
        commit(session)
    assert session.rollbacks == 1


def test_commit_reraises_other_integrity_errors():
    error = IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))
    session = FakeSession(commit_error=error)

    with pytest.raises(IntegrityError):
        commit(session)
    assert session.rollbacks == 1


def test_storage_guard_translates_voucher_clash():
    with pytest.raises(StorageUnavailable):
        with storage_guard():
            raise _voucher_clash()

    with pytest.raises(IntegrityError):
        with storage_guard():
            raise IntegrityError("INSERT", {}, Exception("CHECK constraint failed: users_points_non_negative"))


def test_voucher_clash_is_retried_until_a_fresh_code_commits():
    session = FakeSession()
    commits = []

    def insert_voucher():
        commits.append(1)
        if len(commits) == 1:
            with storage_guard():
                raise _voucher_clash()
        return "RWD-1-FRESHCODE"

    assert run_with_retry(session, insert_voucher, attempts=3, backoff_base=0) == "RWD-1-FRESHCODE"
    assert len(commits) == 2
    assert session.rollbacks == 1
