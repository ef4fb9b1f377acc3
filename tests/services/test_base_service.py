import pytest
from sqlalchemy.exc import OperationalError

from servicehub.core.exceptions import ServiceException, ValidationException
from servicehub.repositories.base_repository import DuplicateRecordException
from servicehub.services.base import BaseService


class ProbeService(BaseService):
    @BaseService.measure_operation("probe")
    def probe(self, fail: bool = False) -> str:
        if fail:
            raise ValidationException("nope")
        return "ok"


def test_measure_operation_counts_success_and_failure(db):
    service = ProbeService(db)

    assert service.probe() == "ok"
    with pytest.raises(ValidationException):
        service.probe(fail=True)

    metrics = service.get_metrics()["probe"]
    assert metrics["count"] >= 2
    assert metrics["failure_count"] >= 1
    assert 0 < metrics["success_rate"] < 1


def test_transaction_wraps_store_errors(db):
    service = ProbeService(db)

    with pytest.raises(ServiceException):
        with service.transaction():
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))


def test_transaction_passes_duplicates_through(db):
    service = ProbeService(db)

    with pytest.raises(DuplicateRecordException):
        with service.transaction():
            raise DuplicateRecordException("reference taken")


def test_transaction_reraises_domain_errors(db):
    service = ProbeService(db)

    with pytest.raises(ValidationException):
        with service.transaction():
            raise ValidationException("bad input")
