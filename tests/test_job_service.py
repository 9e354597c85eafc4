"""
Tests for the quote submission pipeline (validate -> price -> build job -> save).
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from errors import ValidationError
from job_model import Job
from job_service import SUCCESS_MESSAGE, list_jobs, submit_quote
from job_store import UNKNOWN_COLUMN_MESSAGE, ErrorKind, InsertResult, JobStore, StoreError
from local_storage import LocalStorage
from pricing_engine import PricingConfig


def no_noise(low, high):
    return 1.0


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path)


@pytest.fixture
def form():
    return {
        "part_type": "Bracket",
        "material": "steel",
        "quantity": "10",
        "complexity": "medium",
        "deadline": "2026-11-30",
    }


def make_client(*, insert_exc):
    client = MagicMock()
    client.table.return_value.select.return_value.limit.return_value.execute.return_value = MagicMock(data=[])
    client.table.return_value.insert.return_value.execute.side_effect = insert_exc
    return client


def test_submit_to_remote(form, storage):
    client = MagicMock()
    client.table.return_value.select.return_value.limit.return_value.execute.return_value = MagicMock(data=[])

    def echo_insert(record):
        builder = MagicMock()
        builder.execute.return_value = MagicMock(data=[{**record, "id": "uuid-1"}])
        return builder

    client.table.return_value.insert.side_effect = echo_insert

    sub = submit_quote(form, PricingConfig(), JobStore(client, storage), noise=no_noise)

    assert sub.status == "success"
    assert sub.message == SUCCESS_MESSAGE
    assert sub.demo_mode is False
    assert sub.quote == 540.0
    assert sub.job.id == "uuid-1"
    assert sub.job.deadline == date(2026, 11, 30)
    assert sub.job.margin_percentage == 20


def test_submit_in_demo_mode_keeps_quote(form, storage):
    store = JobStore(None, storage)

    sub = submit_quote(form, PricingConfig(), store, noise=no_noise)

    assert sub.status == "warning"
    assert sub.demo_mode is True
    assert sub.quote == 540.0
    assert sub.breakdown["final_quote"] == 540.0
    assert sub.job.id is not None

    saved = store.load_local("jobs")
    assert len(saved) == 1
    assert saved[0]["quote"] == 540.0
    assert saved[0]["deadline"] == "2026-11-30"
    assert Job.from_record(saved[0]) == sub.job


def test_schema_mismatch_is_a_warning(form, storage):
    client = make_client(insert_exc=APIError({"code": "42703", "message": "column margin_percentage does not exist"}))

    sub = submit_quote(form, PricingConfig(), JobStore(client, storage), noise=no_noise)

    assert sub.status == "warning"
    assert sub.message == UNKNOWN_COLUMN_MESSAGE
    assert sub.saved is True


def test_hard_failure_still_returns_the_quote(form, storage):
    client = make_client(insert_exc=APIError({"code": "XX000", "message": "internal error"}))

    sub = submit_quote(form, PricingConfig(), JobStore(client, storage), noise=no_noise)

    assert sub.status == "error"
    assert sub.saved is False
    assert sub.message == "Failed to save quote: internal error"
    assert sub.quote == 540.0
    assert sub.job.id is None


def test_job_captures_pricing_configuration(form, storage):
    config = PricingConfig(rush_fee_enabled=True, rush_fee_amount=40, margin_percentage=30)

    sub = submit_quote(form, config, JobStore(None, storage), noise=no_noise)

    assert sub.job.rush_fee_enabled is True
    assert sub.job.rush_fee_amount == 40
    assert sub.job.margin_percentage == 30
    assert sub.quote == 625.0  # 450 * 1.3 + 40


def test_disabled_rush_fee_is_stored_as_zero(form, storage):
    config = PricingConfig(rush_fee_enabled=False, rush_fee_amount=40)
    sub = submit_quote(form, config, JobStore(None, storage), noise=no_noise)
    assert sub.job.rush_fee_amount == 0


def test_invalid_form_raises_before_saving(storage):
    store = MagicMock(spec=JobStore)

    with pytest.raises(ValidationError) as exc:
        submit_quote({"part_type": "", "material": "steel", "quantity": "0"}, PricingConfig(), store)

    assert set(exc.value.errors) == {"part_type", "quantity"}
    store.insert.assert_not_called()


def test_local_save_failure_is_an_error(form):
    store = MagicMock(spec=JobStore)

    store.insert.return_value = InsertResult(
        data=None,
        demo_mode=True,
        message="Failed to save data even in fallback mode",
        error=StoreError(kind=ErrorKind.UNREACHABLE, message="Failed to save data even in fallback mode"),
    )

    sub = submit_quote(form, PricingConfig(), store, noise=no_noise)

    assert sub.status == "error"
    assert sub.quote == 540.0


def test_list_jobs_treats_errors_as_empty(storage):
    jobs, error = list_jobs(JobStore(None, storage))
    assert jobs == []
    assert error


def test_list_jobs_parses_records(storage):
    client = MagicMock()
    client.table.return_value.select.return_value.order.return_value.execute.return_value = MagicMock(data=[
        {"id": "a", "part_type": "Gear", "material": "titanium", "quantity": 2,
         "complexity": "high", "quote_amount": "312.50", "created_at": "2026-10-01T00:00:00Z"},
    ])

    jobs, error = list_jobs(JobStore(client, storage))

    assert error is None
    assert jobs[0].quote == 312.5
    assert jobs[0].margin_percentage == 20
    assert jobs[0].rush_fee_enabled is False
