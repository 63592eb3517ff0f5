"""
Tests for the purge of rejected loan requests.
"""

import asyncio

import pytest

from conftest import FakeClock
from loan_history.timeline import TimelineLog
from loan_requests.service import LoanRequestService
from loan_requests.sweeper import RejectedLoanSweeper
from shared.exceptions import NotFoundError, StoreError


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(db_manager, clock):
    return LoanRequestService(db_manager, clock=clock)


@pytest.fixture
def sweeper(db_manager, clock):
    return RejectedLoanSweeper(db_manager, delay_seconds=5, interval_seconds=0.01, clock=clock)


class TestSweep:
    """Single sweep passes driven by a fake clock."""

    def test_rejected_loan_kept_during_grace_period(self, service, sweeper, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")

        clock.advance(4)

        assert sweeper.sweep() == []
        assert service.get(loan.id).status == "rejected"

    def test_rejected_loan_purged_after_delay(self, db_manager, service, sweeper, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")

        clock.advance(6)

        assert sweeper.sweep() == [loan.id]
        with pytest.raises(NotFoundError):
            service.get(loan.id)
        events = TimelineLog(db_manager).list_by_loan(loan.id)
        assert [event.status for event in events] == ["pending", "rejected", "deleted"]

    def test_reapproved_loan_survives(self, service, sweeper, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")
        clock.advance(1)
        service.update_status(loan.id, "approved")

        clock.advance(60)

        assert sweeper.sweep() == []
        assert service.get(loan.id).status == "approved"

    def test_repeated_rejection_does_not_postpone_purge(self, service, sweeper, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")
        clock.advance(3)
        service.update_status(loan.id, "rejected")

        clock.advance(3)

        assert sweeper.sweep() == [loan.id]

    def test_pending_and_approved_loans_untouched(self, service, sweeper, clock, create_loan):
        pending = create_loan(service=service)
        approved = create_loan(service=service)
        service.update_status(approved.id, "approved")

        clock.advance(3600)

        assert sweeper.sweep() == []
        assert service.stats().total == 2
        assert service.get(pending.id).status == "pending"

    def test_already_deleted_loan_is_a_no_op(self, service, sweeper, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")
        service.delete(loan.id)

        clock.advance(10)

        assert sweeper.sweep() == []

    def test_eligibility_survives_restart(self, db_manager, service, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")
        clock.advance(30)

        # A sweeper created later (after a restart) still finds the row
        fresh = RejectedLoanSweeper(db_manager, delay_seconds=5, clock=clock)

        assert fresh.sweep() == [loan.id]


class TestSweepLoop:
    """The background task started by the application lifespan."""

    @pytest.mark.asyncio
    async def test_loop_purges_and_stops(self, service, sweeper, clock, create_loan):
        loan = create_loan(service=service)
        service.update_status(loan.id, "rejected")
        clock.advance(10)

        await sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert sweeper.running is False
        assert sweeper.sweeper_task is None
        with pytest.raises(NotFoundError):
            service.get(loan.id)

    @pytest.mark.asyncio
    async def test_loop_swallows_sweep_errors(self, sweeper, mocker):
        failing = mocker.patch.object(
            sweeper, "sweep", side_effect=StoreError("purge_rejected_loans", "database is locked")
        )

        await sweeper.start()
        await asyncio.sleep(0.05)

        assert sweeper.sweeper_task.done() is False
        await sweeper.stop()
        assert failing.call_count >= 2

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, sweeper):
        await sweeper.start()
        task = sweeper.sweeper_task
        await sweeper.start()

        assert sweeper.sweeper_task is task
        await sweeper.stop()
