"""
Tests for the frame callback scheduler.
"""
from rdk_motion.scheduler import FrameScheduler


class TestFrameScheduler:

    def test_callback_runs_once_with_timestamp(self):
        scheduler = FrameScheduler()
        seen = []
        scheduler.request_frame(seen.append)
        assert scheduler.pending
        assert scheduler.dispatch(16.7) == 1
        assert scheduler.dispatch(33.4) == 0
        assert seen == [16.7]
        assert not scheduler.pending

    def test_cancelled_callback_never_runs(self):
        scheduler = FrameScheduler()
        seen = []
        handle = scheduler.request_frame(seen.append)
        scheduler.cancel_frame(handle)
        scheduler.dispatch(1.0)
        assert seen == []

    def test_cancel_unknown_handle_is_ignored(self):
        scheduler = FrameScheduler()
        scheduler.cancel_frame(None)
        scheduler.cancel_frame(42)
        assert not scheduler.pending

    def test_requests_made_during_dispatch_wait_for_next_frame(self):
        scheduler = FrameScheduler()
        seen = []

        def again(timestamp):
            seen.append(timestamp)
            scheduler.request_frame(again)

        scheduler.request_frame(again)
        scheduler.dispatch(1.0)
        scheduler.dispatch(2.0)
        assert seen == [1.0, 2.0]
        assert scheduler.pending

    def test_callback_can_cancel_a_later_one(self):
        scheduler = FrameScheduler()
        seen = []
        handles = {}
        handles["first"] = scheduler.request_frame(lambda t: scheduler.cancel_frame(handles["second"]))
        handles["second"] = scheduler.request_frame(seen.append)
        assert scheduler.dispatch(1.0) == 1
        assert seen == []

    def test_handles_are_unique(self):
        scheduler = FrameScheduler()
        first = scheduler.request_frame(lambda t: None)
        second = scheduler.request_frame(lambda t: None)
        assert first != second
